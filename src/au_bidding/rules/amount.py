from decimal import Decimal

from src.au_common.enums import RejectReason


def check_positive(amount: Decimal) -> RejectReason | None:
    if amount <= 0:
        return RejectReason.NON_POSITIVE_AMOUNT
    return None


def check_above_highest(amount: Decimal, current_highest: Decimal) -> RejectReason | None:
    """Equal to the highest bid is not enough; it must strictly exceed it."""
    if amount <= current_highest:
        return RejectReason.AMOUNT_NOT_ABOVE_HIGHEST
    return None
