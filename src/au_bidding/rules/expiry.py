from src.au_common.enums import RejectReason


def check_not_expired(current_expired: bool) -> RejectReason | None:
    if current_expired:
        return RejectReason.AUCTION_EXPIRED
    return None
