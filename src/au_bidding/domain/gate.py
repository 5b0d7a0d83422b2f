"""Bid-eligibility gate — local pre-flight check before POST /bid.

Rules run in a fixed order and the first rejection wins:
  1. product sold          → ProductSold
  2. deadline passed       → AuctionExpired
  3. amount <= 0           → NonPositiveAmount
  4. amount <= highest     → AmountNotAboveHighest

An Accept here is advisory only; the server stays the authority and may
still reject (another bidder got in first, wallet too low, ...).
"""

from collections.abc import Callable
from decimal import Decimal

from src.au_bidding.domain.models import BidAttempt, GateResult
from src.au_bidding.rules.amount import check_above_highest, check_positive
from src.au_bidding.rules.expiry import check_not_expired
from src.au_bidding.rules.sale_status import check_not_sold
from src.au_common.enums import RejectReason

PREMIUM_THRESHOLD = Decimal(10000)

_RULES: tuple[Callable[[BidAttempt], RejectReason | None], ...] = (
    lambda a: check_not_sold(a.status),
    lambda a: check_not_expired(a.current_expired),
    lambda a: check_positive(a.proposed_amount),
    lambda a: check_above_highest(a.proposed_amount, a.current_highest),
)


def _reject_message(reason: RejectReason, attempt: BidAttempt) -> str:
    if reason is RejectReason.PRODUCT_SOLD:
        return "This product has already been sold"
    if reason is RejectReason.AUCTION_EXPIRED:
        return "Bidding for this product has ended"
    if reason is RejectReason.NON_POSITIVE_AMOUNT:
        return "Please enter a valid bid amount"
    return f"Bid must be higher than current highest bid of {attempt.current_highest}"


def evaluate_bid(attempt: BidAttempt) -> GateResult:
    for rule in _RULES:
        reason = rule(attempt)
        if reason is not None:
            return GateResult.reject(reason, _reject_message(reason, attempt))
    return GateResult.accept()


def is_premium(highest_bid: Decimal, expired: bool) -> bool:
    """Premium badge: live product whose highest bid is above the threshold."""
    return not expired and highest_bid > PREMIUM_THRESHOLD
