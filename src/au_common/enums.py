"""Global enums — values match the wire format of the auction API."""

from enum import Enum


class SaleStatus(str, Enum):
    UNSOLD = "unsold"
    SOLD = "sold"


class Urgency(str, Enum):
    NORMAL = "normal"
    MODERATE = "moderate"
    URGENT = "urgent"
    CRITICAL = "critical"


class BidOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RejectReason(str, Enum):
    """Local gate rejections, listed in evaluation order."""
    PRODUCT_SOLD = "ProductSold"
    AUCTION_EXPIRED = "AuctionExpired"
    NON_POSITIVE_AMOUNT = "NonPositiveAmount"
    AMOUNT_NOT_ABOVE_HIGHEST = "AmountNotAboveHighest"


class CacheState(str, Enum):
    ABSENT = "ABSENT"
    REFRESHING = "REFRESHING"
    FRESH = "FRESH"
    STALE = "STALE"


class PlaceBidStatus(str, Enum):
    REJECTED_LOCALLY = "REJECTED_LOCALLY"
    ACCEPTED = "ACCEPTED"
    RACE_LOST = "RACE_LOST"
    SERVER_REJECTED = "SERVER_REJECTED"
    FAILED = "FAILED"


class CountdownStyle(str, Enum):
    """Display formats used by product cards and the auction list."""
    CARD = "CARD"
    LIST = "LIST"
