"""Domain models for au_bidding — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.au_common.enums import (
    BidOutcome,
    CacheState,
    PlaceBidStatus,
    RejectReason,
    SaleStatus,
)
from src.au_common.errors import AppError


@dataclass(frozen=True)
class BidAttempt:
    """Everything the local gate looks at for one proposed bid."""

    product_key: str
    proposed_amount: Decimal
    current_expired: bool
    current_highest: Decimal
    status: SaleStatus = SaleStatus.UNSOLD


@dataclass(frozen=True)
class GateResult:
    accepted: bool
    reason: RejectReason | None = None
    message: str = ""

    @classmethod
    def accept(cls) -> "GateResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason, message: str) -> "GateResult":
        return cls(accepted=False, reason=reason, message=message)


@dataclass(frozen=True)
class BidContext:
    """Caller-supplied view state for try_bid / place_bid.

    Expiry is taken from the first of: expired, deadline, the ticker state
    of countdown_id, the ticker state of the product's own countdown.
    """

    status: SaleStatus = SaleStatus.UNSOLD
    expired: bool | None = None
    deadline: object = None
    countdown_id: str | None = None


@dataclass(frozen=True)
class BidRecord:
    """Server outcome of one submission. Append-only history, never edited."""

    product_key: str
    amount: Decimal
    bidder_id: str
    submitted_at: datetime
    outcome: BidOutcome
    server_message: str = ""


@dataclass(frozen=True)
class HighestBidView:
    """What a view shows for "current highest bid"."""

    product_key: str
    value: Decimal | None
    last_refreshed_at: datetime | None
    state: CacheState
    error: AppError | None = None

    @property
    def stale(self) -> bool:
        return self.state is not CacheState.FRESH or self.error is not None

    @property
    def display_value(self) -> Decimal:
        return self.value if self.value is not None else Decimal(0)


@dataclass(frozen=True)
class PlaceBidResult:
    status: PlaceBidStatus
    gate: GateResult | None = None      # None: the gate could not run
    record: BidRecord | None = None
    highest: HighestBidView | None = None
    error: AppError | None = None

    @property
    def message(self) -> str:
        if self.status is PlaceBidStatus.REJECTED_LOCALLY and self.gate is not None:
            return self.gate.message
        if self.status is PlaceBidStatus.ACCEPTED:
            return "Bid placed successfully!"
        if self.status is PlaceBidStatus.RACE_LOST:
            return "Someone else bid higher"
        if self.status is PlaceBidStatus.SERVER_REJECTED:
            server_message = self.record.server_message if self.record else ""
            return server_message or "Failed to place bid"
        return "Could not complete bid; please try again"


@dataclass(frozen=True)
class CatalogSummary:
    total: int
    active: int
    expired: int
    sold: int
