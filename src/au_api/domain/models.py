"""Domain models for au_api — pure dataclasses, no business logic.

Deadlines are kept exactly as the API sent them; parsing happens in the
countdown layer so one bad timestamp never fails a whole catalog fetch.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from src.au_common.enums import SaleStatus


@dataclass(frozen=True)
class ServerBid:
    """A bid as reported back by the API (history endpoints)."""

    amount: Decimal
    user_id: str
    timestamp: str
    product_name: str
    status: str


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    deadline: str | None             # Product.time on the wire
    status: SaleStatus
    auction_id: str | None = None
    bids: tuple[ServerBid, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Auction:
    id: str
    name: str
    deadline: str | None             # Auction.valid_until on the wire
    product_ids: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SubmitOutcome:
    """Server verdict on a bid submission."""

    accepted: bool
    message: str = ""


@dataclass(frozen=True)
class TimeLeft:
    product_key: str
    remaining_seconds: int
