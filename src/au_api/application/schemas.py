"""Pydantic schemas for the auction API wire format.

Field names follow the backend exactly (Product.time, Auction.valid_until,
bid_amount, highest_bid). Each inbound schema converts to its domain
dataclass via to_domain(); outbound payloads are built from BidIn.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.au_api.domain.models import Auction, Product, ServerBid, TimeLeft
from src.au_common.enums import SaleStatus

# ---------------------------------------------------------------------------
# Bids
# ---------------------------------------------------------------------------


class BidOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: Decimal
    user_id: str
    timestamp: str = ""
    product_name: str = ""
    status: str = ""

    def to_domain(self) -> ServerBid:
        return ServerBid(
            amount=self.amount,
            user_id=self.user_id,
            timestamp=self.timestamp,
            product_name=self.product_name,
            status=self.status,
        )


class BidIn(BaseModel):
    """POST /bid body. The backend keys bids by product_name."""

    product_name: str
    bid_amount: float
    user_id: str


# ---------------------------------------------------------------------------
# Products / auctions
# ---------------------------------------------------------------------------


class ProductOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str = ""
    status: SaleStatus = SaleStatus.UNSOLD
    time: str | None = None
    auction_id: str | None = None
    bids: list[BidOut] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _lower_status(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: object) -> object:
        return "" if v is None else v

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            description=self.description,
            deadline=self.time,
            status=self.status,
            auction_id=self.auction_id,
            bids=tuple(b.to_domain() for b in self.bids),
        )


class AuctionOut(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    valid_until: str | None = None
    product_ids: list[str] = Field(default_factory=list)

    def to_domain(self) -> Auction:
        return Auction(
            id=self.id,
            name=self.name,
            deadline=self.valid_until,
            product_ids=tuple(self.product_ids),
        )


class AuctionListOut(BaseModel):
    total_auctions: int = 0
    auctions: list[AuctionOut]


class AuctionProductsOut(BaseModel):
    auction_id: str
    total_products: int = 0
    products: list[ProductOut]


# ---------------------------------------------------------------------------
# Per-product queries
# ---------------------------------------------------------------------------


class HighestBidOut(BaseModel):
    product: str = ""
    highest_bid: Decimal = Decimal(0)

    @field_validator("highest_bid", mode="before")
    @classmethod
    def _none_is_zero(cls, v: object) -> object:
        # No bids yet → backend sends null
        return 0 if v is None else v


class TimeLeftOut(BaseModel):
    product: str = ""
    time_remaining_seconds: int

    def to_domain(self, product_key: str) -> TimeLeft:
        return TimeLeft(
            product_key=product_key,
            remaining_seconds=max(0, self.time_remaining_seconds),
        )
