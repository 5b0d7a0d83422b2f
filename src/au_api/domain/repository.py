# src/au_api/domain/repository.py
"""API Protocol — dependency inversion for testability.

Unit tests inject an AsyncMock that conforms to this Protocol.
The infrastructure layer provides the httpx implementation.
"""

from decimal import Decimal
from typing import Protocol

from src.au_api.domain.models import Auction, Product, ServerBid, SubmitOutcome, TimeLeft


class AuctionApiProtocol(Protocol):
    async def fetch_products(self) -> list[Product]: ...

    async def fetch_auctions(self) -> list[Auction]: ...

    async def fetch_auction_products(self, auction_id: str) -> list[Product]: ...

    async def fetch_highest_bid(self, product_key: str) -> Decimal: ...

    async def fetch_time_left(self, product_key: str) -> TimeLeft: ...

    async def fetch_bids(self, product_key: str) -> list[ServerBid]: ...

    async def fetch_user_bids(self, user_id: str) -> list[ServerBid]: ...

    async def submit_bid(
        self,
        product_key: str,
        amount: Decimal,
        bidder_id: str,
    ) -> SubmitOutcome: ...
