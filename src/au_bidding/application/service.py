"""AuctionEngine — composition layer handed to the presentation code.

Wires one Clock, one CountdownTicker and one HighestBidCache around an
AuctionApiProtocol implementation. Network failures never escape as
exceptions: reads come back as ApiResult / HighestBidView with the error
attached, and place_bid() reports FAILED.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Iterable
from decimal import Decimal
from typing import TypeVar

from src.au_api.domain.models import Auction, Product, ServerBid
from src.au_api.domain.repository import AuctionApiProtocol
from src.au_bidding.domain.cache import HighestBidCache
from src.au_bidding.domain.gate import evaluate_bid
from src.au_bidding.domain.models import (
    BidAttempt,
    BidContext,
    BidRecord,
    CatalogSummary,
    GateResult,
    HighestBidView,
    PlaceBidResult,
)
from src.au_common.clock import Clock, SystemClock
from src.au_common.datetime_utils import parse_deadline
from src.au_common.enums import BidOutcome, PlaceBidStatus, SaleStatus
from src.au_common.errors import (
    AppError,
    ExpiryUnknownError,
    MalformedDeadlineError,
    UnknownCountdownError,
)
from src.au_common.response import ApiResult, failure_result, success_result
from src.au_countdown.domain.deadline import state_at
from src.au_countdown.domain.models import EXPIRED_STATE, CountdownState
from src.au_countdown.engine.ticker import CountdownTicker, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


def product_countdown_id(product_id: str) -> str:
    return f"product:{product_id}"


def auction_countdown_id(auction_id: str) -> str:
    return f"auction:{auction_id}"


async def _as_result(call: Awaitable[T]) -> ApiResult[T]:
    try:
        return success_result(await call)
    except AppError as exc:
        logger.warning("API call failed: [%d] %s", exc.code, exc.message)
        return failure_result(exc)


class AuctionEngine:
    def __init__(
        self,
        api: AuctionApiProtocol,
        *,
        clock: Clock | None = None,
        ticker: CountdownTicker | None = None,
        cache: HighestBidCache | None = None,
    ) -> None:
        self._api = api
        self._clock: Clock = clock or SystemClock()
        self._ticker = ticker or CountdownTicker(self._clock)
        self._cache = cache or HighestBidCache(api.fetch_highest_bid, self._clock)
        self._history: list[BidRecord] = []

    @property
    def ticker(self) -> CountdownTicker:
        return self._ticker

    @property
    def cache(self) -> HighestBidCache:
        return self._cache

    @property
    def history(self) -> tuple[BidRecord, ...]:
        return tuple(self._history)

    async def aclose(self) -> None:
        await self._ticker.aclose()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def load_products(self) -> ApiResult[list[Product]]:
        """Fetch products and track each one's own deadline."""
        result = await _as_result(self._api.fetch_products())
        if result.ok and result.data is not None:
            for product in result.data:
                self.track_product(product)
        return result

    async def load_auctions(self) -> ApiResult[list[Auction]]:
        """Fetch auctions and track each auction-level deadline."""
        result = await _as_result(self._api.fetch_auctions())
        if result.ok and result.data is not None:
            for auction in result.data:
                self.track_auction(auction)
        return result

    async def load_auction_products(self, auction_id: str) -> ApiResult[list[Product]]:
        result = await _as_result(self._api.fetch_auction_products(auction_id))
        if result.ok and result.data is not None:
            for product in result.data:
                self.track_product(product)
        return result

    def track_product(self, product: Product) -> Subscription:
        return self._ticker.track(product_countdown_id(product.id), product.deadline)

    def track_auction(self, auction: Auction) -> Subscription:
        return self._ticker.track(auction_countdown_id(auction.id), auction.deadline)

    def catalog_summary(self, products: Iterable[Product]) -> CatalogSummary:
        """Dashboard counts; each product is judged by its own deadline."""
        total = active = expired = sold = 0
        for product in products:
            total += 1
            if product.status is SaleStatus.SOLD:
                sold += 1
            if self._deadline_state(product.deadline).expired:
                expired += 1
            else:
                active += 1
        return CatalogSummary(total=total, active=active, expired=expired, sold=sold)

    # ------------------------------------------------------------------
    # Countdown
    # ------------------------------------------------------------------

    def observe_countdown(self, countdown_id: str, deadline: object) -> AsyncIterator[CountdownState]:
        return self._ticker.observe(countdown_id, deadline)

    async def clock_skew(self, product_key: str) -> ApiResult[int]:
        """Server remaining seconds minus the local countdown for a tracked product."""
        local = self._ticker.state(product_countdown_id(product_key))
        if local is None:
            return failure_result(UnknownCountdownError(product_countdown_id(product_key)))
        try:
            server = await self._api.fetch_time_left(product_key)
        except AppError as exc:
            logger.warning("Time-left check failed for %s: %s", product_key, exc.message)
            return failure_result(exc)
        return success_result(server.remaining_seconds - local.remaining_seconds)

    # ------------------------------------------------------------------
    # Highest bid
    # ------------------------------------------------------------------

    def peek_highest(self, product_key: str) -> HighestBidView:
        """Cached view without touching the network (render path)."""
        return self._cache.view(product_key)

    async def highest_bid(self, product_key: str, *, reload: bool = False) -> HighestBidView:
        """Cached highest bid, refreshed first when absent, stale or reload=True."""
        if reload or self._cache.needs_refresh(product_key):
            try:
                await self._cache.refresh(product_key)
            except AppError as exc:
                view = self._cache.view(product_key)
                return HighestBidView(
                    product_key=product_key,
                    value=view.value,
                    last_refreshed_at=view.last_refreshed_at,
                    state=view.state,
                    error=exc,
                )
        return self._cache.view(product_key)

    # ------------------------------------------------------------------
    # Bidding
    # ------------------------------------------------------------------

    def try_bid(self, product_key: str, amount: Decimal, context: BidContext) -> GateResult:
        attempt = BidAttempt(
            product_key=product_key,
            proposed_amount=Decimal(amount),
            current_expired=self._resolve_expired(product_key, context),
            current_highest=self._cache.view(product_key).display_value,
            status=context.status,
        )
        return evaluate_bid(attempt)

    async def place_bid(
        self,
        product_key: str,
        amount: Decimal,
        bidder_id: str,
        context: BidContext,
    ) -> PlaceBidResult:
        """Gate, submit, record, then reconcile the highest bid with the server.

        When expiry cannot be decided the result is FAILED with an
        ExpiryUnknownError and no gate; nothing is sent.
        """
        amount = Decimal(amount)
        try:
            gate = self.try_bid(product_key, amount, context)
        except ExpiryUnknownError as exc:
            logger.warning("Bid on %s not attempted: %s", product_key, exc.message)
            return PlaceBidResult(status=PlaceBidStatus.FAILED, error=exc)
        if not gate.accepted:
            return PlaceBidResult(status=PlaceBidStatus.REJECTED_LOCALLY, gate=gate)

        submitted_at = self._clock.now()
        try:
            outcome = await self._api.submit_bid(product_key, amount, bidder_id)
        except AppError as exc:
            logger.warning("Bid on %s not confirmed: [%d] %s", product_key, exc.code, exc.message)
            highest = await self._reconcile(product_key)
            return PlaceBidResult(
                status=PlaceBidStatus.FAILED, gate=gate, highest=highest, error=exc
            )

        record = BidRecord(
            product_key=product_key,
            amount=amount,
            bidder_id=bidder_id,
            submitted_at=submitted_at,
            outcome=BidOutcome.ACCEPTED if outcome.accepted else BidOutcome.REJECTED,
            server_message=outcome.message,
        )
        self._history.append(record)
        highest = await self._reconcile(product_key)

        if outcome.accepted:
            status = PlaceBidStatus.ACCEPTED
        elif highest.error is None and highest.value is not None and highest.value >= amount:
            status = PlaceBidStatus.RACE_LOST
        else:
            status = PlaceBidStatus.SERVER_REJECTED
        logger.info("Bid %s on %s by %s: %s", amount, product_key, bidder_id, status.value)
        return PlaceBidResult(status=status, gate=gate, record=record, highest=highest)

    async def fetch_bids(self, product_key: str) -> ApiResult[list[ServerBid]]:
        return await _as_result(self._api.fetch_bids(product_key))

    async def fetch_user_bids(self, user_id: str) -> ApiResult[list[ServerBid]]:
        return await _as_result(self._api.fetch_user_bids(user_id))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _reconcile(self, product_key: str) -> HighestBidView:
        # Another bidder may have landed first whatever the outcome
        self._cache.invalidate(product_key)
        return await self.highest_bid(product_key)

    def _resolve_expired(self, product_key: str, context: BidContext) -> bool:
        if context.expired is not None:
            return context.expired
        if context.deadline is not None:
            return self._deadline_state(context.deadline).expired
        countdown_id = context.countdown_id or product_countdown_id(product_key)
        state = self._ticker.state(countdown_id)
        if state is None:
            raise ExpiryUnknownError(product_key)
        return state.expired

    def _deadline_state(self, deadline: object) -> CountdownState:
        try:
            parsed = parse_deadline(deadline)
        except MalformedDeadlineError as exc:
            logger.warning("Deadline treated as expired: %s", exc.message)
            return EXPIRED_STATE
        return state_at(parsed, self._clock.now())
