"""httpx implementation of AuctionApiProtocol.

Every call goes through _request(), which:
  - tags the request with a short request ID (X-Request-ID)
  - logs method, path, status and latency on the "au.request" logger
  - maps transport failures to ApiTimeoutError / ApiUnavailableError

Log format:
    INFO [GET] /highest-bid → 200 (23ms) req_a1b2c3d4e5f6

Non-success statuses raise ApiStatusError, except on POST /bid where
400/409/422 are the server's verdict on the bid and come back as a
rejected SubmitOutcome.
"""

import logging
import time
import uuid
from decimal import Decimal
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from config.settings import settings
from src.au_api.application.schemas import (
    AuctionListOut,
    AuctionProductsOut,
    BidIn,
    BidOut,
    HighestBidOut,
    ProductOut,
    TimeLeftOut,
)
from src.au_api.domain.models import Auction, Product, ServerBid, SubmitOutcome, TimeLeft
from src.au_common.errors import (
    ApiStatusError,
    ApiTimeoutError,
    ApiUnavailableError,
    MalformedResponseError,
)

logger = logging.getLogger("au.request")

M = TypeVar("M", bound=BaseModel)

_PRODUCT_LIST = TypeAdapter(list[ProductOut])
_BID_LIST = TypeAdapter(list[BidOut])

# Statuses on POST /bid that mean "the server looked at the bid and said no"
BID_REJECTION_STATUSES = frozenset({400, 409, 422})


def _server_reason(response: httpx.Response) -> str:
    """Best-effort human message from an error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


class AuctionApiClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        session: httpx.AsyncClient | None = None,
    ) -> None:
        self._session = session or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
            headers={
                "Content-Type": "application/json",
                "User-Agent": settings.USER_AGENT,
            },
        )

    async def close(self) -> None:
        await self._session.aclose()

    async def __aenter__(self) -> "AuctionApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public reads
    # ------------------------------------------------------------------

    async def fetch_products(self) -> list[Product]:
        response = await self._get_ok("/products")
        items = self._decode_adapter("/products", response, _PRODUCT_LIST)
        return [p.to_domain() for p in items]

    async def fetch_auctions(self) -> list[Auction]:
        path = "/admin/all_auctions"
        response = await self._get_ok(path)
        body = self._decode(path, response, AuctionListOut)
        return [a.to_domain() for a in body.auctions]

    async def fetch_auction_products(self, auction_id: str) -> list[Product]:
        path = f"/admin/auction_products/{auction_id}"
        response = await self._get_ok(path)
        body = self._decode(path, response, AuctionProductsOut)
        return [p.to_domain() for p in body.products]

    async def fetch_highest_bid(self, product_key: str) -> Decimal:
        path = "/highest-bid"
        response = await self._get_ok(path, params={"product_key": product_key})
        return self._decode(path, response, HighestBidOut).highest_bid

    async def fetch_time_left(self, product_key: str) -> TimeLeft:
        path = "/time-left"
        response = await self._get_ok(path, params={"product_key": product_key})
        return self._decode(path, response, TimeLeftOut).to_domain(product_key)

    async def fetch_bids(self, product_key: str) -> list[ServerBid]:
        path = "/bids"
        response = await self._get_ok(path, params={"product_key": product_key})
        return [b.to_domain() for b in self._decode_adapter(path, response, _BID_LIST)]

    async def fetch_user_bids(self, user_id: str) -> list[ServerBid]:
        path = "/user-bids"
        response = await self._get_ok(path, params={"user_id": user_id})
        return [b.to_domain() for b in self._decode_adapter(path, response, _BID_LIST)]

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_bid(
        self,
        product_key: str,
        amount: Decimal,
        bidder_id: str,
    ) -> SubmitOutcome:
        payload = BidIn(product_name=product_key, bid_amount=float(amount), user_id=bidder_id)
        response = await self._request("POST", "/bid", json=payload.model_dump())
        if response.is_success:
            return SubmitOutcome(accepted=True, message=_server_reason(response))
        if response.status_code in BID_REJECTION_STATUSES:
            return SubmitOutcome(accepted=False, message=_server_reason(response))
        raise ApiStatusError("/bid", response.status_code, _server_reason(response))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _get_ok(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        response = await self._request("GET", path, params=params)
        if not response.is_success:
            raise ApiStatusError(path, response.status_code, _server_reason(response))
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        start = time.perf_counter()
        try:
            response = await self._session.request(
                method,
                path,
                params=params,
                json=json,
                headers={"X-Request-ID": request_id},
            )
        except httpx.TimeoutException as exc:
            logger.warning("[%s] %s timed out %s", method, path, request_id)
            raise ApiTimeoutError(path) from exc
        except httpx.TransportError as exc:
            logger.warning("[%s] %s failed: %s %s", method, path, exc, request_id)
            raise ApiUnavailableError(path, str(exc)) from exc
        except httpx.HTTPError as exc:
            # Decoding errors, redirect loops and the like
            logger.warning("[%s] %s failed: %s %s", method, path, exc, request_id)
            raise ApiUnavailableError(path, str(exc)) from exc

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "[%s] %s → %d (%.0fms) %s",
            method,
            path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response

    @staticmethod
    def _decode(path: str, response: httpx.Response, schema: type[M]) -> M:
        try:
            return schema.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise MalformedResponseError(path, str(exc)) from exc

    @staticmethod
    def _decode_adapter(path: str, response: httpx.Response, adapter: TypeAdapter) -> Any:
        try:
            return adapter.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise MalformedResponseError(path, str(exc)) from exc
