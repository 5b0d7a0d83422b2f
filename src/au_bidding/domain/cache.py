"""Highest-bid cache — the client's single source of "highest bid right now".

One entry per product key:

    ABSENT → REFRESHING → FRESH → (invalidate) STALE → REFRESHING → FRESH

Concurrency rules (single event loop, overlapping awaits):
  - refresh() joins the in-flight fetch for the key instead of starting a
    second one
  - a new fetch is issued only when forced or when the key was invalidated
    after the in-flight fetch went out; the newest *issued* fetch owns the
    entry, an older response arriving late is dropped and its waiters get
    the newer result
  - a failed fetch, whatever it raised, leaves the last good value in place
    (state STALE, or ABSENT if none), so a view degrades to "possibly
    stale" rather than "unknown" and the next read fetches again
  - entries are never expired by time and never go back to ABSENT once
    they hold a value
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.au_bidding.domain.models import HighestBidView
from src.au_common.clock import Clock, SystemClock
from src.au_common.enums import CacheState
from src.au_common.errors import AppError

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[Decimal]]


@dataclass
class _Entry:
    product_key: str
    value: Decimal | None = None
    last_refreshed_at: datetime | None = None
    state: CacheState = CacheState.ABSENT
    last_error: AppError | None = None
    issued: int = 0                                # sequence of newest fetch
    inflight: "asyncio.Task[Decimal] | None" = None
    invalidated_in_flight: bool = False


def _consume_exception(task: "asyncio.Task[Decimal]") -> None:
    # Waiters may all have been cancelled; keep the loop from warning.
    if not task.cancelled():
        task.exception()


class HighestBidCache:
    def __init__(self, fetch: Fetcher, clock: Clock | None = None) -> None:
        self._fetch = fetch
        self._clock: Clock = clock or SystemClock()
        self._entries: dict[str, _Entry] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, product_key: str) -> HighestBidView | None:
        """Snapshot of the entry, or None while no value has ever landed."""
        entry = self._entries.get(product_key)
        if entry is None or entry.value is None:
            return None
        return self._view(entry)

    def view(self, product_key: str) -> HighestBidView:
        """Like get(), but always returns a view (value None when unknown)."""
        entry = self._entries.get(product_key)
        if entry is None:
            return HighestBidView(product_key, None, None, CacheState.ABSENT)
        return self._view(entry)

    def state(self, product_key: str) -> CacheState:
        entry = self._entries.get(product_key)
        return CacheState.ABSENT if entry is None else entry.state

    def needs_refresh(self, product_key: str) -> bool:
        return self.state(product_key) in (CacheState.ABSENT, CacheState.STALE)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def refresh(self, product_key: str, *, force: bool = False) -> Decimal:
        """Fetch the highest bid, coalescing with any in-flight fetch.

        Re-raises whatever the fetcher raised; the entry keeps its value.
        """
        entry = self._entries.setdefault(product_key, _Entry(product_key))
        inflight = entry.inflight
        if (
            inflight is not None
            and not inflight.done()
            and not force
            and not entry.invalidated_in_flight
        ):
            return await asyncio.shield(inflight)
        return await asyncio.shield(self._issue(entry))

    def invalidate(self, product_key: str) -> None:
        """Mark the entry out of date; the next read must refresh."""
        entry = self._entries.get(product_key)
        if entry is None:
            return
        if entry.state is CacheState.REFRESHING:
            entry.invalidated_in_flight = True
        elif entry.state is CacheState.FRESH:
            entry.state = CacheState.STALE

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _issue(self, entry: _Entry) -> "asyncio.Task[Decimal]":
        entry.issued += 1
        entry.invalidated_in_flight = False
        entry.state = CacheState.REFRESHING
        task = asyncio.ensure_future(self._fetch_and_store(entry, entry.issued))
        task.add_done_callback(_consume_exception)
        entry.inflight = task
        return task

    async def _fetch_and_store(self, entry: _Entry, seq: int) -> Decimal:
        try:
            value = await self._fetch(entry.product_key)
        except Exception as exc:
            if seq != entry.issued:
                return await self._await_newer(entry)
            entry.state = CacheState.ABSENT if entry.value is None else CacheState.STALE
            if isinstance(exc, AppError):
                entry.last_error = exc
                logger.warning(
                    "Highest-bid refresh failed for %s; keeping %s: %s",
                    entry.product_key,
                    entry.value,
                    exc.message,
                )
            else:
                logger.exception(
                    "Highest-bid fetcher crashed for %s; keeping %s",
                    entry.product_key,
                    entry.value,
                )
            raise

        if seq != entry.issued:
            logger.debug(
                "Dropping superseded highest-bid response for %s (request %d < %d)",
                entry.product_key,
                seq,
                entry.issued,
            )
            return await self._await_newer(entry)

        entry.value = value
        entry.last_refreshed_at = self._clock.now()
        entry.last_error = None
        entry.state = CacheState.STALE if entry.invalidated_in_flight else CacheState.FRESH
        return value

    async def _await_newer(self, entry: _Entry) -> Decimal:
        newer = entry.inflight
        if newer is None or newer is asyncio.current_task():
            return entry.value if entry.value is not None else Decimal(0)
        return await asyncio.shield(newer)

    @staticmethod
    def _view(entry: _Entry) -> HighestBidView:
        return HighestBidView(
            product_key=entry.product_key,
            value=entry.value,
            last_refreshed_at=entry.last_refreshed_at,
            state=entry.state,
            error=entry.last_error,
        )
