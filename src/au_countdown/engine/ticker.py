"""CountdownTicker — one shared timer for every tracked deadline.

Views register deadlines under their own ids with track(); every tick the
ticker recomputes all tracked states from its Clock and hands the same
snapshot map {id -> CountdownState} to every observer. The background task
runs only while something is tracked.

Several views may follow the same id. track() pins an id until it is
untracked; observe() streams attach to the id and only untrack it when the
last stream closes and nothing pinned it. Re-tracking with a new deadline
keeps every attached stream alive on the new deadline.

Guarantees:
  - per id, remaining_seconds never goes up between ticks until the id is
    untracked or its deadline replaced
  - a state is delivered only while the (id, deadline) that produced it is
    still tracked, including for observers running later in the same tick
  - an unparseable deadline reads as expired and is logged, it never raises
"""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from config.settings import settings
from src.au_common.clock import Clock, SystemClock
from src.au_common.datetime_utils import parse_deadline
from src.au_common.errors import MalformedDeadlineError
from src.au_countdown.domain.deadline import state_at
from src.au_countdown.domain.models import EXPIRED_STATE, CountdownState

logger = logging.getLogger(__name__)

Snapshot = Mapping[str, CountdownState]
Observer = Callable[[Snapshot], None]


class _Stream:
    """Latest-value mailbox behind one observe() iterator."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[CountdownState | None] = asyncio.Queue(maxsize=1)
        self.ended = False

    def offer(self, state: CountdownState | None) -> None:
        if self.ended:
            return
        if self.queue.full():
            # Slow reader: an unread state is superseded by the newer one
            self.queue.get_nowait()
        self.queue.put_nowait(state)

    def end(self) -> None:
        self.offer(None)
        self.ended = True


@dataclass
class _Tracked:
    deadline: datetime | None        # None: malformed, pinned to expired
    generation: int
    last: CountdownState = EXPIRED_STATE
    pinned: bool = False
    streams: list[_Stream] = field(default_factory=list)


class Subscription:
    """Handle for one track() call. Goes inactive on untrack or replace."""

    def __init__(self, ticker: "CountdownTicker", countdown_id: str, generation: int) -> None:
        self._ticker = ticker
        self.countdown_id = countdown_id
        self.generation = generation

    @property
    def active(self) -> bool:
        return self._ticker._is_current(self.countdown_id, self.generation)

    def state(self) -> CountdownState | None:
        if not self.active:
            return None
        return self._ticker.state(self.countdown_id)

    def cancel(self) -> None:
        """Release the pin, unless the id has since been re-tracked by someone else.

        The id stays tracked while observe() streams are still attached.
        """
        if self.active:
            self._ticker._unpin(self.countdown_id)


class CountdownTicker:
    def __init__(self, clock: Clock | None = None, interval: float | None = None) -> None:
        self._clock: Clock = clock or SystemClock()
        self._interval = settings.TICK_INTERVAL_SECONDS if interval is None else interval
        self._tracked: dict[str, _Tracked] = {}
        self._observers: dict[int, Observer] = {}
        self._ids = itertools.count(1)
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track(self, countdown_id: str, deadline: object) -> Subscription:
        """Track (or re-track) a deadline. Starts the timer if a loop is running."""
        entry = self._replace(countdown_id, self._parse(countdown_id, deadline))
        entry.pinned = True
        return Subscription(self, countdown_id, entry.generation)

    def untrack(self, countdown_id: str) -> bool:
        """Drop the id for everyone; attached streams end."""
        entry = self._tracked.pop(countdown_id, None)
        if entry is None:
            return False
        streams, entry.streams = entry.streams, []
        for stream in streams:
            stream.end()
        if not self._tracked:
            self._stop()
        return True

    def is_tracked(self, countdown_id: str) -> bool:
        return countdown_id in self._tracked

    @property
    def tracked_ids(self) -> list[str]:
        return list(self._tracked)

    def state(self, countdown_id: str) -> CountdownState | None:
        """Last computed state, or None if not tracked."""
        entry = self._tracked.get(countdown_id)
        return None if entry is None else entry.last

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register a snapshot observer; returns its unsubscribe function."""
        key = next(self._ids)
        self._observers[key] = observer

        def unsubscribe() -> None:
            self._observers.pop(key, None)

        return unsubscribe

    async def observe(self, countdown_id: str, deadline: object) -> AsyncIterator[CountdownState]:
        """Stream the states of a deadline until the id is untracked.

        Joins an existing entry when the id is already tracked with the same
        deadline, otherwise tracks (or re-tracks) it. The first item is the
        state at subscription time. A slow reader only sees the newest
        state. Closing the iterator detaches this stream; the id is
        untracked only when no other stream or track() call holds it.
        """
        stream = _Stream()
        entry = self._attach(countdown_id, deadline, stream)
        try:
            yield entry.last
            while True:
                state = await stream.queue.get()
                if state is None:
                    return
                yield state
        finally:
            self._detach(countdown_id, stream)

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def tick(self) -> dict[str, CountdownState]:
        """Recompute every tracked id and notify observers. Returns the snapshot."""
        computed: dict[str, tuple[int, CountdownState]] = {}
        for countdown_id, entry in self._tracked.items():
            entry.last = self._compute(entry)
            computed[countdown_id] = (entry.generation, entry.last)
            for stream in entry.streams:
                stream.offer(entry.last)

        for observer in list(self._observers.values()):
            snapshot = {
                cid: state
                for cid, (generation, state) in computed.items()
                if self._is_current(cid, generation)
            }
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Countdown observer failed; continuing tick")
        return {cid: state for cid, (_, state) in computed.items()}

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def aclose(self) -> None:
        """Untrack everything and wait for the timer task to finish."""
        task = self._task
        for countdown_id in list(self._tracked):
            self.untrack(countdown_id)
        self._stop()
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _ensure_running(self) -> None:
        if self.running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: caller drives tick() by hand
            return
        self._task = loop.create_task(self._run(), name="countdown-ticker")

    def _stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def _run(self) -> None:
        try:
            while self._tracked:
                await asyncio.sleep(self._interval)
                if not self._tracked:
                    break
                self.tick()
        finally:
            if self._task is asyncio.current_task():
                self._task = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _replace(self, countdown_id: str, deadline: datetime | None) -> _Tracked:
        previous = self._tracked.get(countdown_id)
        entry = _Tracked(deadline=deadline, generation=next(self._ids))
        entry.last = self._compute(entry, monotonic=False)
        if previous is not None:
            entry.pinned = previous.pinned
            entry.streams = previous.streams
        self._tracked[countdown_id] = entry
        # Any queued state was computed from the old deadline
        for stream in entry.streams:
            stream.offer(entry.last)
        self._ensure_running()
        return entry

    def _attach(self, countdown_id: str, deadline: object, stream: _Stream) -> _Tracked:
        parsed = self._parse(countdown_id, deadline)
        entry = self._tracked.get(countdown_id)
        if entry is None or entry.deadline != parsed:
            entry = self._replace(countdown_id, parsed)
        entry.streams.append(stream)
        return entry

    def _detach(self, countdown_id: str, stream: _Stream) -> None:
        entry = self._tracked.get(countdown_id)
        if entry is None or stream not in entry.streams:
            return
        entry.streams.remove(stream)
        if not entry.streams and not entry.pinned:
            self.untrack(countdown_id)

    def _unpin(self, countdown_id: str) -> None:
        entry = self._tracked.get(countdown_id)
        if entry is None:
            return
        entry.pinned = False
        if not entry.streams:
            self.untrack(countdown_id)

    def _is_current(self, countdown_id: str, generation: int) -> bool:
        entry = self._tracked.get(countdown_id)
        return entry is not None and entry.generation == generation

    def _compute(self, entry: _Tracked, *, monotonic: bool = True) -> CountdownState:
        if entry.deadline is None:
            return EXPIRED_STATE
        state = state_at(entry.deadline, self._clock.now())
        if monotonic and state.remaining_seconds > entry.last.remaining_seconds:
            # Wall clock stepped backwards; hold the previous value
            return entry.last
        return state

    @staticmethod
    def _parse(countdown_id: str, deadline: object) -> datetime | None:
        try:
            return parse_deadline(deadline)
        except MalformedDeadlineError as exc:
            logger.warning("Deadline for %s treated as expired: %s", countdown_id, exc.message)
            return None
