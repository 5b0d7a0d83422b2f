"""Deadline model — pure functions of (deadline, now).

remaining = max(0, floor((deadline - now) / 1s))

Urgency tiers (inclusive on the lower tier):
  remaining <= 300     → CRITICAL
  remaining <= 3600    → URGENT
  remaining <= 86400   → MODERATE
  otherwise            → NORMAL
"""

from datetime import datetime, timedelta, timezone

from src.au_common.enums import Urgency
from src.au_countdown.domain.models import CountdownState

CRITICAL_SECONDS = 300
URGENT_SECONDS = 3600
MODERATE_SECONDS = 86400

_ONE_SECOND = timedelta(seconds=1)


def remaining(deadline: datetime, now: datetime) -> int:
    """Whole seconds left before deadline, never negative. Naive values are UTC."""
    return max(0, (_as_utc(deadline) - _as_utc(now)) // _ONE_SECOND)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def urgency_of(remaining_seconds: int) -> Urgency:
    if remaining_seconds <= CRITICAL_SECONDS:
        return Urgency.CRITICAL
    if remaining_seconds <= URGENT_SECONDS:
        return Urgency.URGENT
    if remaining_seconds <= MODERATE_SECONDS:
        return Urgency.MODERATE
    return Urgency.NORMAL


def is_expired(remaining_seconds: int) -> bool:
    return remaining_seconds == 0


def countdown_state(remaining_seconds: int) -> CountdownState:
    remaining_seconds = max(0, remaining_seconds)
    return CountdownState(
        remaining_seconds=remaining_seconds,
        urgency=urgency_of(remaining_seconds),
        expired=is_expired(remaining_seconds),
    )


def state_at(deadline: datetime, now: datetime) -> CountdownState:
    return countdown_state(remaining(deadline, now))
