"""Domain models for au_countdown."""

from dataclasses import dataclass

from src.au_common.enums import Urgency


@dataclass(frozen=True)
class CountdownState:
    """Display state of one deadline at one instant.

    expired is always (remaining_seconds == 0); use countdown_state() to
    build one rather than the constructor.
    """

    remaining_seconds: int
    urgency: Urgency
    expired: bool


EXPIRED_STATE = CountdownState(remaining_seconds=0, urgency=Urgency.CRITICAL, expired=True)
