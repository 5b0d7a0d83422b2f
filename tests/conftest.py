"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest

from src.au_common.clock import FakeClock

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock frozen at T0; tests advance it by hand."""
    return FakeClock(T0)
