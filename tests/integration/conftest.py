"""Integration-test fixtures.

The engine runs against an in-memory fake of the auction backend served
through httpx.MockTransport, so the whole stack (httpx client, pydantic
schemas, cache, ticker, gate) is exercised without a network.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest

from src.au_bidding.application.service import AuctionEngine
from src.au_common.clock import FakeClock
from src.main import engine_session
from tests.integration.fake_backend import FakeBackend


@pytest.fixture
def backend(clock: FakeClock) -> FakeBackend:
    return FakeBackend(clock)


@pytest.fixture
async def engine(backend: FakeBackend, clock: FakeClock) -> AsyncGenerator[AuctionEngine, None]:
    session = httpx.AsyncClient(transport=httpx.MockTransport(backend), base_url="http://test")
    async with engine_session(session=session, clock=clock) as eng:
        yield eng
