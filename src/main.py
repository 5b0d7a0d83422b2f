"""Engine entry point for the presentation layer.

Usage:
    async with engine_session() as engine:
        products = await engine.load_products()
        ...
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx

from config.settings import settings
from src.au_api.infrastructure.client import AuctionApiClient
from src.au_bidding.application.service import AuctionEngine
from src.au_common.clock import Clock


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@asynccontextmanager
async def engine_session(
    *,
    session: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
) -> AsyncGenerator[AuctionEngine, None]:
    """Startup: build client + engine. Shutdown: stop the ticker, close HTTP."""
    client = AuctionApiClient(session=session)
    engine = AuctionEngine(client, clock=clock)
    try:
        yield engine
    finally:
        await engine.aclose()
        await client.close()
