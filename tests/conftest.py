import asyncio
import random
from typing import AsyncGenerator, Dict, Optional

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from portfolio_core.api.routes import health, portfolio
from portfolio_core.domain.models import Quote
from portfolio_core.domain.services.day_change import DayChangeSimulator
from portfolio_core.domain.services.reconciler import PortfolioReconciler
from portfolio_core.infrastructure.market_data.quote_source import NamedProvider, QuoteSource
from portfolio_core.infrastructure.market_data.synthetic import SyntheticQuoteGenerator
from portfolio_core.infrastructure.repositories.position_store import PositionStore
from portfolio_core.infrastructure.storage.kv_store import InMemoryKeyValueStore
from portfolio_core.services.portfolio_service import PortfolioService


class StaticProvider:
    """Serves fixed prices; unknown symbols get None (no data)."""

    def __init__(self, prices: Dict[str, float], source: str = "stub"):
        self.prices = prices
        self.source = source
        self.calls = []

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        self.calls.append(symbol)
        price = self.prices.get(symbol)
        if price is None:
            return None
        return Quote(symbol=symbol, price=price, change=0.0, change_percent=0.0, source=self.source)


class FailingProvider:
    def __init__(self):
        self.calls = 0

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        self.calls += 1
        raise ConnectionError("provider unreachable")


class GatedProvider(StaticProvider):
    """Blocks every lookup until release is set."""

    def __init__(self, prices: Dict[str, float]):
        super().__init__(prices)
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_quote(self, symbol: str) -> Optional[Quote]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            await self.release.wait()
        finally:
            self.in_flight -= 1
        return await super().get_quote(symbol)


def make_quote_source(*providers, timeout_seconds: float = 1.0, seed: int = 7) -> QuoteSource:
    return QuoteSource(
        providers=[NamedProvider(f"p{i}", p) for i, p in enumerate(providers)],
        synthetic=SyntheticQuoteGenerator(rng=random.Random(seed)),
        timeout_seconds=timeout_seconds,
    )


def make_reconciler(*providers, seed: int = 7) -> PortfolioReconciler:
    return PortfolioReconciler(
        quote_source=make_quote_source(*providers, seed=seed),
        day_change=DayChangeSimulator(rng=random.Random(seed)),
    )


@pytest.fixture()
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def empty_store(kv_store) -> PositionStore:
    return PositionStore(kv_store, seed=())


@pytest.fixture()
def static_provider() -> StaticProvider:
    return StaticProvider({"AAA": 60.0, "BBB": 20.0, "AAPL": 150.0, "JPM": 50.0, "XYZ": 120.0})


@pytest.fixture()
async def service(empty_store, static_provider) -> AsyncGenerator[PortfolioService, None]:
    svc = PortfolioService(
        store=empty_store,
        reconciler=make_reconciler(static_provider),
        timer_enabled=False,
    )
    yield svc
    await svc.close(wait=True)


@pytest.fixture()
async def app(service) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, prefix="/api/v1", tags=["Health"])
    app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])
    app.state.portfolio_service = service
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
