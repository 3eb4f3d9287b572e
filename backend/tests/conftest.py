"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.models import Base
from app.routers.deps import get_query_service, get_scheduler
from app.services.market_data_gateway import RawTicker
from app.services.query import MarketQueryService
from app.services.scoring import SubScoreProvider, SubScores
from app.services.snapshot_store import SnapshotStore


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


class FixedSubScoreProvider(SubScoreProvider):
    """Returns the same sub-scores for every ticker."""

    def __init__(self, technical=80.0, fundamental=80.0, sentiment=80.0, on_chain=80.0):
        self.scores = SubScores(technical, fundamental, sentiment, on_chain)

    def sub_scores(self, ticker: RawTicker) -> SubScores:
        return self.scores


def make_ticker(symbol="BTCEUR", price=62450.0, change=2.5, volume=1000000.0) -> RawTicker:
    """Helper to create a raw ticker."""
    return RawTicker(symbol=symbol, last_price=price, change_percent=change, quote_volume=volume)


@pytest.fixture(scope="function")
async def session_maker():
    """Fresh in-memory database for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(session_maker, clock):
    """Snapshot store on the test database."""
    return SnapshotStore(session_maker, clock=clock)


@pytest.fixture(scope="function")
async def client(store):
    """Create test client backed by the test store."""
    query_service = MarketQueryService(store)

    app.dependency_overrides[get_query_service] = lambda: query_service
    app.dependency_overrides[get_scheduler] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
