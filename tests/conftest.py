"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient, ASGITransport

from src.api.main import app, get_annotation_repo, get_datasource, get_repo
from src.core.entities.trade import Trade
from src.infrastructure.gateways.local_mock import LocalMockDataSource
from src.infrastructure.persistence.annotation_store import InMemoryAnnotationRepository

BASE_TIME = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)
FIXED_NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)
TEST_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


def build_trade(pnl: float, idx: int = 0, **overrides) -> Trade:
    """
    Closed trade entered `idx` hours after BASE_TIME and exited 30 minutes later.
    """
    entry_time = overrides.pop("entry_time", BASE_TIME + timedelta(hours=idx))
    fields = dict(
        id=f"t{idx}",
        symbol="SOL-PERP",
        market_type="perp",
        side="long",
        order_type="market",
        status="closed",
        entry_price=100.0,
        exit_price=100.0,
        size=1.0,
        leverage=1,
        entry_time=entry_time,
        exit_time=entry_time + timedelta(minutes=30),
        pnl=pnl,
    )
    fields.update(overrides)
    return Trade(**fields)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_trade():
    return build_trade


@pytest.fixture
def trades_from_pnls():
    def _build(pnls):
        return [build_trade(pnl, idx=i) for i, pnl in enumerate(pnls)]
    return _build


@pytest.fixture
def annotation_repo():
    return InMemoryAnnotationRepository()


@pytest.fixture
async def client(annotation_repo):
    """Async HTTP client for testing FastAPI endpoints against the mock data source."""
    app.dependency_overrides[get_datasource] = lambda: LocalMockDataSource(now=FIXED_NOW)
    app.dependency_overrides[get_annotation_repo] = lambda: annotation_repo
    app.dependency_overrides[get_repo] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
