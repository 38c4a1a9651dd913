"""Shared test fixtures for the market snapshot pipeline."""

from unittest.mock import AsyncMock

import pytest

from lightfeed.config import (
    AppSettings,
    PipelineSettings,
    SchedulerSettings,
    SourceSettings,
    StoreSettings,
)
from lightfeed.market_data.fetcher import SnapshotFetcher
from lightfeed.store.memory_store import InMemoryContentStore


# ---------------------------------------------------------------------------
# Sample snapshot (mimics the CryptoRank /v2/currencies response)
# ---------------------------------------------------------------------------


def make_asset(symbol: str, name: str, price: float, h24: float | None) -> dict:
    """Raw asset record as returned by the market-data API."""
    return {
        "id": symbol.lower(),
        "symbol": symbol,
        "name": name,
        "price": price,
        "percentChange": {"h24": h24},
    }


SAMPLE_SNAPSHOT = {
    "data": [
        make_asset("XRP", "XRP", 0.6, 3.5),
        make_asset("ETH", "Ethereum", 3000.0, -1.2),
        make_asset("STETH", "Lido Staked Ether", 3000.0, -1.1),
        make_asset("BTC", "Bitcoin", 50000.0, 2.0),
        make_asset("DOGE", "Dogecoin", 0.15, -4.0),
        make_asset("WBTC", "Wrapped Bitcoin", 50000.0, 2.1),
        make_asset("ADA", "Cardano", 0.45, 7.25),
    ],
    "status": {"usedCredits": 1},
}

SAMPLE_GLOBAL = {"data": {"fearGreed": 62, "altcoinIndex": 41, "totalMarketCap": 2.4e12}}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> AppSettings:
    """AppSettings with the memory backend and no retry delay."""
    return AppSettings(
        log_level="DEBUG",
        source=SourceSettings(
            url="https://api.example.test/v2/currencies",
            global_url="https://api.example.test/v2/global",
            api_key="test-api-key",  # type: ignore[arg-type]
        ),
        store=StoreSettings(backend="memory"),
        pipeline=PipelineSettings(
            capacity=16,
            previous_read_attempts=3,
            previous_read_backoff_seconds=0.0,
        ),
        scheduler=SchedulerSettings(enabled=False, cache_ttl_seconds=1800),
    )


@pytest.fixture
def store() -> InMemoryContentStore:
    """Empty in-memory content store."""
    return InMemoryContentStore()


@pytest.fixture
def mock_fetcher() -> AsyncMock:
    """Mock SnapshotFetcher returning the sample documents."""
    fetcher = AsyncMock(spec=SnapshotFetcher)
    fetcher.fetch_snapshot.return_value = SAMPLE_SNAPSHOT
    fetcher.fetch_global.return_value = SAMPLE_GLOBAL
    return fetcher


@pytest.fixture
def sample_snapshot() -> dict:
    """The sample currencies snapshot."""
    return SAMPLE_SNAPSHOT


@pytest.fixture
def sample_global() -> dict:
    """The sample global-metrics document."""
    return SAMPLE_GLOBAL
