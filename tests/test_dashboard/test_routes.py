"""Tests for the dashboard read endpoints and trigger actions.

The app is built without the production lifespan; components are placed
on app.state directly, backed by the in-memory store and a mocked fetcher.
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from lightfeed.config import AppSettings, StoreSettings
from lightfeed.dashboard.app import create_dashboard_app
from lightfeed.exceptions import FetchError, StoreReadError
from lightfeed.orchestrator import PipelineOrchestrator
from lightfeed.scheduler import PipelineScheduler, SnapshotCache
from lightfeed.store.memory_store import InMemoryContentStore


def _client(settings: AppSettings, fetcher: AsyncMock, store) -> TestClient:
    orchestrator = PipelineOrchestrator(settings, fetcher, store)
    app = create_dashboard_app()
    app.state.settings = settings
    app.state.store = store
    app.state.scheduler = PipelineScheduler(orchestrator, SnapshotCache(1800), interval_seconds=1800)
    return TestClient(app)


@pytest.fixture
def client(
    settings: AppSettings, mock_fetcher: AsyncMock, store: InMemoryContentStore
) -> TestClient:
    return _client(settings, mock_fetcher, store)


class TestReadEndpoints:
    """GET /api/*."""

    def test_light_404_before_first_run(self, client: TestClient) -> None:
        response = client.get("/api/light")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_documents_served_after_run(self, client: TestClient, sample_snapshot: dict) -> None:
        assert client.post("/actions/run").status_code == 200

        raw = client.get("/api/raw")
        light = client.get("/api/light")

        assert raw.status_code == 200
        assert raw.headers["content-type"].startswith("application/json")
        assert raw.json() == sample_snapshot
        assert [e["symbol"] for e in light.json()] == ["BTC", "ETH", "ADA", "XRP", "DOGE"]

    def test_store_read_error_is_502(
        self, settings: AppSettings, mock_fetcher: AsyncMock
    ) -> None:
        store = AsyncMock(spec=InMemoryContentStore)
        store.get.side_effect = StoreReadError("HTTP 401 Bad credentials")
        client = _client(settings, mock_fetcher, store)

        response = client.get("/api/raw")

        assert response.status_code == 502

    def test_status_reports_last_outcome(self, client: TestClient) -> None:
        before = client.get("/api/status").json()
        assert before["last_outcome"] is None
        assert before["cache_fresh"] is False

        client.post("/actions/run")
        after = client.get("/api/status").json()

        assert after["cache_fresh"] is True
        assert after["last_outcome"]["success"] is True
        assert after["last_outcome"]["stage"] == "done"

    def test_check_config_never_echoes_secrets(self, mock_fetcher: AsyncMock) -> None:
        settings = AppSettings(
            store=StoreSettings(
                backend="github",
                token="ghp_supersecretvalue",  # type: ignore[arg-type]
                owner="acme",
                repo="",
            )
        )
        client = _client(settings, mock_fetcher, InMemoryContentStore())

        body = client.get("/api/check-config").json()

        assert body["all_configured"] is False
        assert body["missing"] == ["STORE_REPO"]
        assert "ghp_supersecretvalue" not in json.dumps(body)
        token = next(v for v in body["variables"] if v["name"] == "STORE_TOKEN")
        assert token["is_set"] is True
        assert token["format"] == "classic personal access token"


class TestActions:
    """POST /actions/*."""

    def test_run_returns_outcome(self, client: TestClient) -> None:
        response = client.post("/actions/run")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["entry_count"] == 5
        assert body["cached"] is False

    def test_run_without_force_uses_cache(
        self, client: TestClient, mock_fetcher: AsyncMock
    ) -> None:
        client.post("/actions/run")
        response = client.post("/actions/run", params={"force": "false"})

        assert response.json()["cached"] is True
        assert mock_fetcher.fetch_snapshot.await_count == 1

    def test_failed_run_is_500(self, client: TestClient, mock_fetcher: AsyncMock) -> None:
        mock_fetcher.fetch_snapshot.side_effect = FetchError("HTTP 500", status=500)

        response = client.post("/actions/run")

        assert response.status_code == 500
        assert response.json()["stage"] == "fetch_raw"

    def test_regenerate_after_run(self, client: TestClient) -> None:
        client.post("/actions/run")
        response = client.post("/actions/regenerate")

        assert response.status_code == 200
        assert response.json()["operation"] == "regenerate"

    def test_sentiment_then_light_contains_side_entry(self, client: TestClient) -> None:
        response = client.post("/actions/sentiment")

        assert response.status_code == 200
        assert client.get("/api/light").json()[0]["symbol"] == "FGI"
        assert client.get("/api/global").status_code == 200
