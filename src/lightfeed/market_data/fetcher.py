"""Snapshot fetcher for the market-data API.

Retrieves the currencies snapshot and the global-metrics document over
httpx. Every failure mode (non-2xx, network error, timeout, non-JSON body)
surfaces as FetchError so the orchestrator can fail the stage cleanly.
"""

from typing import Any

import httpx

from lightfeed.config import SourceSettings
from lightfeed.exceptions import FetchError
from lightfeed.logging import get_logger

logger = get_logger(__name__)


class SnapshotFetcher:
    """Fetches raw JSON documents from the configured market-data source.

    Args:
        settings: Source URLs, optional API key and request timeout.
        client: Optional pre-built httpx client (tests inject a MockTransport).
    """

    def __init__(
        self, settings: SourceSettings, client: httpx.AsyncClient | None = None
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self._settings.api_key.get_secret_value()
        if api_key:
            headers["x-api-key"] = api_key
        return headers

    async def fetch_snapshot(self) -> Any:
        """Fetch the current market snapshot from SOURCE_URL."""
        return await self.fetch(self._settings.url)

    async def fetch_global(self) -> Any:
        """Fetch the global-metrics document (fear/greed, altcoin index)."""
        return await self.fetch(self._settings.global_url)

    async def fetch(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """GET a URL and return its decoded JSON body.

        Args:
            url: Absolute URL to fetch.
            headers: Extra headers merged over the defaults.

        Raises:
            FetchError: On any non-2xx status, transport failure or bad JSON.
        """
        merged = {**self._headers(), **(headers or {})}
        try:
            response = await self._client.get(
                url, headers=merged, timeout=self._settings.timeout_seconds
            )
        except httpx.TimeoutException as e:
            raise FetchError(f"API request timed out: {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"API request failed: {e!r}") from e

        if not response.is_success:
            raise FetchError(
                f"API request failed: HTTP {response.status_code} {response.reason_phrase}",
                status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(
                f"API returned a non-JSON body: {e}", status=response.status_code
            ) from e

        logger.info(
            "snapshot_fetched",
            url=url,
            status=response.status_code,
            size=len(response.content),
        )
        return payload

    async def close(self) -> None:
        """Close the httpx client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
