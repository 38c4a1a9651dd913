"""GitHub contents API store implementation via httpx async.

Each document is a file on a branch; the blob SHA GitHub returns is the
revision token. Writes are commits, so every put carries a commit message.
"""

import base64

import httpx

from lightfeed.config import StoreSettings
from lightfeed.exceptions import RevisionConflictError, StoreReadError, StoreWriteError
from lightfeed.logging import get_logger
from lightfeed.models import StoredDocument, utc_now_iso
from lightfeed.store.client import ContentStore

logger = get_logger(__name__)

_JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
_RAW_MEDIA_TYPE = "application/vnd.github.raw+json"


class GitHubContentStore(ContentStore):
    """Concrete content store backed by a GitHub repository branch.

    Args:
        settings: Repository coordinates, token and timeout.
        client: Optional pre-built httpx client (tests inject a MockTransport).
    """

    def __init__(
        self, settings: StoreSettings, client: httpx.AsyncClient | None = None
    ) -> None:
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    def _contents_url(self, path: str) -> str:
        base = self._settings.api_url.rstrip("/")
        return (
            f"{base}/repos/{self._settings.owner}/{self._settings.repo}"
            f"/contents/{path.lstrip('/')}"
        )

    def _headers(self, accept: str = _JSON_MEDIA_TYPE) -> dict[str, str]:
        return {
            "Authorization": f"token {self._settings.token.get_secret_value()}",
            "Accept": accept,
            "User-Agent": "lightfeed",
        }

    async def get(self, path: str) -> StoredDocument | None:
        """Read a file from the configured branch.

        Files above GitHub's 1 MB inline limit come back without content;
        those are re-requested with the raw media type.
        """
        url = self._contents_url(path)
        params = {"ref": self._settings.branch}
        try:
            response = await self._client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            raise StoreReadError(f"Failed to read {path}: {e!r}") from e

        if response.status_code == 404:
            logger.debug("store_document_absent", path=path)
            return None
        if not response.is_success:
            raise StoreReadError(
                f"Failed to read {path}: HTTP {response.status_code} {response.text}"
            )

        try:
            data = response.json()
            revision = data["sha"]
            if data.get("encoding") == "base64":
                content = base64.b64decode(data.get("content", "")).decode("utf-8")
            else:
                content = await self._get_raw(url, params, path)
        except StoreReadError:
            raise
        except (ValueError, KeyError, TypeError) as e:
            raise StoreReadError(f"Unexpected response reading {path}: {e!r}") from e

        return StoredDocument(path=path, content=content, revision=revision)

    async def _get_raw(self, url: str, params: dict, path: str) -> str:
        try:
            response = await self._client.get(
                url, params=params, headers=self._headers(_RAW_MEDIA_TYPE)
            )
        except httpx.HTTPError as e:
            raise StoreReadError(f"Failed to read {path}: {e!r}") from e
        if not response.is_success:
            raise StoreReadError(
                f"Failed to read {path}: HTTP {response.status_code} {response.text}"
            )
        return response.text

    async def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        message: str | None = None,
    ) -> str:
        """Commit a file to the configured branch and return the new blob SHA.

        GitHub answers 409 when the SHA is stale and 422 when an existing
        file is written without one; both map to RevisionConflictError.
        """
        body: dict = {
            "message": message or f"Update {path} - {utc_now_iso()}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self._settings.branch,
        }
        if expected_revision:
            body["sha"] = expected_revision

        try:
            response = await self._client.put(
                self._contents_url(path), json=body, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise StoreWriteError(f"Failed to commit {path}: {e!r}") from e

        if response.status_code == 409 or (
            response.status_code == 422 and "sha" in response.text
        ):
            logger.warning(
                "store_revision_conflict",
                path=path,
                expected_revision=expected_revision,
                status=response.status_code,
            )
            raise RevisionConflictError(
                f"Revision conflict committing {path}: {response.text}"
            )
        if not response.is_success:
            raise StoreWriteError(
                f"Failed to commit {path}: HTTP {response.status_code} {response.text}"
            )

        try:
            revision = response.json()["content"]["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreWriteError(f"Unexpected response committing {path}: {e!r}") from e

        logger.info("store_document_committed", path=path, revision=revision[:7])
        return revision

    async def close(self) -> None:
        """Close the httpx client if this store created it."""
        if self._owns_client:
            await self._client.aclose()
