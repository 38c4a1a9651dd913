"""In-memory content store for dry runs and tests.

Implements the same revision discipline as the GitHub store: overwriting
requires the current revision, and every write mints a new one. Used by
STORE_BACKEND=memory and by the test suite. No network calls.
"""

import asyncio
from dataclasses import dataclass
from uuid import uuid4

from lightfeed.exceptions import RevisionConflictError
from lightfeed.logging import get_logger
from lightfeed.models import StoredDocument
from lightfeed.store.client import ContentStore

logger = get_logger(__name__)


@dataclass
class CommitRecord:
    """One accepted write, kept for inspection."""

    path: str
    revision: str
    message: str


class InMemoryContentStore(ContentStore):
    """Dict-backed versioned store.

    Args:
        documents: Optional initial contents, path -> text.
    """

    def __init__(self, documents: dict[str, str] | None = None) -> None:
        self._documents: dict[str, tuple[str, str]] = {}
        self._lock = asyncio.Lock()
        self.commits: list[CommitRecord] = []
        for path, content in (documents or {}).items():
            self._documents[path] = (content, uuid4().hex)

    async def get(self, path: str) -> StoredDocument | None:
        async with self._lock:
            entry = self._documents.get(path)
        if entry is None:
            return None
        content, revision = entry
        return StoredDocument(path=path, content=content, revision=revision)

    async def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        message: str | None = None,
    ) -> str:
        async with self._lock:
            current = self._documents.get(path)
            current_revision = current[1] if current is not None else None
            if expected_revision != current_revision:
                logger.warning(
                    "store_revision_conflict",
                    path=path,
                    expected_revision=expected_revision,
                    current_revision=current_revision,
                )
                raise RevisionConflictError(
                    f"Revision conflict committing {path}: expected "
                    f"{expected_revision}, found {current_revision}"
                )
            revision = uuid4().hex
            self._documents[path] = (content, revision)
            self.commits.append(
                CommitRecord(path=path, revision=revision, message=message or "")
            )
        logger.debug("store_document_committed", path=path, revision=revision[:7])
        return revision

    def content(self, path: str) -> str | None:
        """Return the current text of a document, bypassing the async API."""
        entry = self._documents.get(path)
        return entry[0] if entry is not None else None
