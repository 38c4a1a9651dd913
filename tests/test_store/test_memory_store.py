"""Tests for InMemoryContentStore revision semantics."""

import asyncio

import pytest

from lightfeed.exceptions import RevisionConflictError, StoreWriteError
from lightfeed.store.memory_store import InMemoryContentStore


class TestInMemoryContentStore:
    """get/put with revision-token preconditions."""

    @pytest.mark.asyncio
    async def test_get_absent_returns_none(self, store: InMemoryContentStore) -> None:
        assert await store.get("missing.json") is None

    @pytest.mark.asyncio
    async def test_create_then_read(self, store: InMemoryContentStore) -> None:
        revision = await store.put("raw.json", "[]", message="Update raw.json")

        document = await store.get("raw.json")
        assert document is not None
        assert document.content == "[]"
        assert document.revision == revision
        assert store.commits[-1].message == "Update raw.json"

    @pytest.mark.asyncio
    async def test_overwrite_with_current_revision(self, store: InMemoryContentStore) -> None:
        first = await store.put("raw.json", "[1]")
        second = await store.put("raw.json", "[2]", expected_revision=first)

        assert second != first
        assert store.content("raw.json") == "[2]"

    @pytest.mark.asyncio
    async def test_stale_revision_conflicts(self, store: InMemoryContentStore) -> None:
        first = await store.put("raw.json", "[1]")
        await store.put("raw.json", "[2]", expected_revision=first)

        with pytest.raises(RevisionConflictError):
            await store.put("raw.json", "[3]", expected_revision=first)
        assert store.content("raw.json") == "[2]"

    @pytest.mark.asyncio
    async def test_create_over_existing_conflicts(self, store: InMemoryContentStore) -> None:
        await store.put("raw.json", "[1]")
        with pytest.raises(StoreWriteError):
            await store.put("raw.json", "[2]")

    @pytest.mark.asyncio
    async def test_revision_for_missing_document_conflicts(
        self, store: InMemoryContentStore
    ) -> None:
        with pytest.raises(RevisionConflictError):
            await store.put("new.json", "[]", expected_revision="deadbeef")

    @pytest.mark.asyncio
    async def test_concurrent_writers_one_loses(self, store: InMemoryContentStore) -> None:
        base = await store.put("light.json", "[]")

        results = await asyncio.gather(
            store.put("light.json", "[\"a\"]", expected_revision=base),
            store.put("light.json", "[\"b\"]", expected_revision=base),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, RevisionConflictError)]
        assert len(conflicts) == 1

    def test_initial_documents(self) -> None:
        store = InMemoryContentStore({"light.json": "[]"})
        assert store.content("light.json") == "[]"
        assert store.commits == []
