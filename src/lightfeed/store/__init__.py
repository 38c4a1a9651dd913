"""Content store layer -- versioned get/put with revision-token preconditions."""

from lightfeed.config import StoreSettings
from lightfeed.store.client import ContentStore
from lightfeed.store.github_store import GitHubContentStore
from lightfeed.store.memory_store import InMemoryContentStore


def create_store(settings: StoreSettings) -> ContentStore:
    """Build the store selected by STORE_BACKEND."""
    if settings.backend == "memory":
        return InMemoryContentStore()
    return GitHubContentStore(settings)


__all__ = [
    "ContentStore",
    "GitHubContentStore",
    "InMemoryContentStore",
    "create_store",
]
