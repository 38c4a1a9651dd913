"""Abstract content store interface.

Defines the contract for versioned document stores. The orchestrator
depends only on this interface, keeping GitHub-specific details isolated
in the concrete implementation.
"""

from abc import ABC, abstractmethod

from lightfeed.models import StoredDocument


class ContentStore(ABC):
    """Abstract base class for versioned text-blob stores."""

    @abstractmethod
    async def get(self, path: str) -> StoredDocument | None:
        """Read a document with its current revision token.

        Returns None when the document does not exist.
        Raises StoreReadError on transport, auth or unexpected failures.
        """
        ...

    @abstractmethod
    async def put(
        self,
        path: str,
        content: str,
        expected_revision: str | None = None,
        message: str | None = None,
    ) -> str:
        """Create or overwrite a document and return its new revision.

        Overwriting requires ``expected_revision`` to match the current
        revision; passing None means "create". A mismatch raises
        RevisionConflictError, any other failure StoreWriteError.
        """
        ...

    async def close(self) -> None:
        """Release transport resources. No-op by default."""
        return None
