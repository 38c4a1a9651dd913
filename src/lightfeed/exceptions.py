"""Custom exceptions for the market snapshot pipeline.

All transport and pipeline exceptions live here so the store, fetcher and
orchestrator modules can share them without importing each other.
"""


class LightfeedError(Exception):
    """Base exception for all pipeline errors."""


class ConfigurationError(LightfeedError):
    """Raised when required source or store coordinates are missing."""


class FetchError(LightfeedError):
    """Raised when the market-data source returns non-2xx or is unreachable.

    Args:
        message: Human-readable detail.
        status: HTTP status code, or None for network failures and timeouts.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class StoreError(LightfeedError):
    """Base exception for content store failures."""


class StoreReadError(StoreError):
    """Raised when a store read fails for any reason other than not-found."""


class StoreWriteError(StoreError):
    """Raised when a store write is rejected or the transport fails."""


class RevisionConflictError(StoreWriteError):
    """Raised when the expected revision no longer matches the stored one."""


class MalformedDataError(LightfeedError):
    """Raised when a fetched or stored document does not have the expected shape."""
