"""Shared data models for the market snapshot pipeline."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# Reserved symbol of the sentiment-index side entry
SIDE_ENTRY_SYMBOL = "FGI"
SIDE_ENTRY_NAME = "Fear & Greed Index"


class PipelineStage(str, Enum):
    """Stages a pipeline operation passes through, in order."""

    CONFIGURE = "configure"
    FETCH_RAW = "fetch_raw"
    READ_RAW = "read_raw"
    FETCH_GLOBAL = "fetch_global"
    PERSIST_RAW = "persist_raw"
    PERSIST_GLOBAL = "persist_global"
    FILTER = "filter"
    READ_PREVIOUS_DERIVED = "read_previous_derived"
    MERGE = "merge"
    PERSIST_DERIVED = "persist_derived"
    DONE = "done"


@dataclass
class DerivedEntry:
    """One ranked row of the derived document."""

    symbol: str
    name: str
    price: Any  # copied verbatim from the source record
    h24: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Persisted form, keys in document order."""
        return asdict(self)


@dataclass
class StoredDocument:
    """A document read from the content store with its revision token."""

    path: str
    content: str
    revision: str


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass
class Outcome:
    """Structured result of a pipeline operation.

    ``stage`` is DONE on success, otherwise the stage that failed.
    Sizes are lengths of the compact JSON serialization of each document.
    """

    success: bool
    operation: str
    stage: PipelineStage
    timestamp: str = field(default_factory=utc_now_iso)
    raw_size: int | None = None
    filtered_size: int | None = None
    entry_count: int | None = None
    preserved_side_entry: bool = False
    cached: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["stage"] = self.stage.value
        return data
