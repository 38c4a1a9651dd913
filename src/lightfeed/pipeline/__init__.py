"""Pipeline steps shared by the orchestrator's operations."""

from lightfeed.pipeline.merge import (
    find_side_entry,
    preserve_side_entry,
    read_previous_derived,
    replace_side_entry,
)

__all__ = [
    "find_side_entry",
    "preserve_side_entry",
    "read_previous_derived",
    "replace_side_entry",
]
