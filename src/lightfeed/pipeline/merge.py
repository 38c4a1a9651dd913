"""Merge-preserve step for the sentiment-index side entry.

The ranking filter never produces the side entry; it is written by the
sentiment update. When the derived document is regenerated, the entry
from the previously persisted version is carried over unmodified.
"""

import asyncio
import json
from typing import Any

from lightfeed.exceptions import StoreReadError
from lightfeed.logging import get_logger
from lightfeed.models import SIDE_ENTRY_SYMBOL
from lightfeed.store.client import ContentStore

logger = get_logger(__name__)


def find_side_entry(entries: Any, symbol: str = SIDE_ENTRY_SYMBOL) -> dict | None:
    """Return the first mapping in ``entries`` whose symbol is ``symbol``."""
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if isinstance(entry, dict) and entry.get("symbol") == symbol:
            return entry
    return None


def preserve_side_entry(
    fresh: list[dict],
    previous: Any,
    symbol: str = SIDE_ENTRY_SYMBOL,
) -> list[dict]:
    """Append the previously persisted side entry to a fresh derived list.

    At most one side entry survives: any stray match already in ``fresh``
    is dropped in favour of the persisted one. With no persisted entry the
    fresh list is returned unchanged (as a new list).

    Args:
        fresh: Freshly computed derived rows.
        previous: Parsed previous derived document, or None.
        symbol: Reserved side-entry symbol.
    """
    side_entry = find_side_entry(previous, symbol)
    if side_entry is None:
        return list(fresh)

    merged = [e for e in fresh if not (isinstance(e, dict) and e.get("symbol") == symbol)]
    merged.append(side_entry)
    return merged


def replace_side_entry(
    entries: Any,
    side_entry: dict,
    symbol: str = SIDE_ENTRY_SYMBOL,
) -> list[dict]:
    """Put ``side_entry`` at the front, removing any existing one."""
    rows = entries if isinstance(entries, list) else []
    kept = [e for e in rows if not (isinstance(e, dict) and e.get("symbol") == symbol)]
    return [side_entry, *kept]


async def read_previous_derived(
    store: ContentStore,
    path: str,
    attempts: int = 3,
    backoff_seconds: float = 1.0,
) -> tuple[Any, str | None]:
    """Best-effort read of the persisted derived document.

    Transient StoreReadErrors are retried up to ``attempts`` times with a
    fixed delay, to ride out lag right after a recent write. A missing
    document returns at once. StoreReadErrors and unparseable content never
    propagate.

    Returns:
        (parsed JSON or None, revision or None). The revision is returned
        even when the content fails to parse, so the caller can overwrite.
    """
    for attempt in range(1, attempts + 1):
        try:
            document = await store.get(path)
        except StoreReadError as e:
            if attempt == attempts:
                logger.warning(
                    "previous_derived_unreadable",
                    path=path,
                    attempts=attempts,
                    error=str(e),
                )
                return None, None
            logger.debug(
                "previous_derived_retry",
                path=path,
                attempt=attempt,
                delay=backoff_seconds,
                error=str(e),
            )
            await asyncio.sleep(backoff_seconds)
            continue

        if document is None:
            logger.info("previous_derived_absent", path=path)
            return None, None

        try:
            return json.loads(document.content), document.revision
        except (ValueError, RecursionError) as e:
            logger.warning("previous_derived_unparseable", path=path, error=str(e))
            return None, document.revision

    return None, None  # Unreachable, attempts >= 1
