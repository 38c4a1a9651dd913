"""Ranking filter: raw market snapshot -> bounded, ordered derived list.

Rules, applied in order:
  1. Take ``raw["data"]`` when present, else ``raw`` itself; anything that
     is not a list yields an empty result.
  2. Drop synthetic derivative tokens whose name contains "Wrapped",
     "Staked" or "Restaked" (case-sensitive).
  3. Project each record to DerivedEntry; a missing, non-numeric or
     non-finite 24h change becomes 0.
  4. Emit the priority symbols BTC, ETH, SOL, BNB first, in that order.
     The first occurrence of a priority symbol wins; later duplicates
     are dropped.
  5. Remaining entries follow, sorted by 24h change descending. The sort
     is stable so ties keep input order.
  6. Truncate to capacity.

The filter is pure: no I/O, no hidden state, same input -> same output.
"""

import math
from collections.abc import Sequence
from typing import Any

from lightfeed.logging import get_logger
from lightfeed.models import DerivedEntry

logger = get_logger(__name__)

PRIORITY_SYMBOLS: tuple[str, ...] = ("BTC", "ETH", "SOL", "BNB")
EXCLUDED_NAME_MARKERS: tuple[str, ...] = ("Wrapped", "Staked", "Restaked")


def extract_assets(raw: Any) -> list | None:
    """Return the asset list of a snapshot, or None when it has none."""
    assets = raw
    if isinstance(raw, dict) and raw.get("data") is not None:
        assets = raw["data"]
    if not isinstance(assets, list):
        return None
    return assets


def is_excluded(record: dict) -> bool:
    """True for wrapped/staked/restaked derivatives of an underlying asset."""
    name = record.get("name")
    if not isinstance(name, str):
        return False
    return any(marker in name for marker in EXCLUDED_NAME_MARKERS)


def _h24(record: dict) -> float:
    percent_change = record.get("percentChange")
    if not isinstance(percent_change, dict):
        return 0.0
    value = percent_change.get("h24")
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    # NaN and infinities count as missing
    return result if math.isfinite(result) else 0.0


def to_derived_entry(record: dict) -> DerivedEntry:
    """Project a raw asset record onto the derived shape."""
    return DerivedEntry(
        symbol=record.get("symbol"),
        name=record.get("name"),
        price=record.get("price"),
        h24=_h24(record),
    )


def rank_entries(
    entries: Sequence[DerivedEntry],
    priority_symbols: Sequence[str] = PRIORITY_SYMBOLS,
) -> list[DerivedEntry]:
    """Order entries: priority symbols in fixed order, then by h24 descending."""
    first_by_symbol: dict[str, DerivedEntry] = {}
    others: list[DerivedEntry] = []
    for entry in entries:
        if entry.symbol in priority_symbols:
            first_by_symbol.setdefault(entry.symbol, entry)
        else:
            others.append(entry)

    priority = [first_by_symbol[s] for s in priority_symbols if s in first_by_symbol]
    # sorted() with reverse=True keeps equal keys in input order
    others = sorted(others, key=lambda e: e.h24, reverse=True)
    return priority + others


def filter_snapshot(raw: Any, capacity: int) -> list[DerivedEntry]:
    """Build the derived list from a raw snapshot.

    Args:
        raw: Decoded snapshot JSON (list of assets or ``{"data": [...]}``).
        capacity: Maximum number of entries to return.

    Returns:
        At most ``capacity`` DerivedEntry objects. Malformed input gives [].

    Raises:
        ValueError: If capacity is negative.
    """
    if capacity < 0:
        raise ValueError("capacity must be >= 0")

    assets = extract_assets(raw)
    if assets is None:
        logger.warning("malformed_snapshot", payload_type=type(raw).__name__)
        return []

    records = [r for r in assets if isinstance(r, dict)]
    if len(records) != len(assets):
        logger.debug("non_mapping_records_skipped", skipped=len(assets) - len(records))

    entries = [to_derived_entry(r) for r in records if not is_excluded(r)]
    ranked = rank_entries(entries)[:capacity]

    logger.debug(
        "snapshot_filtered",
        input_assets=len(assets),
        kept=len(entries),
        output=len(ranked),
        capacity=capacity,
    )
    return ranked
