"""Sentiment-index side entry built from the global-metrics document.

The entry reuses the derived-row shape: ``price`` holds the fear/greed
value and ``h24`` the altcoin index.
"""

import math
from typing import Any

from lightfeed.exceptions import MalformedDataError
from lightfeed.models import SIDE_ENTRY_NAME, SIDE_ENTRY_SYMBOL, DerivedEntry


def _number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def build_side_entry(global_data: Any) -> DerivedEntry:
    """Extract fearGreed/altcoinIndex from ``{"data": {...}}``.

    Raises:
        MalformedDataError: If ``data.fearGreed`` is missing, not numeric or
            not finite.
    """
    data = global_data.get("data") if isinstance(global_data, dict) else None
    if not isinstance(data, dict) or not _number(data.get("fearGreed")):
        raise MalformedDataError("global document has no numeric data.fearGreed")

    altcoin_index = data.get("altcoinIndex")
    return DerivedEntry(
        symbol=SIDE_ENTRY_SYMBOL,
        name=SIDE_ENTRY_NAME,
        price=data["fearGreed"],
        h24=altcoin_index if _number(altcoin_index) else 0,
    )
