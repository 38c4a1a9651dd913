"""Market data layer -- snapshot fetching, ranking filter and sentiment entry."""

from lightfeed.market_data.fetcher import SnapshotFetcher
from lightfeed.market_data.ranking import filter_snapshot
from lightfeed.market_data.sentiment import build_side_entry

__all__ = ["SnapshotFetcher", "build_side_entry", "filter_snapshot"]
