"""Tests for the Fear & Greed side entry builder."""

import json

import pytest

from lightfeed.exceptions import MalformedDataError
from lightfeed.market_data.sentiment import build_side_entry
from lightfeed.models import SIDE_ENTRY_NAME, SIDE_ENTRY_SYMBOL


class TestBuildSideEntry:
    """Sentiment entry extraction from the global document."""

    def test_builds_entry(self, sample_global: dict) -> None:
        entry = build_side_entry(sample_global)
        assert entry.to_dict() == {
            "symbol": SIDE_ENTRY_SYMBOL,
            "name": SIDE_ENTRY_NAME,
            "price": 62,
            "h24": 41,
        }

    def test_missing_altcoin_index_defaults_to_zero(self) -> None:
        entry = build_side_entry({"data": {"fearGreed": 20}})
        assert entry.price == 20
        assert entry.h24 == 0

    def test_non_finite_altcoin_index_defaults_to_zero(self) -> None:
        payload = json.loads('{"data": {"fearGreed": 55, "altcoinIndex": Infinity}}')
        assert build_side_entry(payload).h24 == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"data": {}},
            {"data": {"fearGreed": "high"}},
            {"data": {"fearGreed": True}},
            {"data": {"fearGreed": float("nan")}},
            [],
            None,
            {"data": []},
        ],
    )
    def test_malformed_global_rejected(self, payload) -> None:
        with pytest.raises(MalformedDataError):
            build_side_entry(payload)
