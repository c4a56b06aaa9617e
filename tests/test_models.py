"""Tests for the core models: symbol aliases, the price snapshot and ladders."""

import pytest

from signaldesk.ladder import Rung, above, always, classify
from signaldesk.models import (
    PriceObservation,
    PriceSnapshot,
    aliases_for,
    normalize_symbol,
    round_price,
)


class TestNormalizeSymbol:
    @pytest.mark.parametrize(
        "raw, canonical",
        [
            ("GC=F", "GC"),
            ("gc", "GC"),
            ("^VIX", "VIX"),
            ("^tnx", "TNX"),
            ("DX-Y.NYB", "DX"),
            ("BTC-USD", "BTC"),
            (" es ", "ES"),
            ("XYZ", "XYZ"),
        ],
    )
    def test_aliases(self, raw, canonical):
        assert normalize_symbol(raw) == canonical

    def test_aliases_for_canonical_first(self):
        assert aliases_for("GC=F") == ("GC", "GC=F")
        assert aliases_for("XLK") == ("XLK",)


class TestPriceSnapshot:
    def test_reads_canonical_or_alias(self):
        snapshot = PriceSnapshot({"GC=F": {"price": 2700.0, "changePercent": 0.5}})
        assert snapshot.price("GC") == 2700.0
        assert snapshot.change("GC") == 0.5
        assert snapshot.has("GC")

    def test_zero_falls_through_to_next_alias(self):
        snapshot = PriceSnapshot({"GC": {"price": 0}, "GC=F": {"price": 2650.0}})
        assert snapshot.price("GC") == 2650.0

    def test_missing_symbol_reads_zero(self):
        snapshot = PriceSnapshot({})
        assert snapshot.price("SI") == 0.0
        assert snapshot.change("SI") == 0.0
        assert not snapshot.has("SI")

    def test_loose_values_coerced(self):
        snapshot = PriceSnapshot({
            "cl": {"price": "70.5", "change_percent": None},
            "NG": {"price": "n/a"},
            "RB": None,
        })
        assert snapshot.price("CL") == 70.5
        assert snapshot.change("CL") == 0.0
        assert snapshot.price("NG") == 0.0
        assert snapshot.price("RB") == 0.0
        assert len(snapshot) == 3

    def test_typed_observations(self):
        snapshot = PriceSnapshot({"HYG": PriceObservation(79.0, -0.4)})
        assert snapshot.change("HYG") == -0.4

    def test_coerce_passes_snapshot_through(self):
        snapshot = PriceSnapshot({})
        assert PriceSnapshot.coerce(snapshot) is snapshot
        assert isinstance(PriceSnapshot.coerce(None), PriceSnapshot)


class TestRoundPrice:
    def test_sub_dollar_keeps_four_decimals(self):
        assert round_price(0.123456) == 0.1235

    def test_regular_price_two_decimals(self):
        assert round_price(2700.126) == 2700.13


class TestLadder:
    def test_first_match_wins(self):
        ladder = (
            Rung(above(10), "HIGH"),
            Rung(above(5), "MID"),
            Rung(always, "LOW"),
        )
        assert classify(20, ladder).label == "HIGH"
        assert classify(7, ladder).label == "MID"
        assert classify(5, ladder).label == "LOW"

    def test_unmatched_ladder_raises(self):
        with pytest.raises(ValueError):
            classify(1, (Rung(above(10), "HIGH"),))
