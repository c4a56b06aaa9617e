"""Tests for the cross-asset metrics and the aggregate report."""

import json
from datetime import datetime, timezone

import pytest

from signaldesk.metrics.cross_asset import (
    DATA_UNAVAILABLE,
    UNKNOWN,
    assess_dollar_impact,
    calculate_all_metrics,
    calculate_btc_nq_correlation,
    calculate_carry_trade,
    calculate_crack_spread,
    calculate_gold_silver_ratio,
    calculate_growth_value,
    calculate_hyg_signal,
    calculate_nq_rty_spread,
    calculate_real_yield,
    interpret_vix,
)
from signaldesk.models import PriceObservation, PriceSnapshot


# ── Helpers ──────────────────────────────────────────────────────────────


def _q(price: float = 0.0, change: float = 0.0) -> dict:
    """Quote shaped like an upstream snapshot entry."""
    return {"price": price, "changePercent": change}


def _full_snapshot() -> dict:
    return {
        "NQ": _q(21000.0, 1.5),
        "RTY": _q(2300.0, 0.2),
        "XLK": _q(230.0, 1.1),
        "XLF": _q(45.0, 0.4),
        "GC=F": _q(2700.0, 0.3),
        "SI=F": _q(30.0, -0.2),
        "HYG": _q(79.0, 0.4),
        "TLT": _q(92.0, -0.2),
        "RB": _q(2.10, 0.0),
        "CL": _q(70.0, -1.0),
        "^TNX": _q(4.5, 0.5),
        "BTC-USD": _q(95000.0, 2.0),
        "^VIX": _q(15.0, -3.0),
        "DX-Y.NYB": _q(104.0, -0.3),
    }


# ── Rotation & breadth ───────────────────────────────────────────────────


class TestRotationSpread:
    def test_narrow_rally(self):
        result = calculate_nq_rty_spread({"NQ": _q(change=1.5), "RTY": _q(change=0.2)})
        assert result.value == 1.3
        assert result.interpretation == "NARROW_RALLY"
        assert result.signal == "TECH"
        assert result.nq_change == 1.5
        assert result.rty_change == 0.2

    @pytest.mark.parametrize(
        "nq, rty, label, signal",
        [
            (1.0, 0.0, "TECH_LEADING", "TECH"),
            (0.3, 0.0, "BALANCED", "NEUTRAL"),
            (0.0, 0.4, "VALUE_LEADING", "NEUTRAL"),
            (0.0, 0.6, "VALUE_LEADING", "VALUE"),
            (-1.0, 0.5, "ROTATION", "VALUE"),
        ],
    )
    def test_ladder(self, nq, rty, label, signal):
        result = calculate_nq_rty_spread({"NQ": _q(change=nq), "RTY": _q(change=rty)})
        assert result.interpretation == label
        assert result.signal == signal

    def test_missing_changes_read_as_zero(self):
        result = calculate_nq_rty_spread({})
        assert result.value == 0.0
        assert result.interpretation == "BALANCED"
        assert result.signal == "NEUTRAL"


class TestGrowthValue:
    def test_growth_dominant(self):
        result = calculate_growth_value({"XLK": _q(change=1.5), "XLF": _q(change=0.2)})
        assert result.value == 1.3
        assert result.interpretation == "GROWTH_DOMINANT"
        assert result.signal == "GROWTH"

    def test_value_signal_inside_balanced_band(self):
        result = calculate_growth_value({"XLK": _q(change=0.2), "XLF": _q(change=0.9)})
        assert result.interpretation == "BALANCED"
        assert result.signal == "VALUE"

    def test_value_dominant(self):
        result = calculate_growth_value({"XLK": _q(change=-1.0), "XLF": _q(change=0.5)})
        assert result.interpretation == "VALUE_DOMINANT"


# ── Safe haven & risk ────────────────────────────────────────────────────


class TestGoldSilverRatio:
    def test_extreme_fear(self):
        result = calculate_gold_silver_ratio({"GC": _q(2700.0), "SI": _q(30.0)})
        assert result.value == 90.0
        assert result.signal == "RISK_OFF"
        assert "EXTREME_FEAR" in result.interpretation
        assert "EXTREME_FEAR" in result.description
        assert result.gold_price == 2700.0
        assert result.silver_price == 30.0

    @pytest.mark.parametrize(
        "gold, label, signal",
        [
            (2400.0, "FEAR", "CAUTIOUS"),
            (2100.0, "NEUTRAL", "NEUTRAL"),
            (1800.0, "RISK_ON", "RISK_ON"),
            (1500.0, "EXTREME_RISK_ON", "RISK_ON"),
        ],
    )
    def test_ladder(self, gold, label, signal):
        result = calculate_gold_silver_ratio({"GC": _q(gold), "SI": _q(30.0)})
        assert result.interpretation == label
        assert result.signal == signal

    def test_boundary_is_exclusive(self):
        # 2550 / 30 = 85 exactly, which is not above 85.
        result = calculate_gold_silver_ratio({"GC": _q(2550.0), "SI": _q(30.0)})
        assert result.interpretation == "FEAR"

    def test_reads_futures_aliases(self):
        result = calculate_gold_silver_ratio({"GC=F": _q(2700.0), "SI=F": _q(30.0)})
        assert result.value == 90.0

    @pytest.mark.parametrize("data", [{}, {"GC": _q(2700.0)}, {"GC": _q(2700.0), "SI": _q(0.0)}])
    def test_missing_price_is_unavailable(self, data):
        result = calculate_gold_silver_ratio(data)
        assert result.value is None
        assert result.interpretation == DATA_UNAVAILABLE
        assert result.signal == UNKNOWN


class TestHygSignal:
    def test_risk_on_with_spread(self):
        result = calculate_hyg_signal({"HYG": _q(change=0.4), "TLT": _q(change=-0.3)})
        assert result.value == 0.4
        assert result.interpretation == "RISK_ON"
        assert result.signal == "RISK_ON"
        assert result.credit_spread == 0.7
        assert result.spread_signal == "RISK_ON"

    def test_flight_to_quality(self):
        result = calculate_hyg_signal({"HYG": _q(change=-0.1), "TLT": _q(change=0.8)})
        assert result.signal == "NEUTRAL"
        assert result.spread_signal == "FLIGHT_TO_QUALITY"

    def test_risk_off(self):
        result = calculate_hyg_signal({"HYG": _q(change=-0.5)})
        assert result.signal == "RISK_OFF"
        assert result.spread_signal == "NEUTRAL"


# ── Energy ───────────────────────────────────────────────────────────────


class TestCrackSpread:
    def test_tight(self):
        result = calculate_crack_spread({"RB": _q(2.10), "CL": _q(70.0)})
        assert result.value == 18.2
        assert result.interpretation == "TIGHT"
        assert result.signal == "CAUTIOUS"
        assert result.rb_price == 2.1
        assert result.cl_price == 70.0

    @pytest.mark.parametrize(
        "rb, label, signal",
        [
            (3.0, "WIDE", "BULLISH_RB"),
            (2.5, "NORMAL", "NEUTRAL"),
            (1.9, "COMPRESSED", "BEARISH"),
        ],
    )
    def test_ladder(self, rb, label, signal):
        result = calculate_crack_spread({"RB": _q(rb), "CL": _q(70.0)})
        assert result.interpretation == label
        assert result.signal == signal

    def test_sub_dollar_price_keeps_four_decimals(self):
        result = calculate_crack_spread({"RB": _q(0.98766), "CL": _q(20.0)})
        assert result.rb_price == 0.9877

    def test_missing_crude_is_unavailable(self):
        result = calculate_crack_spread({"RB": _q(2.10)})
        assert result.value is None
        assert result.interpretation == DATA_UNAVAILABLE
        assert result.signal == UNKNOWN


# ── Yields & carry ───────────────────────────────────────────────────────


class TestRealYield:
    @pytest.mark.parametrize(
        "tnx, label, signal",
        [
            (5.5, "HIGH_REAL_YIELD", "BEARISH_GOLD"),
            (5.0, "POSITIVE", "CAUTIOUS_GOLD"),
            (4.5, "POSITIVE", "CAUTIOUS_GOLD"),
            (4.0, "LOW_POSITIVE", "NEUTRAL"),
            (3.0, "NEGATIVE", "BULLISH_GOLD"),
            (2.5, "NEGATIVE", "BULLISH_GOLD"),
        ],
    )
    def test_ladder(self, tnx, label, signal):
        result = calculate_real_yield({"TNX": _q(tnx)})
        assert result.interpretation == label
        assert result.signal == signal
        assert result.cpi_used == 3.0

    def test_custom_cpi(self):
        result = calculate_real_yield({"^TNX": _q(4.5)}, latest_cpi=2.0)
        assert result.value == 2.5
        assert result.yield_10y == 4.5
        assert result.cpi_used == 2.0

    def test_missing_cpi_falls_back(self):
        result = calculate_real_yield({"TNX": _q(4.5)}, latest_cpi=None)
        assert result.cpi_used == 3.0
        assert result.value == 1.5

    def test_missing_yield_is_unavailable(self):
        result = calculate_real_yield({})
        assert result.value is None
        assert result.interpretation == DATA_UNAVAILABLE


class TestCarryTrade:
    @pytest.mark.parametrize(
        "tnx, label, signal, warned",
        [
            (5.0, "WIDE", "YEN_WEAK", False),
            (4.0, "MODERATE", "NEUTRAL", False),
            (3.5, "NORMAL", "NEUTRAL", False),
            (3.2, "NORMAL", "NEUTRAL", True),
            (2.8, "NARROW", "YEN_STRENGTH_RISK", True),
        ],
    )
    def test_ladder(self, tnx, label, signal, warned):
        result = calculate_carry_trade({"TNX": _q(tnx)})
        assert result.interpretation == label
        assert result.signal == signal
        assert (result.warning is not None) is warned

    def test_custom_japan_yield(self):
        result = calculate_carry_trade({"TNX": _q(4.5)}, japan_yield=0.5)
        assert result.value == 4.0
        assert result.japan_yield == 0.5
        assert result.signal == "YEN_WEAK"

    def test_missing_yield_is_unavailable(self):
        result = calculate_carry_trade({})
        assert result.value is None
        assert result.signal == UNKNOWN
        assert result.warning is None


# ── Crypto ───────────────────────────────────────────────────────────────


class TestBtcNqCorrelation:
    @pytest.mark.parametrize(
        "btc, nq, label, signal",
        [
            (1.0, 0.5, "CORRELATED", "NORMAL"),
            (3.5, 1.0, "AMPLIFIED", "HIGH_BETA"),
            (-1.0, 1.0, "DIVERGING", "DIVERGENCE"),
            (2.5, 1.0, "MIXED", "NEUTRAL"),
            (0.0, 1.0, "MIXED", "NEUTRAL"),
        ],
    )
    def test_ladder(self, btc, nq, label, signal):
        result = calculate_btc_nq_correlation({"BTC": _q(change=btc), "NQ": _q(change=nq)})
        assert result.interpretation == label
        assert result.signal == signal

    def test_value_is_divergence(self):
        result = calculate_btc_nq_correlation({"BTC-USD": _q(change=-1.0), "NQ=F": _q(change=1.0)})
        assert result.value == 2.0
        assert result.same_direction is False


# ── Volatility ───────────────────────────────────────────────────────────


class TestInterpretVix:
    @pytest.mark.parametrize(
        "vix, level, signal",
        [
            (11.0, "EXTREME_LOW", "CAUTION"),
            (12.0, "LOW", "NEUTRAL"),
            (15.0, "NORMAL", "NEUTRAL"),
            (22.0, "ELEVATED", "CAUTIOUS"),
            (28.0, "HIGH", "FEAR"),
            (30.0, "PANIC", "EXTREME_FEAR"),
        ],
    )
    def test_ladder(self, vix, level, signal):
        result = interpret_vix({"VIX": _q(vix)})
        assert result.level == level
        assert result.signal == signal
        assert result.spike_alert is None

    def test_spike_and_crush(self):
        spike = interpret_vix({"^VIX": _q(24.0, 12.0)})
        crush = interpret_vix({"^VIX": _q(14.0, -11.0)})
        assert spike.spike_alert.startswith("VIX_SPIKE")
        assert crush.spike_alert.startswith("VIX_CRUSH")

    def test_missing_vix_is_unavailable(self):
        result = interpret_vix({})
        assert result.value is None
        assert result.interpretation == DATA_UNAVAILABLE
        assert result.level == UNKNOWN


# ── Currency ─────────────────────────────────────────────────────────────


class TestDollarImpact:
    def test_strength(self):
        result = assess_dollar_impact({"DX": _q(106.0, 0.5)})
        assert result.interpretation == "DOLLAR_STRENGTH"
        assert result.signal == "STRONG"
        assert [a.symbol for a in result.affected_symbols] == ["GC", "SI", "CL", "NQ", "6E"]
        assert result.affected_symbols[0].impact == "BEARISH"

    def test_weakness(self):
        result = assess_dollar_impact({"DX-Y.NYB": _q(101.0, -0.4)})
        assert result.signal == "WEAK"
        assert [a.symbol for a in result.affected_symbols] == ["GC", "SI", "CL", "6E"]
        assert result.affected_symbols[0].impact == "BULLISH"

    def test_stable(self):
        result = assess_dollar_impact({"DX": _q(104.0, 0.1)})
        assert result.interpretation == "DOLLAR_STABLE"
        assert result.signal == "NEUTRAL"
        assert result.affected_symbols == ()


# ── Aggregate report ─────────────────────────────────────────────────────


class TestCalculateAllMetrics:
    def test_full_snapshot(self):
        report = calculate_all_metrics(_full_snapshot())
        assert report.nq_rty_spread.interpretation == "NARROW_RALLY"
        assert report.gold_silver_ratio.value == 90.0
        assert report.crack_spread.value == 18.2
        assert report.real_yield.value == 1.5
        assert report.carry_trade.value == 3.5
        assert report.vix.level == "NORMAL"
        assert report.dollar_impact.signal == "NEUTRAL"
        assert report.btc_nq_correlation.interpretation == "CORRELATED"

    def test_macro_inputs_forwarded(self):
        report = calculate_all_metrics(_full_snapshot(), latest_cpi=2.0, japan_yield=0.5)
        assert report.real_yield.cpi_used == 2.0
        assert report.carry_trade.japan_yield == 0.5

    def test_empty_snapshot_is_total(self):
        report = calculate_all_metrics({})
        assert report.gold_silver_ratio.value is None
        assert report.crack_spread.value is None
        assert report.real_yield.value is None
        assert report.carry_trade.value is None
        assert report.vix.value is None
        assert report.nq_rty_spread.value == 0.0
        assert report.overall_risk_tone.tone == "MIXED"

    def test_idempotent(self):
        now = datetime(2025, 3, 3, 14, 30, tzinfo=timezone.utc)
        data = _full_snapshot()
        first = calculate_all_metrics(data, now=now)
        second = calculate_all_metrics(data, now=now)
        assert first == second
        assert data == _full_snapshot()

    def test_accepts_typed_snapshot(self):
        snapshot = PriceSnapshot({"GC": PriceObservation(2700.0), "SI": PriceObservation(30.0)})
        report = calculate_all_metrics(snapshot)
        assert report.gold_silver_ratio.value == 90.0

    def test_as_dict_groups_and_serializes(self):
        now = datetime(2025, 3, 3, 14, 30, tzinfo=timezone.utc)
        report = calculate_all_metrics(_full_snapshot(), now=now).as_dict()

        assert report["timestamp"] == "2025-03-03T14:30:00+00:00"
        assert set(report) == {
            "timestamp", "rotation", "risk_sentiment", "energy",
            "yields", "currency", "crypto", "overall_risk_tone",
        }
        assert report["risk_sentiment"]["gold_silver_ratio"]["value"] == 90.0
        assert report["energy"]["crack_spread"]["interpretation"] == "TIGHT"
        json.dumps(report)
