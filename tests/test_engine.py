"""Tests for the SignalEngine facade.

Uses duck-typed fake providers; nothing touches a network.
"""

import pytest

from signaldesk.config import Settings
from signaldesk.engine import SignalEngine
from signaldesk.models import CandleData, PriceBar
from signaldesk.providers import HistoricalSeries


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_settings(**overrides) -> Settings:
    defaults = dict(
        latest_cpi=3.0,
        japan_yield=1.0,
        adx_period=14,
        sweep_capacity=100,
        sweep_lookback_minutes=60,
        log_level="WARNING",
    )
    defaults.update(overrides)
    return Settings(**defaults)


def _rising_series(count: int = 60) -> HistoricalSeries:
    closes = [100.0 + i for i in range(count)]
    return HistoricalSeries(
        closes=closes,
        candles=[CandleData(high=c + 0.5, low=c - 0.5, close=c) for c in closes],
    )


class FakeHistoryProvider:
    def __init__(self, series: dict) -> None:
        self._series = series

    async def fetch_history(self, symbol: str):
        return self._series.get(symbol)


class FakeSnapshotProvider:
    def __init__(self, snapshot: dict) -> None:
        self._snapshot = snapshot
        self.calls = 0

    async def fetch_snapshot(self):
        self.calls += 1
        return self._snapshot


class FakeBarProvider:
    """Serves fixed bars; symbols in *failing* raise."""

    def __init__(self, bars: dict, failing: frozenset = frozenset()) -> None:
        self._bars = bars
        self._failing = failing

    async def fetch_bar(self, symbol: str):
        if symbol in self._failing:
            raise TimeoutError(f"bar feed timed out for {symbol}")
        return self._bars.get(symbol)


# ── Snapshot-driven ──────────────────────────────────────────────────────


class TestSignalEngineSnapshot:
    def test_metrics_use_settings(self):
        engine = SignalEngine(settings=_make_settings(latest_cpi=2.0, japan_yield=0.5))
        report = engine.metrics({"TNX": {"price": 4.5, "changePercent": 0.0}})
        assert report.real_yield.value == 2.5
        assert report.carry_trade.value == 4.0

    def test_default_settings(self):
        engine = SignalEngine()
        assert engine.settings == Settings()
        report = engine.metrics({"TNX": {"price": 4.5}})
        assert report.real_yield.cpi_used == 3.0

    def test_risk_tone(self):
        engine = SignalEngine()
        tone = engine.risk_tone({
            "VIX": {"price": 15.0},
            "HYG": {"changePercent": 0.3},
            "DX": {"changePercent": -0.3},
            "RTY": {"changePercent": 0.5},
            "NQ": {"changePercent": 0.1},
        })
        assert tone.tone == "RISK_ON"
        assert tone.confidence == "HIGH"


# ── Provider-driven ──────────────────────────────────────────────────────


class TestSignalEngineProviders:
    @pytest.mark.asyncio
    async def test_refresh_metrics(self):
        provider = FakeSnapshotProvider({
            "TNX": {"price": 4.5, "changePercent": 0.0},
            "VIX": {"price": 15.0},
            "HYG": {"changePercent": 0.3},
            "DX": {"changePercent": -0.3},
            "RTY": {"changePercent": 0.5},
            "NQ": {"changePercent": 0.1},
        })
        engine = SignalEngine(
            settings=_make_settings(latest_cpi=2.0), snapshot_provider=provider,
        )

        report, tone = await engine.refresh_metrics()

        assert provider.calls == 1
        assert report.real_yield.value == 2.5
        assert tone.tone == "RISK_ON"

    @pytest.mark.asyncio
    async def test_refresh_metrics_without_provider(self):
        with pytest.raises(RuntimeError, match="snapshot provider"):
            await SignalEngine().refresh_metrics()

    @pytest.mark.asyncio
    async def test_technicals(self):
        engine = SignalEngine(
            settings=_make_settings(),
            history_provider=FakeHistoryProvider({"ES=F": _rising_series()}),
        )
        results = await engine.technicals(["ES", "NQ"])
        assert results["ES"].available is True
        assert results["ES"].ema.trend == "Strong Bullish"
        assert results["NQ"].available is False

    @pytest.mark.asyncio
    async def test_technicals_without_provider(self):
        with pytest.raises(RuntimeError, match="history provider"):
            await SignalEngine().technicals(["ES"])

    @pytest.mark.asyncio
    async def test_scan_sweeps_records_into_tracker(self):
        bars = {
            "ES": PriceBar("ES", open=101, high=102, low=98, close=101.5, levels={"PDH": 100.0}),
            "NQ": PriceBar("NQ", open=201, high=202, low=200.5, close=201.5, levels={"PDH": 200.0}),
        }
        engine = SignalEngine(bar_provider=FakeBarProvider(bars, failing=frozenset({"CL"})))

        results = await engine.scan_sweeps(["ES", "NQ", "CL", "GC"])

        assert [e.type for e in results["ES"]] == ["BULLISH_SWEEP"]
        assert results["NQ"] == []
        assert results["CL"] == []
        assert results["GC"] == []
        assert engine.tracker.recent() == results["ES"]
        assert engine.tracker.was_level_swept("ES", "PDH") is not None

    @pytest.mark.asyncio
    async def test_scan_sweeps_logs_failures(self, caplog):
        engine = SignalEngine(bar_provider=FakeBarProvider({}, failing=frozenset({"CL"})))
        with caplog.at_level("WARNING", logger="signaldesk"):
            await engine.scan_sweeps(["CL"])
        assert "CL" in caplog.text

    @pytest.mark.asyncio
    async def test_scan_sweeps_without_provider(self):
        with pytest.raises(RuntimeError, match="bar provider"):
            await SignalEngine().scan_sweeps(["ES"])

    def test_tracker_capacity_from_settings(self):
        engine = SignalEngine(settings=_make_settings(sweep_capacity=2))
        for i in range(4):
            engine.tracker.add_sweep("ES", f"L{i}")
        assert len(engine.tracker.history) == 2
