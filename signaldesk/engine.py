"""SignalDesk — signal engine (orchestration facade).

Binds runtime settings to the four derivation engines and owns the sweep
tracker.  Data arrives through the provider protocols; the engine never
fetches anything on its own.
"""

import asyncio
import logging
from typing import Iterable, Optional

from signaldesk.config import Settings
from signaldesk.levels.sweeps import SweepEvent, SweepHistory, SweepTracker
from signaldesk.metrics.cross_asset import CrossAssetReport, PriceData, calculate_all_metrics
from signaldesk.metrics.risk_tone import RiskTone, derive_risk_tone
from signaldesk.providers import (
    HistoricalSeriesProvider,
    LevelBarProvider,
    PriceSnapshotProvider,
)
from signaldesk.technical.analysis import TechnicalResult
from signaldesk.technical.scanner import MAIN_SYMBOLS, analyze_instruments

logger = logging.getLogger("signaldesk")


class SignalEngine:
    """Runs the derivation engines with one set of settings.

    Args:
        settings: Runtime settings.  Defaults apply when omitted.
        history_provider: Source of daily history for ``technicals()``.
        bar_provider: Source of bars with key levels for ``scan_sweeps()``.
        snapshot_provider: Source of current quotes for ``refresh_metrics()``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        history_provider: Optional[HistoricalSeriesProvider] = None,
        bar_provider: Optional[LevelBarProvider] = None,
        snapshot_provider: Optional[PriceSnapshotProvider] = None,
    ) -> None:
        self._settings = settings or Settings()
        self._history_provider = history_provider
        self._bar_provider = bar_provider
        self._snapshot_provider = snapshot_provider
        self._tracker = SweepTracker(
            history=SweepHistory(self._settings.sweep_capacity),
            lookback_minutes=self._settings.sweep_lookback_minutes,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def tracker(self) -> SweepTracker:
        """The sweep tracker owned by this engine."""
        return self._tracker

    # ── Snapshot-driven ──────────────────────────────────────────────────

    def metrics(self, price_data: PriceData) -> CrossAssetReport:
        """Every cross-asset metric for one snapshot, with configured CPI and Japan yield."""
        return calculate_all_metrics(
            price_data,
            latest_cpi=self._settings.latest_cpi,
            japan_yield=self._settings.japan_yield,
        )

    def risk_tone(self, price_data: PriceData) -> RiskTone:
        return derive_risk_tone(price_data)

    # ── Provider-driven ──────────────────────────────────────────────────

    async def refresh_metrics(self) -> tuple[CrossAssetReport, RiskTone]:
        """Fetch a fresh snapshot and derive the metrics report and risk tone.

        Raises:
            RuntimeError: No snapshot provider was configured.
        """
        if self._snapshot_provider is None:
            raise RuntimeError("SignalEngine has no snapshot provider configured")

        snapshot = await self._snapshot_provider.fetch_snapshot()
        logger.debug("Snapshot refreshed with %d symbols", len(snapshot))
        return self.metrics(snapshot), self.risk_tone(snapshot)

    async def technicals(
        self, symbols: Iterable[str] = MAIN_SYMBOLS
    ) -> dict[str, TechnicalResult]:
        """Analyse *symbols* concurrently through the history provider.

        Raises:
            RuntimeError: No history provider was configured.
        """
        if self._history_provider is None:
            raise RuntimeError("SignalEngine has no history provider configured")
        return await analyze_instruments(
            self._history_provider, symbols, adx_period=self._settings.adx_period
        )

    async def scan_sweeps(self, symbols: Iterable[str]) -> dict[str, list[SweepEvent]]:
        """Fetch the current bar for each symbol and record any sweeps.

        A symbol whose bar cannot be fetched maps to an empty list.

        Raises:
            RuntimeError: No bar provider was configured.
        """
        if self._bar_provider is None:
            raise RuntimeError("SignalEngine has no bar provider configured")

        ordered = list(dict.fromkeys(symbols))
        events = await asyncio.gather(*(self._scan_one(s) for s in ordered))
        return dict(zip(ordered, events))

    async def _scan_one(self, symbol: str) -> list[SweepEvent]:
        try:
            bar = await self._bar_provider.fetch_bar(symbol)
        except Exception as exc:
            logger.warning("Bar fetch failed for %s: %s", symbol, exc)
            return []

        if bar is None:
            logger.warning("No bar returned for %s", symbol)
            return []

        return self._tracker.detect(bar)
