"""Collaborator interfaces and input adapters.

The derivation engines never fetch anything themselves.  Data arrives
through the providers declared here, and loosely shaped upstream
payloads are coerced into the typed models at this boundary so the
indicator math only ever sees clean, finite numbers.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np
import pandas as pd

from signaldesk.models import CandleData, PriceBar


@dataclass(frozen=True)
class HistoricalSeries:
    """Closing prices and OHLC candles for one instrument, oldest-first."""

    closes: list[float] = field(default_factory=list)
    candles: list[CandleData] = field(default_factory=list)


# ── Provider protocols ───────────────────────────────────────────────────


@runtime_checkable
class PriceSnapshotProvider(Protocol):
    """Supplies the current quote for every tracked symbol."""

    async def fetch_snapshot(self) -> Mapping[str, Any]:
        """Return ``{symbol: {"price": ..., "changePercent": ...}}``."""
        ...


@runtime_checkable
class HistoricalSeriesProvider(Protocol):
    """Supplies daily history for one instrument."""

    async def fetch_history(self, symbol: str) -> Optional[HistoricalSeries]:
        """Return the instrument's history, or ``None`` if unavailable."""
        ...


@runtime_checkable
class LevelBarProvider(Protocol):
    """Supplies the current bar and its key levels for sweep detection."""

    async def fetch_bar(self, symbol: str) -> Optional[PriceBar]:
        """Return the current bar with levels, or ``None`` if unavailable."""
        ...


# ── Adapters ─────────────────────────────────────────────────────────────


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def series_from_chart_payload(payload: Optional[Mapping[str, Any]]) -> Optional[HistoricalSeries]:
    """Build a ``HistoricalSeries`` from a chart-style JSON payload.

    Expects ``payload["chart"]["result"][0]["indicators"]["quote"][0]``
    holding ``close``/``high``/``low`` (and optionally ``open``) arrays.
    Null closes are dropped from ``closes``; a candle is kept only when
    its close, high and low are all present and non-zero.

    Returns ``None`` when the payload does not have that shape.
    """
    try:
        result = payload["chart"]["result"][0]
        quote = result["indicators"]["quote"][0]
    except (KeyError, IndexError, TypeError):
        return None

    raw_closes = quote.get("close") or []
    raw_highs = quote.get("high") or []
    raw_lows = quote.get("low") or []
    raw_opens = quote.get("open") or []

    closes = [float(c) for c in raw_closes if _is_number(c)]

    candles: list[CandleData] = []
    for i in range(min(len(raw_closes), len(raw_highs), len(raw_lows))):
        close, high, low = raw_closes[i], raw_highs[i], raw_lows[i]
        if not (_is_number(close) and _is_number(high) and _is_number(low)):
            continue
        if not (close and high and low):
            continue
        opened = raw_opens[i] if i < len(raw_opens) else None
        candles.append(CandleData(
            high=float(high),
            low=float(low),
            close=float(close),
            open=float(opened) if _is_number(opened) else None,
        ))

    return HistoricalSeries(closes=closes, candles=candles)


def series_from_frame(frame: pd.DataFrame) -> HistoricalSeries:
    """Build a ``HistoricalSeries`` from an OHLC DataFrame.

    Column names are matched case-insensitively (``Close``/``close``).
    ``high``, ``low`` and ``close`` are required; ``open`` and ``time``
    are used when present.  Rows with a non-finite high, low or close
    are dropped.  A frame missing a required column yields an empty
    series.
    """
    columns = {str(c).lower(): c for c in frame.columns}
    if not {"high", "low", "close"}.issubset(columns):
        return HistoricalSeries()

    ohlc = frame[[columns["high"], columns["low"], columns["close"]]]
    values = ohlc.to_numpy(dtype=float, na_value=np.nan)
    finite = np.isfinite(values).all(axis=1)

    opens: Optional[np.ndarray] = None
    if "open" in columns:
        opens = frame[columns["open"]].to_numpy(dtype=float, na_value=np.nan)
    times: Optional[list[str]] = None
    if "time" in columns:
        times = [str(t) for t in frame[columns["time"]]]

    candles: list[CandleData] = []
    for i in np.flatnonzero(finite):
        high, low, close = values[i]
        opened = None
        if opens is not None and np.isfinite(opens[i]):
            opened = float(opens[i])
        candles.append(CandleData(
            high=float(high),
            low=float(low),
            close=float(close),
            open=opened,
            time=times[i] if times is not None else "",
        ))

    return HistoricalSeries(closes=[c.close for c in candles], candles=candles)
