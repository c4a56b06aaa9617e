"""Liquidity sweep detection at key levels.

A sweep is a bar that trades through a level intrabar but closes back on
the side it opened.  For every level in a bar, exactly one of four
disjoint patterns can fire:

- **BULLISH_SWEEP**: opens above, wicks below, closes back above.
- **BEARISH_SWEEP**: opens below, wicks above, closes back below.
- **FAILED_SUPPORT**: opens above, trades below and closes below.
- **BREAKOUT**: opens below, trades above and closes above.

Detected events are kept in a bounded, newest-first ``SweepHistory`` owned
by a ``SweepTracker``; callers create one tracker per tenant (or test).
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Literal, Optional

from signaldesk.models import PriceBar

logger = logging.getLogger("signaldesk")

SweepType = Literal["BULLISH_SWEEP", "BEARISH_SWEEP", "FAILED_SUPPORT", "BREAKOUT", "MANUAL"]
Bias = Literal["BULLISH", "BEARISH", "NEUTRAL"]

DEFAULT_CAPACITY = 100
DEFAULT_LOOKBACK_MINUTES = 60
SUMMARY_WINDOW = 50


@dataclass(frozen=True)
class SweepEvent:
    """One sweep or break of a named level."""

    symbol: str
    level_name: str
    level_price: Optional[float]
    type: SweepType
    sweep_price: Optional[float]
    close_price: Optional[float]
    reclaimed: bool
    timestamp: datetime
    interpretation: str
    action: str


@dataclass(frozen=True)
class ReclaimedLevel:
    """A level that was swept and then reclaimed."""

    symbol: str
    level: str
    price: Optional[float]
    type: SweepType
    time: datetime


@dataclass(frozen=True)
class SweepSummary:
    """Counts by type over the recent window and the bias they imply."""

    symbol: str
    total_sweeps: int
    bullish_sweeps: int
    bearish_sweeps: int
    failed_supports: int
    breakouts: int
    bias: Bias
    context: str
    timestamp: datetime
    recent_sweeps: list[SweepEvent] = field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: "datetime | str | None", default: datetime) -> datetime:
    if value is None:
        return default
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


# ── Pure detection ───────────────────────────────────────────────────────


def _event(
    bar: PriceBar,
    name: str,
    level: float,
    stamp: datetime,
    kind: SweepType,
    sweep_price: float,
    reclaimed: bool,
    interpretation: str,
    action: str,
) -> SweepEvent:
    return SweepEvent(
        symbol=bar.symbol.upper(),
        level_name=name,
        level_price=level,
        type=kind,
        sweep_price=sweep_price,
        close_price=bar.close,
        reclaimed=reclaimed,
        timestamp=stamp,
        interpretation=interpretation,
        action=action,
    )


def find_sweeps(bar: PriceBar, now: Optional[datetime] = None) -> list[SweepEvent]:
    """Classify *bar* against each of its levels without recording anything.

    Levels priced ``None`` or ``0`` are skipped.  Events are returned in
    level order.
    """
    stamp = now or _utc_now()
    events: list[SweepEvent] = []

    for name, level in (bar.levels or {}).items():
        if not level:
            continue

        if bar.low < level and bar.close > level and bar.open > level:
            events.append(_event(
                bar, name, level, stamp, "BULLISH_SWEEP", bar.low, True,
                f"{name} swept and reclaimed - Bullish liquidity grab",
                "Watch for long entry",
            ))
        elif bar.high > level and bar.close < level and bar.open < level:
            events.append(_event(
                bar, name, level, stamp, "BEARISH_SWEEP", bar.high, True,
                f"{name} swept and reclaimed - Bearish liquidity grab",
                "Watch for short entry",
            ))
        elif bar.low < level and bar.close < level and bar.open > level:
            events.append(_event(
                bar, name, level, stamp, "FAILED_SUPPORT", bar.low, False,
                f"{name} broken - Support failed",
                "Look for continuation lower",
            ))
        elif bar.high > level and bar.close > level and bar.open < level:
            events.append(_event(
                bar, name, level, stamp, "BREAKOUT", bar.high, False,
                f"{name} broken - Resistance failed",
                "Look for continuation higher",
            ))

    return events


# ── History store ────────────────────────────────────────────────────────


class SweepHistory:
    """Bounded, newest-first, thread-safe store of sweep events.

    Args:
        capacity: Maximum number of events kept; the oldest are evicted.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._events: deque[SweepEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._events.maxlen

    def append(self, events: Iterable[SweepEvent]) -> None:
        """Insert *events* at the front, each ahead of the one before it."""
        with self._lock:
            for event in events:
                self._events.appendleft(event)

    def events(self) -> list[SweepEvent]:
        """Copy of the stored events, newest first."""
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


# ── Tracker ──────────────────────────────────────────────────────────────


class SweepTracker:
    """Detects sweeps and answers queries over the recorded history.

    Args:
        history: Store to record into; a fresh one is created if omitted.
        capacity: Capacity for the fresh store (ignored with *history*).
        lookback_minutes: Default window for ``was_level_swept()``.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        history: Optional[SweepHistory] = None,
        capacity: int = DEFAULT_CAPACITY,
        lookback_minutes: int = DEFAULT_LOOKBACK_MINUTES,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._history = history if history is not None else SweepHistory(capacity)
        self._lookback_minutes = lookback_minutes
        self._clock = clock

    @property
    def history(self) -> SweepHistory:
        return self._history

    # ── Mutation ─────────────────────────────────────────────────────────

    def detect(self, bar: PriceBar) -> list[SweepEvent]:
        """Detect sweeps on *bar*, record them, and return them."""
        events = find_sweeps(bar, now=self._clock())
        if events:
            self._history.append(events)
            logger.info(
                "Recorded %d sweep(s) on %s: %s",
                len(events),
                bar.symbol.upper(),
                ", ".join(f"{e.level_name} {e.type}" for e in events),
            )
        return events

    def add_sweep(
        self,
        symbol: str,
        level_name: str,
        level_price: Optional[float] = None,
        type: SweepType = "MANUAL",
        sweep_price: Optional[float] = None,
        close_price: Optional[float] = None,
        reclaimed: bool = True,
        timestamp: "datetime | str | None" = None,
        interpretation: Optional[str] = None,
        action: Optional[str] = None,
    ) -> SweepEvent:
        """Record an externally reported sweep (webhook, manual entry)."""
        event = SweepEvent(
            symbol=symbol.upper(),
            level_name=level_name,
            level_price=level_price,
            type=type,
            sweep_price=sweep_price,
            close_price=close_price,
            reclaimed=reclaimed,
            timestamp=_as_utc(timestamp, self._clock()),
            interpretation=interpretation or f"{level_name} sweep detected",
            action=action or "Monitor for follow-through",
        )
        self._history.append([event])
        logger.info("Recorded manual sweep on %s at %s", event.symbol, level_name)
        return event

    def clear(self) -> None:
        """Empty the history; meant as an explicit start-of-day reset."""
        self._history.clear()
        logger.info("Sweep history cleared")

    # ── Queries ──────────────────────────────────────────────────────────

    def recent(self, symbol: Optional[str] = None, limit: int = 20) -> list[SweepEvent]:
        """Most recent events, newest first, optionally for one symbol."""
        events = self._history.events()
        if symbol:
            wanted = symbol.upper()
            events = [e for e in events if e.symbol == wanted]
        return events[:limit]

    def summary(self, symbol: Optional[str] = None) -> SweepSummary:
        """Count sweep types over the last 50 events and derive a bias.

        The bias is BULLISH/BEARISH when one sweep side leads the other by
        more than one.  Otherwise failed supports vs breakouts can tip a
        NEUTRAL bias toward BEARISH or BULLISH.
        """
        sweeps = self.recent(symbol, SUMMARY_WINDOW)

        bullish = sum(1 for s in sweeps if s.type == "BULLISH_SWEEP")
        bearish = sum(1 for s in sweeps if s.type == "BEARISH_SWEEP")
        failed = sum(1 for s in sweeps if s.type == "FAILED_SUPPORT")
        breakouts = sum(1 for s in sweeps if s.type == "BREAKOUT")

        bias: Bias = "NEUTRAL"
        if bullish > bearish + 1:
            bias = "BULLISH"
        elif bearish > bullish + 1:
            bias = "BEARISH"

        context = ""
        if failed > breakouts:
            context = "Support levels failing - bearish pressure"
            if bias == "NEUTRAL":
                bias = "BEARISH"
        elif breakouts > failed:
            context = "Resistance levels failing - bullish pressure"
            if bias == "NEUTRAL":
                bias = "BULLISH"

        return SweepSummary(
            symbol=symbol.upper() if symbol else "ALL",
            total_sweeps=len(sweeps),
            bullish_sweeps=bullish,
            bearish_sweeps=bearish,
            failed_supports=failed,
            breakouts=breakouts,
            bias=bias,
            context=context,
            timestamp=self._clock(),
            recent_sweeps=sweeps[:5],
        )

    def was_level_swept(
        self,
        symbol: str,
        level_name: str,
        within_minutes: Optional[int] = None,
    ) -> Optional[SweepEvent]:
        """Most recent event for *symbol* / *level_name* inside the window."""
        window = self._lookback_minutes if within_minutes is None else within_minutes
        cutoff = self._clock() - timedelta(minutes=window)
        wanted = symbol.upper()

        for event in self._history.events():
            if (
                event.symbol == wanted
                and event.level_name == level_name
                and event.timestamp > cutoff
            ):
                return event
        return None

    def reclaimed_levels(self, symbol: Optional[str] = None) -> list[ReclaimedLevel]:
        """Levels swept and reclaimed among the last 50 events."""
        return [
            ReclaimedLevel(
                symbol=s.symbol,
                level=s.level_name,
                price=s.level_price,
                type=s.type,
                time=s.timestamp,
            )
            for s in self.recent(symbol, SUMMARY_WINDOW)
            if s.reclaimed
        ]
