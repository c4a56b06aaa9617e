"""Key-level math — tick distances, level ranking, pivots and targets. Pure functions, no I/O."""

import math
from dataclasses import dataclass, field
from typing import Literal, Mapping, Optional

from signaldesk.models import (
    DEFAULT_TICK_SIZE,
    DEFAULT_TICK_VALUE,
    TICK_SIZES,
    TICK_VALUES,
    normalize_symbol,
)

Direction = Literal["above", "below", "at"]

# Higher = more important.  Unlisted level names weigh 1.
LEVEL_PRIORITY: dict[str, int] = {
    "Monthly High": 6,
    "Monthly Low": 6,
    "Weekly High": 5,
    "Weekly Low": 5,
    "Monthly Pivot": 5,
    "PDH": 4,
    "PDL": 4,
    "US IB High": 4,
    "US IB Low": 4,
    "Weekly Pivot": 4,
    "Asia High": 3,
    "Asia Low": 3,
    "London High": 3,
    "London Low": 3,
    "Asia IB High": 3,
    "Asia IB Low": 3,
    "London IB High": 3,
    "London IB Low": 3,
    "Daily Pivot": 3,
    "VAH": 3,
    "VAL": 3,
    "POC": 3,
    "VWAP": 2,
}

DAILY_RANGE_EXTENSION = 0.5


@dataclass(frozen=True)
class LevelDistance:
    """One key level measured from the current price.

    ``ticks`` is always the magnitude; the sign lives in ``ticks_raw``
    and ``direction``.
    """

    name: str
    price: float
    ticks: int
    ticks_raw: int
    direction: Direction
    dollar_value: float
    priority: int
    in_daily_range: bool = True


@dataclass(frozen=True)
class NearestLevels:
    """Levels above and below price, restricted to the extended daily range."""

    symbol: str
    current_price: float
    tick_size: float
    tick_value: float
    above: list[LevelDistance] = field(default_factory=list)
    below: list[LevelDistance] = field(default_factory=list)
    nearest: Optional[LevelDistance] = None


def tick_size(symbol: str) -> float:
    """Minimum price increment for *symbol* (0.01 when unknown)."""
    return TICK_SIZES.get(normalize_symbol(symbol), DEFAULT_TICK_SIZE)


def tick_value(symbol: str) -> float:
    """Dollar value of one tick for *symbol* (10.00 when unknown)."""
    return TICK_VALUES.get(normalize_symbol(symbol), DEFAULT_TICK_VALUE)


def compute_tick_distance(symbol: str, from_price: float, to_price: float) -> int:
    """Signed number of ticks from *from_price* to *to_price*.

    Half ticks round toward positive infinity, so +0.5 reads 1 and -0.5
    reads 0.
    """
    return math.floor((to_price - from_price) / tick_size(symbol) + 0.5)


def compute_dollar_value(symbol: str, ticks: float) -> float:
    """Dollar value of *ticks* ticks of *symbol*."""
    return ticks * tick_value(symbol)


def _daily_range_bounds(levels: Mapping[str, Optional[float]]) -> Optional[tuple[float, float]]:
    pdh = levels.get("PDH")
    pdl = levels.get("PDL")
    if not pdh or not pdl:
        return None
    daily_range = pdh - pdl
    return (
        pdl - daily_range * DAILY_RANGE_EXTENSION,
        pdh + daily_range * DAILY_RANGE_EXTENSION,
    )


def rank_levels(
    symbol: str,
    current_price: float,
    levels: Mapping[str, Optional[float]],
) -> list[LevelDistance]:
    """Measure every applicable level against *current_price*.

    Levels priced ``None`` are skipped.  The result is sorted by signed
    tick distance, from furthest below to furthest above.  When both
    ``PDH`` and ``PDL`` are present, ``in_daily_range`` marks levels
    within half a daily range beyond them; otherwise every level is in
    range.
    """
    bounds = _daily_range_bounds(levels)
    ranked: list[LevelDistance] = []

    for name, price in levels.items():
        if price is None:
            continue

        ticks = compute_tick_distance(symbol, current_price, price)
        if ticks > 0:
            direction: Direction = "above"
        elif ticks < 0:
            direction = "below"
        else:
            direction = "at"

        in_range = True
        if bounds is not None:
            in_range = bounds[0] <= price <= bounds[1]

        ranked.append(LevelDistance(
            name=name,
            price=price,
            ticks=abs(ticks),
            ticks_raw=ticks,
            direction=direction,
            dollar_value=compute_dollar_value(symbol, abs(ticks)),
            priority=LEVEL_PRIORITY.get(name, 1),
            in_daily_range=in_range,
        ))

    ranked.sort(key=lambda level: level.ticks_raw)
    return ranked


def nearest_levels(
    symbol: str,
    current_price: float,
    levels: Mapping[str, Optional[float]],
    count: int = 5,
) -> NearestLevels:
    """Split ranked in-range levels into up to *count* above and below.

    ``nearest`` is the level with the smallest tick distance overall,
    first in ranked order on a tie, or ``None`` when no level applies.
    """
    ranked = rank_levels(symbol, current_price, levels)
    in_range = [lvl for lvl in ranked if lvl.in_daily_range]

    return NearestLevels(
        symbol=symbol,
        current_price=current_price,
        tick_size=tick_size(symbol),
        tick_value=tick_value(symbol),
        above=[lvl for lvl in in_range if lvl.direction == "above"][:count],
        below=[lvl for lvl in in_range if lvl.direction == "below"][:count],
        nearest=min(ranked, key=lambda lvl: lvl.ticks) if ranked else None,
    )


# ── Derived levels ───────────────────────────────────────────────────────


def calculate_pivots(high: float, low: float, close: float) -> dict[str, float]:
    """Standard floor-trader pivot with three resistance and support levels."""
    pivot = (high + low + close) / 3
    span = high - low

    return {
        "pivot": round(pivot, 2),
        "r1": round(2 * pivot - low, 2),
        "r2": round(pivot + span, 2),
        "r3": round(high + 2 * (pivot - low), 2),
        "s1": round(2 * pivot - high, 2),
        "s2": round(pivot - span, 2),
        "s3": round(low - 2 * (high - pivot), 2),
    }


FIBONACCI_RATIOS: tuple[tuple[str, float], ...] = (
    ("level_236", 0.236),
    ("level_382", 0.382),
    ("level_500", 0.5),
    ("level_618", 0.618),
    ("level_786", 0.786),
)


def calculate_fibonacci_levels(high: float, low: float) -> dict[str, float]:
    """Fibonacci retracements measured up from *low* to *high*."""
    span = high - low
    result = {"level_0": round(low, 2)}
    for name, ratio in FIBONACCI_RATIOS:
        result[name] = round(low + span * ratio, 2)
    result["level_100"] = round(high, 2)
    return result


ATR_MULTIPLES: tuple[tuple[str, float], ...] = (
    ("0_5", 0.5),
    ("1_0", 1.0),
    ("1_5", 1.5),
    ("2_0", 2.0),
)


def atr_targets(
    current_price: float,
    atr: float,
    direction: Literal["both", "up", "down"] = "both",
) -> dict:
    """Price targets at 0.5/1.0/1.5/2.0 ATR from *current_price*.

    Returns the ATR multiples themselves plus ``upside`` and/or
    ``downside`` target maps depending on *direction*.
    """
    targets: dict = {"atr": atr}
    for suffix, multiple in ATR_MULTIPLES:
        targets[f"atr_{suffix}"] = round(atr * multiple, 2)

    if direction in ("both", "up"):
        targets["upside"] = {
            f"target_{suffix}": round(current_price + atr * multiple, 2)
            for suffix, multiple in ATR_MULTIPLES
        }
    if direction in ("both", "down"):
        targets["downside"] = {
            f"target_{suffix}": round(current_price - atr * multiple, 2)
            for suffix, multiple in ATR_MULTIPLES
        }

    return targets
