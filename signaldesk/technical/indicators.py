"""Technical indicators — EMA, Wilder smoothing, directional index, ATR. Pure functions, no I/O.

All functions fail soft: insufficient input returns ``None`` (or ``0.0``
for ``wilder_smooth``) rather than raising, so callers can turn a short
history into an "unavailable" result.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from signaldesk.models import CandleData


@dataclass(frozen=True)
class DirectionalIndex:
    """Directional movement readings, each in ``[0, 100]``."""

    adx: float
    di_plus: float
    di_minus: float


def compute_ema(series: Sequence[float], period: int) -> Optional[float]:
    """Return the latest Exponential Moving Average of *series*.

    The EMA is seeded with the SMA of the first *period* values, then
    updated for every later value with::

        ema += (price - ema) * k,  k = 2 / (period + 1)

    Returns ``None`` if fewer than *period* values are provided.
    """
    if period < 1 or len(series) < period:
        return None

    k = 2.0 / (period + 1)
    ema = sum(series[:period]) / period

    for price in series[period:]:
        ema += (price - ema) * k

    return ema


def wilder_smooth(values: Sequence[float], period: int) -> float:
    """Wilder-smooth *values* and return the smoothed **average**.

    Seed is the sum of the first *period* values; each later value
    applies ``smooth = smooth - smooth / period + value``.  The running
    sum is divided by *period* on return, so TR, +DM and -DM smoothed
    with this function share one unit and their ratios cancel.

    Returns ``0.0`` if fewer than *period* values are provided.
    """
    if period < 1 or len(values) < period:
        return 0.0

    smooth = sum(values[:period])
    for value in values[period:]:
        smooth = smooth - smooth / period + value

    return smooth / period


def _true_range(current: CandleData, previous: CandleData) -> float:
    return max(
        current.high - current.low,
        abs(current.high - previous.close),
        abs(current.low - previous.close),
    )


def compute_directional_index(
    candles: Sequence[CandleData], period: int = 14,
) -> Optional[DirectionalIndex]:
    """Calculate DI+, DI- and the directional index over *candles*.

    Algorithm:
        1. TR, +DM and -DM for every adjacent candle pair.
        2. Wilder-smooth each series over *period*.
        3. +DI = 100 × smoothed_+DM / smoothed_TR (−DI likewise).
        4. DX = 100 × |+DI − −DI| / (+DI + −DI), 0 when both are 0.

    The reported ``adx`` is this single-period DX.  It is not smoothed
    over a second window, so it reacts faster than a textbook ADX.

    Requires at least ``period + 1`` candles, else returns ``None``.
    """
    if period < 1 or len(candles) < period + 1:
        return None

    true_ranges: list[float] = []
    plus_dms: list[float] = []
    minus_dms: list[float] = []

    for i in range(1, len(candles)):
        current = candles[i]
        previous = candles[i - 1]

        up_move = current.high - previous.high
        down_move = previous.low - current.low

        true_ranges.append(_true_range(current, previous))
        plus_dms.append(up_move if (up_move > down_move and up_move > 0) else 0.0)
        minus_dms.append(down_move if (down_move > up_move and down_move > 0) else 0.0)

    smoothed_tr = wilder_smooth(true_ranges, period)
    smoothed_plus_dm = wilder_smooth(plus_dms, period)
    smoothed_minus_dm = wilder_smooth(minus_dms, period)

    if smoothed_tr <= 0:
        return DirectionalIndex(adx=0.0, di_plus=0.0, di_minus=0.0)

    di_plus = 100.0 * smoothed_plus_dm / smoothed_tr
    di_minus = 100.0 * smoothed_minus_dm / smoothed_tr

    di_sum = di_plus + di_minus
    dx = 0.0 if di_sum == 0 else 100.0 * abs(di_plus - di_minus) / di_sum

    return DirectionalIndex(adx=dx, di_plus=di_plus, di_minus=di_minus)


def compute_atr(candles: Sequence[CandleData], period: int = 14) -> Optional[float]:
    """Mean of the last *period* true ranges, for sizing ATR targets.

    True ranges come from ``_true_range``, the same helper the
    directional index uses.  Fails soft: ``None`` when *period* is below
    1 or there are not ``period + 1`` candles to pair up.
    """
    if period < 1 or len(candles) < period + 1:
        return None

    true_ranges = [
        _true_range(candles[i], candles[i - 1]) for i in range(1, len(candles))
    ]
    recent = true_ranges[-period:]
    return sum(recent) / len(recent)
