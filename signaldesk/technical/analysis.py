"""Technical analysis — EMA trend state, ADX strength and trending score.

Turns a raw close/candle history into qualitative labels:

- ``analyze_series()``: EMA 9/21/50 trend ladder plus directional-index
  strength and direction for one instrument.
- ``detect_trending()``: scores how "hot" an instrument is from its daily
  move, its technicals and an external catalyst flag.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from signaldesk.ladder import Rung, always, at_least, classify
from signaldesk.models import CandleData
from signaldesk.technical.indicators import compute_directional_index, compute_ema

MIN_CLOSES = 50
EMA_PERIODS = (9, 21, 50)
DEFAULT_ADX_PERIOD = 14


@dataclass(frozen=True)
class EmaState:
    """EMA levels and the trend ladder result."""

    ema9: float
    ema21: float
    ema50: float
    trend: str
    signal: float
    price_vs_ema9: str
    price_vs_ema21: str
    price_vs_ema50: str


@dataclass(frozen=True)
class AdxState:
    """Directional-index reading with strength and direction labels."""

    value: float
    di_plus: float
    di_minus: float
    strength: str
    direction: str


@dataclass(frozen=True)
class TechnicalResult:
    """Outcome of ``analyze_series()``.

    When ``available`` is ``False`` only ``reason`` is meaningful.
    """

    available: bool
    reason: str = ""
    current_price: Optional[float] = None
    ema: Optional[EmaState] = None
    adx: Optional[AdxState] = None
    summary: str = ""


@dataclass(frozen=True)
class TrendingStatus:
    """How strongly an instrument is moving right now."""

    is_trending: bool
    level: str
    score: int
    reasons: list[str] = field(default_factory=list)


# ── Ladders ──────────────────────────────────────────────────────────────
# EMA trend rungs receive (price, ema9, ema21, ema50).

EMA_TREND_LADDER: tuple[Rung, ...] = (
    Rung(lambda s: s[0] > s[1] and s[0] > s[2] and s[0] > s[3], "Strong Bullish"),
    Rung(lambda s: s[0] > s[1] and s[0] > s[2], "Bullish"),
    Rung(lambda s: s[0] < s[1] and s[0] < s[2] and s[0] < s[3], "Strong Bearish"),
    Rung(lambda s: s[0] < s[1] and s[0] < s[2], "Bearish"),
    Rung(lambda s: s[1] > s[2], "Slight Bullish"),
    Rung(lambda s: s[1] < s[2], "Slight Bearish"),
    Rung(always, "Neutral"),
)

EMA_TREND_SIGNALS: dict[str, float] = {
    "Strong Bullish": 2.0,
    "Bullish": 1.0,
    "Strong Bearish": -2.0,
    "Bearish": -1.0,
    "Slight Bullish": 0.5,
    "Slight Bearish": -0.5,
    "Neutral": 0.0,
}

TREND_STRENGTH_LADDER: tuple[Rung, ...] = (
    Rung(at_least(40), "Very Strong"),
    Rung(at_least(25), "Strong"),
    Rung(at_least(20), "Moderate"),
    Rung(always, "Weak"),
)

TRENDING_LEVEL_LADDER: tuple[Rung, ...] = (
    Rung(at_least(7), "Hot"),
    Rung(at_least(5), "Active"),
    Rung(at_least(3), "Moderate"),
    Rung(always, "Normal"),
)

TRENDING_LEVELS = frozenset({"Hot", "Active"})


def classify_ema_trend(
    price: float, ema9: float, ema21: float, ema50: float,
) -> tuple[str, float]:
    """Return ``(trend_label, signal)`` for *price* against the three EMAs.

    Signal scale: 2 strong bullish … −2 strong bearish, ±0.5 for a slight
    bias from the EMA 9/21 crossover alone, 0 neutral.
    """
    rung = classify((price, ema9, ema21, ema50), EMA_TREND_LADDER)
    return rung.label, EMA_TREND_SIGNALS[rung.label]


def trend_strength(adx: float) -> str:
    """Map an ADX value to Weak / Moderate / Strong / Very Strong."""
    return classify(adx, TREND_STRENGTH_LADDER).label


def trend_direction(di_plus: float, di_minus: float) -> str:
    """Bullish when DI+ leads, Bearish when DI− leads, else Neutral."""
    if di_plus > di_minus:
        return "Bullish"
    if di_minus > di_plus:
        return "Bearish"
    return "Neutral"


def _position(price: float, ema: float) -> str:
    return "Above" if price > ema else "Below"


def technical_summary(
    ema_trend: str, strength: str, adx: Optional[float],
) -> str:
    """One-line human-readable summary of the EMA trend and ADX.

    *adx* is the unrounded value; it is shown rounded to 2 decimals.
    """
    parts: list[str] = []

    if "Bullish" in ema_trend:
        parts.append(f"Price in uptrend ({ema_trend.lower()})")
    elif "Bearish" in ema_trend:
        parts.append(f"Price in downtrend ({ema_trend.lower()})")
    else:
        parts.append("Price consolidating near moving averages")

    if adx is not None:
        shown = round(adx, 2)
        if adx >= 25:
            parts.append(f"{strength} trend (ADX: {shown})")
        else:
            parts.append(f"Weak/No clear trend (ADX: {shown})")

    return ". ".join(parts) + "."


def analyze_series(
    closes: Sequence[float],
    candles: Sequence[CandleData],
    adx_period: int = DEFAULT_ADX_PERIOD,
) -> TechnicalResult:
    """Compute EMA trend state and directional-index strength.

    Args:
        closes: Closing prices, oldest-first.  At least 50 are required.
        candles: OHLC candles, oldest-first.  The directional index needs
            ``adx_period + 1``; with fewer, ``adx`` is ``None``.
        adx_period: Wilder period for the directional index.

    Returns:
        ``TechnicalResult``; ``available=False`` with a reason when the
        close history is too short.  EMA values are rounded to 4 decimals
        and ADX/DI values to 2 only on the returned object.
    """
    if len(closes) < MIN_CLOSES:
        return TechnicalResult(
            available=False,
            reason=(
                f"Insufficient historical data: need {MIN_CLOSES} closes, "
                f"got {len(closes)}"
            ),
        )

    price = closes[-1]
    ema9, ema21, ema50 = (compute_ema(closes, p) for p in EMA_PERIODS)
    ema_trend, ema_signal = classify_ema_trend(price, ema9, ema21, ema50)

    ema_state = EmaState(
        ema9=round(ema9, 4),
        ema21=round(ema21, 4),
        ema50=round(ema50, 4),
        trend=ema_trend,
        signal=ema_signal,
        price_vs_ema9=_position(price, ema9),
        price_vs_ema21=_position(price, ema21),
        price_vs_ema50=_position(price, ema50),
    )

    adx_state: Optional[AdxState] = None
    strength = "Weak"
    directional = compute_directional_index(candles, adx_period)
    if directional is not None:
        strength = trend_strength(directional.adx)
        adx_state = AdxState(
            value=round(directional.adx, 2),
            di_plus=round(directional.di_plus, 2),
            di_minus=round(directional.di_minus, 2),
            strength=strength,
            direction=trend_direction(directional.di_plus, directional.di_minus),
        )

    return TechnicalResult(
        available=True,
        current_price=price,
        ema=ema_state,
        adx=adx_state,
        summary=technical_summary(
            ema_trend, strength, directional.adx if directional is not None else None,
        ),
    )


def detect_trending(
    change_percent: float,
    technicals: Optional[TechnicalResult] = None,
    has_fundamental_catalyst: bool = False,
) -> TrendingStatus:
    """Score whether an instrument is trending.

    Points:
        - |change| ≥ 2.0 → 3, ≥ 1.0 → 2, ≥ 0.5 → 1
        - ADX ≥ 30 → 3, ≥ 25 → 2
        - |EMA signal| ≥ 2 → 2
        - fundamental catalyst → 2

    Score ≥ 7 is ``Hot`` and ≥ 5 ``Active`` (both trending), ≥ 3
    ``Moderate``, else ``Normal``.
    """
    score = 0
    reasons: list[str] = []

    abs_change = abs(change_percent or 0.0)
    if abs_change >= 2.0:
        score += 3
        reasons.append(f"Large move ({abs_change:.2f}%)")
    elif abs_change >= 1.0:
        score += 2
        reasons.append(f"Notable move ({abs_change:.2f}%)")
    elif abs_change >= 0.5:
        score += 1

    if technicals is not None and technicals.available:
        if technicals.adx is not None:
            if technicals.adx.value >= 30:
                score += 3
                reasons.append(f"Strong trend (ADX: {technicals.adx.value})")
            elif technicals.adx.value >= 25:
                score += 2
                reasons.append("Trending")
        if technicals.ema is not None and abs(technicals.ema.signal) >= 2:
            score += 2
            reasons.append("EMAs aligned")

    if has_fundamental_catalyst:
        score += 2
        reasons.append("Fundamental catalyst")

    rung = classify(score, TRENDING_LEVEL_LADDER)
    return TrendingStatus(
        is_trending=rung.label in TRENDING_LEVELS,
        level=rung.label,
        score=score,
        reasons=reasons,
    )
