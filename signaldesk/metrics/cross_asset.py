"""Cross-asset metrics — ratios and spreads between related instruments.

Each metric reads a ``PriceSnapshot``, computes one quantity, and maps it
to an interpretation and signal through a threshold ladder.  Raw inputs
are echoed back on the result, rounded only here at the output boundary.

A metric that needs a price level returns ``value=None`` with
``DATA_UNAVAILABLE`` / ``UNKNOWN`` when that price is missing (zero).
Change-percent metrics treat a missing change as ``0.0``.
"""

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from signaldesk.ladder import Rung, above, always, below, classify
from signaldesk.metrics.risk_tone import RiskTone, derive_risk_tone
from signaldesk.models import PriceSnapshot, round_price

logger = logging.getLogger("signaldesk")

DEFAULT_LATEST_CPI = 3.0
DEFAULT_JAPAN_YIELD = 1.0
GALLONS_PER_BARREL = 42

DATA_UNAVAILABLE = "DATA_UNAVAILABLE"
UNKNOWN = "UNKNOWN"

PriceData = PriceSnapshot | Mapping[str, Any] | None


# ── Result types ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MetricResult:
    """Common shape of every metric: a value plus its ladder labels."""

    value: Optional[float]
    interpretation: str
    signal: str
    description: str = ""


@dataclass(frozen=True)
class RotationSpread(MetricResult):
    nq_change: float = 0.0
    rty_change: float = 0.0


@dataclass(frozen=True)
class GrowthValue(MetricResult):
    xlk_change: float = 0.0
    xlf_change: float = 0.0


@dataclass(frozen=True)
class GoldSilverRatio(MetricResult):
    gold_price: Optional[float] = None
    silver_price: Optional[float] = None


@dataclass(frozen=True)
class HygSignal(MetricResult):
    """``value`` is the HYG change; ``credit_spread`` is HYG − TLT."""

    hyg_change: float = 0.0
    tlt_change: float = 0.0
    credit_spread: float = 0.0
    spread_signal: str = "NEUTRAL"
    spread_description: str = "NEUTRAL"


@dataclass(frozen=True)
class CrackSpread(MetricResult):
    rb_price: Optional[float] = None
    cl_price: Optional[float] = None


@dataclass(frozen=True)
class RealYield(MetricResult):
    yield_10y: Optional[float] = None
    cpi_used: float = DEFAULT_LATEST_CPI


@dataclass(frozen=True)
class CarryTrade(MetricResult):
    us_yield: Optional[float] = None
    japan_yield: float = DEFAULT_JAPAN_YIELD
    warning: Optional[str] = None


@dataclass(frozen=True)
class BtcNqCorrelation(MetricResult):
    """``value`` is the divergence ``|BTC% − NQ%|``."""

    btc_change: float = 0.0
    nq_change: float = 0.0
    same_direction: bool = False


@dataclass(frozen=True)
class VixReading(MetricResult):
    change: float = 0.0
    level: str = UNKNOWN
    spike_alert: Optional[str] = None


@dataclass(frozen=True)
class AffectedSymbol:
    """Expected directional impact of a dollar move on one instrument."""

    symbol: str
    impact: str
    reason: str


@dataclass(frozen=True)
class DollarImpact(MetricResult):
    """``value`` is the DXY change."""

    price: float = 0.0
    affected_symbols: tuple[AffectedSymbol, ...] = field(default_factory=tuple)


# ── Ladders ──────────────────────────────────────────────────────────────

ROTATION_LADDER: tuple[Rung, ...] = (
    Rung(above(1.0), "NARROW_RALLY", description="NARROW_RALLY - Tech leading, breadth weak, fragile"),
    Rung(below(-1.0), "ROTATION", description="ROTATION - Money moving to small caps, breadth expanding"),
    Rung(above(0.3), "TECH_LEADING", description="TECH_LEADING - Growth favored"),
    Rung(below(-0.3), "VALUE_LEADING", description="VALUE_LEADING - Breadth expanding"),
    Rung(always, "BALANCED", description="BALANCED - No clear rotation"),
)

ROTATION_SIGNAL_LADDER: tuple[Rung, ...] = (
    Rung(above(0.5), "TECH", "TECH"),
    Rung(below(-0.5), "VALUE", "VALUE"),
    Rung(always, "NEUTRAL", "NEUTRAL"),
)

GROWTH_VALUE_LADDER: tuple[Rung, ...] = (
    Rung(above(1.0), "GROWTH_DOMINANT", description="GROWTH_DOMINANT - Tech outperforming banks"),
    Rung(below(-1.0), "VALUE_DOMINANT", description="VALUE_DOMINANT - Financials leading, rate play"),
    Rung(always, "BALANCED", description="BALANCED"),
)

GROWTH_VALUE_SIGNAL_LADDER: tuple[Rung, ...] = (
    Rung(above(0.5), "GROWTH", "GROWTH"),
    Rung(below(-0.5), "VALUE", "VALUE"),
    Rung(always, "NEUTRAL", "NEUTRAL"),
)

GOLD_SILVER_LADDER: tuple[Rung, ...] = (
    Rung(above(85), "EXTREME_FEAR", "RISK_OFF", "EXTREME_FEAR - Silver very cheap, recession pricing"),
    Rung(above(75), "FEAR", "CAUTIOUS", "FEAR - Risk-off environment, gold preferred"),
    Rung(above(65), "NEUTRAL", "NEUTRAL", "NEUTRAL - Normal range"),
    Rung(above(55), "RISK_ON", "RISK_ON", "RISK_ON - Silver gaining on industrial demand"),
    Rung(always, "EXTREME_RISK_ON", "RISK_ON", "EXTREME_RISK_ON - Silver outperforming, growth boom"),
)

HYG_LADDER: tuple[Rung, ...] = (
    Rung(above(0.3), "RISK_ON", "RISK_ON", "RISK_ON - High yield bonds bid, credit confidence"),
    Rung(below(-0.3), "RISK_OFF", "RISK_OFF", "RISK_OFF - High yield selling, credit stress"),
    Rung(always, "NEUTRAL", "NEUTRAL", "NEUTRAL - No strong credit signal"),
)

CREDIT_SPREAD_LADDER: tuple[Rung, ...] = (
    Rung(above(0.5), "RISK_ON", description="RISK_ON - HYG outperforming treasuries"),
    Rung(below(-0.5), "FLIGHT_TO_QUALITY", description="FLIGHT_TO_QUALITY - Treasuries bid over junk"),
    Rung(always, "NEUTRAL", description="NEUTRAL"),
)

CRACK_SPREAD_LADDER: tuple[Rung, ...] = (
    Rung(above(35), "WIDE", "BULLISH_RB", "WIDE - Strong refinery margins, bullish RB vs CL"),
    Rung(above(25), "NORMAL", "NEUTRAL", "NORMAL - Healthy refinery economics"),
    Rung(above(15), "TIGHT", "CAUTIOUS", "TIGHT - Weak refinery margins, demand concern"),
    Rung(always, "COMPRESSED", "BEARISH", "COMPRESSED - Significant demand weakness"),
)

REAL_YIELD_LADDER: tuple[Rung, ...] = (
    Rung(above(2.0), "HIGH_REAL_YIELD", "BEARISH_GOLD", "HIGH_REAL_YIELD - Headwind for gold and growth stocks"),
    Rung(above(1.0), "POSITIVE", "CAUTIOUS_GOLD", "POSITIVE - Moderate headwind for gold"),
    Rung(above(0.0), "LOW_POSITIVE", "NEUTRAL", "LOW_POSITIVE - Gold neutral zone"),
    Rung(always, "NEGATIVE", "BULLISH_GOLD", "NEGATIVE - Gold tailwind, growth stocks favored"),
)

CARRY_TRADE_LADDER: tuple[Rung, ...] = (
    Rung(above(3.5), "WIDE", "YEN_WEAK", "WIDE - Strong carry incentive, yen likely weak"),
    Rung(above(2.5), "MODERATE", "NEUTRAL", "MODERATE - Normal carry environment"),
    Rung(below(2.0), "NARROW", "YEN_STRENGTH_RISK", "NARROW - Carry unwind risk, watch for yen strength"),
    Rung(always, "NORMAL", "NEUTRAL", "NORMAL"),
)
CARRY_WARNING_BELOW = 2.5

# BTC/NQ rungs receive (same_direction, divergence).
BTC_NQ_LADDER: tuple[Rung, ...] = (
    Rung(lambda s: s[0] and s[1] < 1.0, "CORRELATED", "NORMAL",
         "CORRELATED - BTC and NQ moving together, risk-on/off intact"),
    Rung(lambda s: s[0] and s[1] > 2.0, "AMPLIFIED", "HIGH_BETA",
         "AMPLIFIED - BTC amplifying NQ move, high beta"),
    Rung(lambda s: not s[0] and s[1] > 1.5, "DIVERGING", "DIVERGENCE",
         "DIVERGING - BTC and NQ moving opposite, watch for regime change"),
    Rung(always, "MIXED", "NEUTRAL", "MIXED - No clear correlation signal"),
)

VIX_LADDER: tuple[Rung, ...] = (
    Rung(below(12), "EXTREME_LOW", "CAUTION", "COMPLACENCY - VIX very low, spike risk elevated"),
    Rung(below(15), "LOW", "NEUTRAL", "CALM - Low volatility, but watch for complacency"),
    Rung(below(20), "NORMAL", "NEUTRAL", "NORMAL - Healthy volatility environment"),
    Rung(below(25), "ELEVATED", "CAUTIOUS", "ELEVATED - Increased fear, caution warranted"),
    Rung(below(30), "HIGH", "FEAR", "HIGH - Significant fear, potential capitulation setup"),
    Rung(always, "PANIC", "EXTREME_FEAR", "PANIC - Extreme fear, watch for reversal opportunities"),
)

VIX_SPIKE_LADDER: tuple[Rung, ...] = (
    Rung(above(10), "VIX_SPIKE", description="VIX_SPIKE - Up >10% today, risk-off in progress"),
    Rung(below(-10), "VIX_CRUSH", description="VIX_CRUSH - Down >10% today, risk-on resuming"),
    Rung(always, ""),
)

DOLLAR_LADDER: tuple[Rung, ...] = (
    Rung(above(0.3), "DOLLAR_STRENGTH", "STRONG",
         "DOLLAR_STRENGTH - Headwind for commodities and multinationals"),
    Rung(below(-0.3), "DOLLAR_WEAKNESS", "WEAK",
         "DOLLAR_WEAKNESS - Tailwind for commodities and gold"),
    Rung(always, "DOLLAR_STABLE", "NEUTRAL",
         "DOLLAR_STABLE - No significant currency impact today"),
)

DOLLAR_AFFECTED: dict[str, tuple[AffectedSymbol, ...]] = {
    "DOLLAR_STRENGTH": (
        AffectedSymbol("GC", "BEARISH", "Gold inverse to dollar"),
        AffectedSymbol("SI", "BEARISH", "Silver inverse to dollar"),
        AffectedSymbol("CL", "SLIGHT_BEARISH", "Oil priced in USD"),
        AffectedSymbol("NQ", "SLIGHT_BEARISH", "Multinational revenue translation"),
        AffectedSymbol("6E", "BEARISH", "Euro weakens vs dollar"),
    ),
    "DOLLAR_WEAKNESS": (
        AffectedSymbol("GC", "BULLISH", "Gold benefits from weak dollar"),
        AffectedSymbol("SI", "BULLISH", "Silver benefits from weak dollar"),
        AffectedSymbol("CL", "SLIGHT_BULLISH", "Oil cheaper for foreign buyers"),
        AffectedSymbol("6E", "BULLISH", "Euro strengthens vs dollar"),
    ),
}


# ── Rotation & breadth ───────────────────────────────────────────────────


def calculate_nq_rty_spread(price_data: PriceData) -> RotationSpread:
    """NQ − RTY daily change: tech vs small-cap rotation.

    Positive means tech is leading (narrow rally); negative means small
    caps are leading (breadth expanding).
    """
    snapshot = PriceSnapshot.coerce(price_data)
    nq_change = snapshot.change("NQ")
    rty_change = snapshot.change("RTY")
    spread = nq_change - rty_change

    rung = classify(spread, ROTATION_LADDER)
    return RotationSpread(
        value=round(spread, 2),
        nq_change=round(nq_change, 2),
        rty_change=round(rty_change, 2),
        interpretation=rung.label,
        description=rung.description,
        signal=classify(spread, ROTATION_SIGNAL_LADDER).signal,
    )


def calculate_growth_value(price_data: PriceData) -> GrowthValue:
    """XLK − XLF daily change: the classic growth/value barometer."""
    snapshot = PriceSnapshot.coerce(price_data)
    xlk_change = snapshot.change("XLK")
    xlf_change = snapshot.change("XLF")
    spread = xlk_change - xlf_change

    rung = classify(spread, GROWTH_VALUE_LADDER)
    return GrowthValue(
        value=round(spread, 2),
        xlk_change=round(xlk_change, 2),
        xlf_change=round(xlf_change, 2),
        interpretation=rung.label,
        description=rung.description,
        signal=classify(spread, GROWTH_VALUE_SIGNAL_LADDER).signal,
    )


# ── Safe haven & risk ────────────────────────────────────────────────────


def calculate_gold_silver_ratio(price_data: PriceData) -> GoldSilverRatio:
    """Gold / silver price ratio, a fear gauge in metals.

    Above 85 is extreme fear (recession pricing); below 55 silver is
    outrunning gold on industrial demand.
    """
    snapshot = PriceSnapshot.coerce(price_data)
    gold = snapshot.price("GC")
    silver = snapshot.price("SI")

    if not gold or not silver:
        logger.debug("Gold/silver ratio unavailable: GC=%s SI=%s", gold, silver)
        return GoldSilverRatio(value=None, interpretation=DATA_UNAVAILABLE, signal=UNKNOWN)

    ratio = gold / silver
    rung = classify(ratio, GOLD_SILVER_LADDER)
    return GoldSilverRatio(
        value=round(ratio, 2),
        gold_price=round_price(gold),
        silver_price=round_price(silver),
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
    )


def calculate_hyg_signal(price_data: PriceData) -> HygSignal:
    """High-yield bond ETF move as a credit risk-appetite gauge.

    The HYG − TLT spread separately flags flight to quality.
    """
    snapshot = PriceSnapshot.coerce(price_data)
    hyg_change = snapshot.change("HYG")
    tlt_change = snapshot.change("TLT")
    credit_spread = hyg_change - tlt_change

    rung = classify(hyg_change, HYG_LADDER)
    spread_rung = classify(credit_spread, CREDIT_SPREAD_LADDER)
    return HygSignal(
        value=round(hyg_change, 2),
        hyg_change=round(hyg_change, 2),
        tlt_change=round(tlt_change, 2),
        credit_spread=round(credit_spread, 2),
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
        spread_signal=spread_rung.label,
        spread_description=spread_rung.description,
    )


# ── Energy ───────────────────────────────────────────────────────────────


def calculate_crack_spread(price_data: PriceData) -> CrackSpread:
    """Gasoline minus crude refining margin, in dollars per barrel.

    RB is quoted per gallon and CL per barrel, so RB is scaled by 42.
    """
    snapshot = PriceSnapshot.coerce(price_data)
    rb = snapshot.price("RB")
    cl = snapshot.price("CL")

    if not rb or not cl:
        logger.debug("Crack spread unavailable: RB=%s CL=%s", rb, cl)
        return CrackSpread(value=None, interpretation=DATA_UNAVAILABLE, signal=UNKNOWN)

    spread = rb * GALLONS_PER_BARREL - cl
    rung = classify(spread, CRACK_SPREAD_LADDER)
    return CrackSpread(
        value=round(spread, 2),
        rb_price=round_price(rb),
        cl_price=round_price(cl),
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
    )


# ── Yields & carry ───────────────────────────────────────────────────────


def calculate_real_yield(
    price_data: PriceData, latest_cpi: Optional[float] = DEFAULT_LATEST_CPI,
) -> RealYield:
    """10Y Treasury yield minus CPI inflation.

    A missing (``None`` or zero) CPI falls back to 3.0.
    """
    snapshot = PriceSnapshot.coerce(price_data)
    cpi = latest_cpi or DEFAULT_LATEST_CPI
    yield_10y = snapshot.price("TNX")

    if not yield_10y:
        logger.debug("Real yield unavailable: no TNX price")
        return RealYield(
            value=None, interpretation=DATA_UNAVAILABLE, signal=UNKNOWN, cpi_used=cpi,
        )

    real_yield = yield_10y - cpi
    rung = classify(real_yield, REAL_YIELD_LADDER)
    return RealYield(
        value=round(real_yield, 2),
        yield_10y=round(yield_10y, 2),
        cpi_used=cpi,
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
    )


def calculate_carry_trade(
    price_data: PriceData, japan_yield: float = DEFAULT_JAPAN_YIELD,
) -> CarryTrade:
    """US 10Y minus Japan 10Y yield spread.

    A wide spread favours the yen carry trade; below 2.5 a carry-unwind
    warning is attached.
    """
    snapshot = PriceSnapshot.coerce(price_data)
    us_yield = snapshot.price("TNX")

    if not us_yield:
        logger.debug("Carry trade unavailable: no TNX price")
        return CarryTrade(
            value=None, interpretation=DATA_UNAVAILABLE, signal=UNKNOWN,
            japan_yield=japan_yield,
        )

    spread = us_yield - japan_yield
    rung = classify(spread, CARRY_TRADE_LADDER)
    warning = None
    if spread < CARRY_WARNING_BELOW:
        warning = "CARRY_UNWIND_WATCH - Could pressure NQ if yen spikes"

    return CarryTrade(
        value=round(spread, 2),
        us_yield=round(us_yield, 2),
        japan_yield=japan_yield,
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
        warning=warning,
    )


# ── Crypto ───────────────────────────────────────────────────────────────


def calculate_btc_nq_correlation(price_data: PriceData) -> BtcNqCorrelation:
    """Same-direction / divergence heuristic between BTC and NQ.

    This is not a statistical correlation; it only compares today's two
    changes.
    """
    snapshot = PriceSnapshot.coerce(price_data)
    btc_change = snapshot.change("BTC")
    nq_change = snapshot.change("NQ")

    same_direction = (btc_change > 0 and nq_change > 0) or (btc_change < 0 and nq_change < 0)
    divergence = abs(btc_change - nq_change)

    rung = classify((same_direction, divergence), BTC_NQ_LADDER)
    return BtcNqCorrelation(
        value=round(divergence, 2),
        btc_change=round(btc_change, 2),
        nq_change=round(nq_change, 2),
        same_direction=same_direction,
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
    )


# ── Volatility ───────────────────────────────────────────────────────────


def interpret_vix(price_data: PriceData) -> VixReading:
    """VIX level bucket plus a spike/crush alert on a ±10% day."""
    snapshot = PriceSnapshot.coerce(price_data)
    vix = snapshot.price("VIX")
    vix_change = snapshot.change("VIX")

    if not vix:
        logger.debug("VIX reading unavailable: no VIX price")
        return VixReading(
            value=None, interpretation=DATA_UNAVAILABLE, signal=UNKNOWN,
            change=round(vix_change, 2),
        )

    rung = classify(vix, VIX_LADDER)
    spike = classify(vix_change, VIX_SPIKE_LADDER)
    return VixReading(
        value=round(vix, 2),
        change=round(vix_change, 2),
        level=rung.label,
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
        spike_alert=spike.description or None,
    )


# ── Currency ─────────────────────────────────────────────────────────────


def assess_dollar_impact(price_data: PriceData) -> DollarImpact:
    """DXY daily change and the instruments it pushes around."""
    snapshot = PriceSnapshot.coerce(price_data)
    dxy_change = snapshot.change("DX")
    dxy_price = snapshot.price("DX")

    rung = classify(dxy_change, DOLLAR_LADDER)
    return DollarImpact(
        value=round(dxy_change, 2),
        price=round_price(dxy_price),
        interpretation=rung.label,
        description=rung.description,
        signal=rung.signal,
        affected_symbols=DOLLAR_AFFECTED.get(rung.label, ()),
    )


# ── Aggregate report ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class CrossAssetReport:
    """Every metric computed from one snapshot."""

    timestamp: str
    nq_rty_spread: RotationSpread
    growth_value: GrowthValue
    gold_silver_ratio: GoldSilverRatio
    hyg_signal: HygSignal
    vix: VixReading
    crack_spread: CrackSpread
    real_yield: RealYield
    carry_trade: CarryTrade
    dollar_impact: DollarImpact
    btc_nq_correlation: BtcNqCorrelation
    overall_risk_tone: RiskTone

    def as_dict(self) -> dict:
        """Render the report as nested plain data grouped by theme."""
        return {
            "timestamp": self.timestamp,
            "rotation": {
                "nq_rty_spread": asdict(self.nq_rty_spread),
                "growth_value": asdict(self.growth_value),
            },
            "risk_sentiment": {
                "gold_silver_ratio": asdict(self.gold_silver_ratio),
                "hyg_signal": asdict(self.hyg_signal),
                "vix": asdict(self.vix),
            },
            "energy": {"crack_spread": asdict(self.crack_spread)},
            "yields": {
                "real_yield": asdict(self.real_yield),
                "carry_trade": asdict(self.carry_trade),
            },
            "currency": {"dollar_impact": asdict(self.dollar_impact)},
            "crypto": {"btc_nq_correlation": asdict(self.btc_nq_correlation)},
            "overall_risk_tone": asdict(self.overall_risk_tone),
        }


def calculate_all_metrics(
    price_data: PriceData,
    latest_cpi: Optional[float] = DEFAULT_LATEST_CPI,
    japan_yield: float = DEFAULT_JAPAN_YIELD,
    now: Optional[datetime] = None,
) -> CrossAssetReport:
    """Compute every cross-asset metric and the risk tone for one snapshot.

    Args:
        price_data: ``PriceSnapshot`` or raw ``{symbol: quote}`` mapping.
        latest_cpi: CPI estimate for the real-yield metric.
        japan_yield: Japan 10Y yield for the carry-trade metric.
        now: Report timestamp (defaults to the current UTC time).
    """
    snapshot = PriceSnapshot.coerce(price_data)
    stamp = (now or datetime.now(timezone.utc)).isoformat()

    return CrossAssetReport(
        timestamp=stamp,
        nq_rty_spread=calculate_nq_rty_spread(snapshot),
        growth_value=calculate_growth_value(snapshot),
        gold_silver_ratio=calculate_gold_silver_ratio(snapshot),
        hyg_signal=calculate_hyg_signal(snapshot),
        vix=interpret_vix(snapshot),
        crack_spread=calculate_crack_spread(snapshot),
        real_yield=calculate_real_yield(snapshot, latest_cpi),
        carry_trade=calculate_carry_trade(snapshot, japan_yield),
        dollar_impact=assess_dollar_impact(snapshot),
        btc_nq_correlation=calculate_btc_nq_correlation(snapshot),
        overall_risk_tone=derive_risk_tone(snapshot),
    )
