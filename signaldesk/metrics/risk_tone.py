"""Overall risk tone — composite of independent risk-on/risk-off checks.

Four checks read the same snapshot as the cross-asset metrics:

- VIX below 18 is risk-on, above 25 risk-off.
- HYG change above +0.2% is risk-on, below −0.2% risk-off.
- DXY change below −0.2% is risk-on, above +0.3% risk-off.
- RTY outperforming NQ while up more than 0.3% is risk-on (healthy breadth).

The tally decides the tone: three or more on one side with none on the
other is a HIGH-confidence call; otherwise the larger side leans, and a
tie is MIXED.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from signaldesk.models import PriceSnapshot

Tone = Literal["RISK_ON", "RISK_OFF", "LEAN_RISK_ON", "LEAN_RISK_OFF", "MIXED"]
Confidence = Literal["HIGH", "MODERATE", "LOW"]

# A missing VIX reads as neutral rather than calm.
NEUTRAL_VIX = 20.0


@dataclass(frozen=True)
class RiskTone:
    """Composite tone with the signal tallies behind it."""

    tone: Tone
    confidence: Confidence
    risk_on_signals: int
    risk_off_signals: int
    reasons: list[str] = field(default_factory=list)


def derive_risk_tone(price_data: "PriceSnapshot | Mapping[str, Any] | None") -> RiskTone:
    """Tally the four checks and classify the overall tone."""
    snapshot = PriceSnapshot.coerce(price_data)
    risk_on = 0
    risk_off = 0
    reasons: list[str] = []

    vix = snapshot.price("VIX") or NEUTRAL_VIX
    if vix < 18:
        risk_on += 1
        reasons.append(f"VIX calm ({vix:.2f})")
    if vix > 25:
        risk_off += 1
        reasons.append(f"VIX elevated ({vix:.2f})")

    hyg_change = snapshot.change("HYG")
    if hyg_change > 0.2:
        risk_on += 1
        reasons.append("High yield bid")
    if hyg_change < -0.2:
        risk_off += 1
        reasons.append("High yield offered")

    dxy_change = snapshot.change("DX")
    if dxy_change < -0.2:
        risk_on += 1
        reasons.append("Dollar weakening")
    if dxy_change > 0.3:
        risk_off += 1
        reasons.append("Dollar strengthening")

    nq_change = snapshot.change("NQ")
    rty_change = snapshot.change("RTY")
    if rty_change > nq_change and rty_change > 0.3:
        risk_on += 1
        reasons.append("Small caps leading")

    if risk_on >= 3 and risk_off == 0:
        tone, confidence = "RISK_ON", "HIGH"
    elif risk_off >= 3 and risk_on == 0:
        tone, confidence = "RISK_OFF", "HIGH"
    elif risk_on > risk_off:
        tone, confidence = "LEAN_RISK_ON", "MODERATE"
    elif risk_off > risk_on:
        tone, confidence = "LEAN_RISK_OFF", "MODERATE"
    else:
        tone, confidence = "MIXED", "LOW"

    return RiskTone(
        tone=tone,
        confidence=confidence,
        risk_on_signals=risk_on,
        risk_off_signals=risk_off,
        reasons=reasons,
    )
