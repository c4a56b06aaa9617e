"""Core data models — typed representations of market observations.

Everything the derivation engines consume crosses this boundary: candles,
bars with their key levels, and the per-refresh price snapshot.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar, oldest-first when held in a list."""

    high: float
    low: float
    close: float
    open: Optional[float] = None
    time: str = ""


@dataclass(frozen=True)
class PriceBar:
    """The current bar for one instrument plus its named key levels.

    A level priced ``None`` means "not applicable" for this bar.
    """

    symbol: str
    open: float
    high: float
    low: float
    close: float
    levels: dict[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceObservation:
    """Last price and daily percentage change for one instrument."""

    price: float = 0.0
    change_percent: float = 0.0


# ── Symbol aliases ───────────────────────────────────────────────────────
# Canonical root symbol → every key a quote source may use for it, in
# lookup order.

SYMBOL_ALIASES: dict[str, tuple[str, ...]] = {
    "ES": ("ES", "ES=F"),
    "NQ": ("NQ", "NQ=F"),
    "YM": ("YM", "YM=F"),
    "RTY": ("RTY", "RTY=F"),
    "GC": ("GC", "GC=F"),
    "SI": ("SI", "SI=F"),
    "HG": ("HG", "HG=F"),
    "CL": ("CL", "CL=F"),
    "NG": ("NG", "NG=F"),
    "RB": ("RB", "RB=F"),
    "ZN": ("ZN", "ZN=F"),
    "ZB": ("ZB", "ZB=F"),
    "TNX": ("TNX", "^TNX"),
    "VIX": ("VIX", "^VIX"),
    "DX": ("DX", "DX-Y.NYB"),
    "BTC": ("BTC", "BTC-USD"),
    "ETH": ("ETH", "ETH-USD"),
}

_ALIAS_TO_CANONICAL: dict[str, str] = {
    alias: canonical
    for canonical, aliases in SYMBOL_ALIASES.items()
    for alias in aliases
}


def normalize_symbol(symbol: str) -> str:
    """Map any accepted alias (``"GC=F"``, ``"^VIX"``) to its canonical key.

    Unknown symbols are returned upper-cased and otherwise unchanged.
    """
    key = symbol.strip().upper()
    return _ALIAS_TO_CANONICAL.get(key, key)


def aliases_for(symbol: str) -> tuple[str, ...]:
    """Return every lookup key for *symbol*, canonical key first."""
    canonical = normalize_symbol(symbol)
    return SYMBOL_ALIASES.get(canonical, (canonical,))


def _coerce_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _coerce_observation(raw: Any) -> PriceObservation:
    if isinstance(raw, PriceObservation):
        return raw
    if isinstance(raw, Mapping):
        change = raw.get("change_percent", raw.get("changePercent"))
        return PriceObservation(
            price=_coerce_float(raw.get("price")),
            change_percent=_coerce_float(change),
        )
    return PriceObservation()


class PriceSnapshot:
    """Immutable per-refresh snapshot of prices keyed by quote symbol.

    Lookups go through :func:`aliases_for`, so ``snapshot.price("GC")``
    finds a quote stored under ``"GC"`` or ``"GC=F"``.  Zero is the
    "absent" sentinel: a zero under the canonical key falls through to the
    next alias, and a symbol with no quote at all reads as ``0.0``.

    Args:
        observations: Mapping of quote symbol → ``PriceObservation`` or a
            loosely shaped dict with ``price`` / ``changePercent`` keys.
    """

    def __init__(self, observations: Optional[Mapping[str, Any]] = None) -> None:
        self._observations: dict[str, PriceObservation] = {
            str(key).upper(): _coerce_observation(raw)
            for key, raw in (observations or {}).items()
        }

    @classmethod
    def coerce(cls, data: "PriceSnapshot | Mapping[str, Any] | None") -> "PriceSnapshot":
        """Return *data* unchanged if it is already a snapshot, else wrap it."""
        if isinstance(data, PriceSnapshot):
            return data
        return cls(data)

    def _first_nonzero(self, symbol: str, attr: str) -> float:
        for key in aliases_for(symbol):
            obs = self._observations.get(key)
            if obs is not None and getattr(obs, attr):
                return getattr(obs, attr)
        return 0.0

    def price(self, symbol: str) -> float:
        """Last price for *symbol*, or ``0.0`` when absent."""
        return self._first_nonzero(symbol, "price")

    def change(self, symbol: str) -> float:
        """Daily percentage change for *symbol*, or ``0.0`` when absent."""
        return self._first_nonzero(symbol, "change_percent")

    def has(self, symbol: str) -> bool:
        """``True`` if any alias of *symbol* is present in the snapshot."""
        return any(key in self._observations for key in aliases_for(symbol))

    def __len__(self) -> int:
        return len(self._observations)


# ── Instrument metadata ──────────────────────────────────────────────────

TICK_SIZES: dict[str, float] = {
    "ES": 0.25,
    "NQ": 0.25,
    "YM": 1.0,
    "RTY": 0.10,
    "CL": 0.01,
    "NG": 0.001,
    "GC": 0.10,
    "SI": 0.005,
    "HG": 0.0005,
    "ZN": 0.015625,  # 1/64
    "ZB": 0.03125,  # 1/32
    "DX": 0.005,
    "6E": 0.00005,
    "6J": 0.0000005,
    "6B": 0.0001,
    "6A": 0.0001,
    "ZC": 0.25,
    "ZS": 0.25,
    "ZW": 0.25,
    "BTC": 0.50,
}

TICK_VALUES: dict[str, float] = {
    "ES": 12.50,
    "NQ": 5.00,
    "YM": 5.00,
    "RTY": 5.00,
    "CL": 10.00,
    "NG": 10.00,
    "GC": 10.00,
    "SI": 25.00,
    "HG": 12.50,
    "ZN": 15.625,
    "ZB": 31.25,
    "DX": 10.00,
    "6E": 6.25,
    "6J": 6.25,
    "6B": 6.25,
    "6A": 10.00,
    "ZC": 12.50,
    "ZS": 12.50,
    "ZW": 12.50,
    "BTC": 0.50,
}

DEFAULT_TICK_SIZE = 0.01
DEFAULT_TICK_VALUE = 10.00


def round_price(value: float) -> float:
    """Round a price for output: 4 decimals below $1, 2 otherwise."""
    if abs(value) < 1:
        return round(value, 4)
    return round(value, 2)
