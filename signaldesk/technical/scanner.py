"""Multi-instrument technical scan.

Fetches history for several instruments concurrently through a
``HistoricalSeriesProvider`` and runs ``analyze_series()`` on each.
"""

import asyncio
import logging
from typing import Iterable

from signaldesk.providers import HistoricalSeriesProvider
from signaldesk.technical.analysis import (
    DEFAULT_ADX_PERIOD,
    TechnicalResult,
    analyze_series,
)

logger = logging.getLogger("signaldesk")

# Root symbol → data-provider ticker.
YAHOO_SYMBOLS: dict[str, str] = {
    # Equity indices
    "ES": "ES=F",
    "NQ": "NQ=F",
    "YM": "YM=F",
    "RTY": "RTY=F",
    # Bonds
    "ZT": "ZT=F",
    "ZF": "ZF=F",
    "ZN": "ZN=F",
    "TN": "TN=F",
    "ZB": "ZB=F",
    # Metals
    "GC": "GC=F",
    "SI": "SI=F",
    "HG": "HG=F",
    # Energy
    "CL": "CL=F",
    "NG": "NG=F",
    "RB": "RB=F",
    # Agriculture
    "ZS": "ZS=F",
    "ZC": "ZC=F",
    "ZW": "ZW=F",
    "ZM": "ZM=F",
    "ZL": "ZL=F",
    "LE": "LE=F",
    "HE": "HE=F",
    # Crypto
    "BTC": "BTC-USD",
    "ETH": "ETH-USD",
    # Volatility
    "VIX": "^VIX",
    # Currencies
    "DX": "DX-Y.NYB",
    "6E": "6E=F",
    "6J": "6J=F",
    "6B": "6B=F",
    "6A": "6A=F",
}

MAIN_SYMBOLS: tuple[str, ...] = (
    "ES", "NQ", "YM", "RTY", "CL", "NG", "GC", "SI", "ZN", "ZB", "ZC", "ZS", "ZW",
)

_UNAVAILABLE = TechnicalResult(available=False, reason="Insufficient historical data")


async def analyze_instrument(
    provider: HistoricalSeriesProvider,
    symbol: str,
    adx_period: int = DEFAULT_ADX_PERIOD,
) -> TechnicalResult:
    """Fetch history for one root *symbol* and analyse it.

    The provider is called with the mapped ticker (``"ES"`` → ``"ES=F"``);
    unmapped symbols are passed through unchanged.  A provider that
    raises or returns nothing yields an unavailable result.
    """
    ticker = YAHOO_SYMBOLS.get(symbol, symbol)
    try:
        history = await provider.fetch_history(ticker)
    except Exception as exc:
        logger.warning("History fetch failed for %s (%s): %s", symbol, ticker, exc)
        return _UNAVAILABLE

    if history is None:
        logger.warning("No history returned for %s (%s)", symbol, ticker)
        return _UNAVAILABLE

    return analyze_series(history.closes, history.candles, adx_period=adx_period)


async def analyze_instruments(
    provider: HistoricalSeriesProvider,
    symbols: Iterable[str] = MAIN_SYMBOLS,
    adx_period: int = DEFAULT_ADX_PERIOD,
) -> dict[str, TechnicalResult]:
    """Analyse every symbol in *symbols* concurrently.

    Returns:
        ``{symbol: TechnicalResult}`` in the order *symbols* was given.
    """
    ordered = list(dict.fromkeys(symbols))
    results = await asyncio.gather(
        *(analyze_instrument(provider, s, adx_period) for s in ordered)
    )
    return dict(zip(ordered, results))
