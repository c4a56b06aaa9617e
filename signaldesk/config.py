"""SignalDesk — runtime configuration.

Loads .env variables into a typed settings object.  Every variable is
optional; invalid values fail fast with a message naming the variable.
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv


_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Typed settings loaded from environment variables."""

    latest_cpi: float = 3.0
    japan_yield: float = 1.0
    adx_period: int = 14
    sweep_capacity: int = 100
    sweep_lookback_minutes: int = 60
    log_level: str = "INFO"


def _read_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _read_int(name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


def load_settings(env_path: str | None = None) -> Settings:
    """Load settings from the environment (and *env_path* if given).

    Raises ``ValueError`` naming the offending variable when a value
    cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    log_level = os.environ.get("SIGNALDESK_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"SIGNALDESK_LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}, "
            f"got {log_level!r}"
        )

    return Settings(
        latest_cpi=_read_float("SIGNALDESK_LATEST_CPI", 3.0),
        japan_yield=_read_float("SIGNALDESK_JAPAN_YIELD", 1.0),
        adx_period=_read_int("SIGNALDESK_ADX_PERIOD", 14, minimum=1),
        sweep_capacity=_read_int("SIGNALDESK_SWEEP_CAPACITY", 100, minimum=1),
        sweep_lookback_minutes=_read_int("SIGNALDESK_SWEEP_LOOKBACK_MINUTES", 60, minimum=0),
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    """Route the ``signaldesk`` logger to stderr at *level*."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
