"""Threshold ladders — ordered (predicate, label, signal) rungs.

Every derived signal in the package maps a raw quantity to a discrete
label by walking a ladder top-down; the first rung whose predicate holds
wins.  Ladders are plain tuples so each one can be tested on its own,
independently of the arithmetic that feeds it.
"""

from dataclasses import dataclass
from typing import Any, Callable, Sequence


@dataclass(frozen=True)
class Rung:
    """One step of a threshold ladder."""

    predicate: Callable[[Any], bool]
    label: str
    signal: str = ""
    description: str = ""


def above(threshold: float) -> Callable[[float], bool]:
    """Predicate: value strictly greater than *threshold*."""
    return lambda value: value > threshold


def below(threshold: float) -> Callable[[float], bool]:
    """Predicate: value strictly less than *threshold*."""
    return lambda value: value < threshold


def at_least(threshold: float) -> Callable[[float], bool]:
    """Predicate: value greater than or equal to *threshold*."""
    return lambda value: value >= threshold


def always(_value: Any) -> bool:
    """Catch-all predicate for the bottom rung."""
    return True


def classify(value: Any, ladder: Sequence[Rung]) -> Rung:
    """Return the first rung of *ladder* whose predicate accepts *value*.

    Ladders are expected to end with an ``always`` rung.  A ladder that
    matches nothing is a construction error and raises ``ValueError``.
    """
    for rung in ladder:
        if rung.predicate(value):
            return rung
    raise ValueError(f"No ladder rung matched value {value!r}")
