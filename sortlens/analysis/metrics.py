"""Low-level arithmetic shared by the analysis modules.

Pure functions: no I/O, no Pydantic models.  Every ratio in the engine goes
through ``safe_ratio`` or ``percentage`` so a zero denominator yields 0
rather than a ``ZeroDivisionError`` or NaN.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

# Agreement histogram buckets, highest first: (label, inclusive lower bound).
AGREEMENT_BUCKETS: tuple[tuple[str, float], ...] = (
    ("90-100%", 90.0),
    ("80-89%", 80.0),
    ("70-79%", 70.0),
    ("60-69%", 60.0),
    ("50-59%", 50.0),
    ("Below 50%", float("-inf")),
)


def safe_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, or 0.0 when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def percentage(count: float, total: float) -> float:
    """``count / total * 100``, or 0.0 when *total* is zero."""
    return safe_ratio(count, total) * 100


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean.  Returns 0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_stddev(values: Sequence[float]) -> float:
    """Population standard deviation (divides by N).  0 for an empty sequence."""
    if not values:
        return 0.0
    m = mean(values)
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))


def categorical_variance(categories: Iterable[str]) -> float:
    """Spread of a set of category placements: distinct / total.

    1.0 when every placement is in a different category, 1/N when all N
    agree.  Empty input gives 0.
    """
    items = list(categories)
    if not items:
        return 0.0
    return len(set(items)) / len(items)


def agreement_bucket(score: float) -> str:
    """Histogram bucket label for an agreement percentage."""
    for label, lower in AGREEMENT_BUCKETS:
        if score >= lower:
            return label
    return AGREEMENT_BUCKETS[-1][0]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
