"""Linear-regression trend detection over an ordered numeric series."""

from __future__ import annotations

import math
from collections.abc import Sequence

from sortlens.analysis.metrics import clamp
from sortlens.analysis.models import TrendAnalysis, TrendPoint

DEFAULT_SLOPE_THRESHOLD = 0.5


def calculate_trend(
    points: Sequence[TrendPoint],
    *,
    slope_threshold: float = DEFAULT_SLOPE_THRESHOLD,
) -> TrendAnalysis:
    """Classify the trend of *points* by ordinary least squares.

    The regression is of ``value`` against position ``0..n-1``; ``date`` only
    fixes the order and is echoed back.  With fewer than two points the
    trend is ``stable`` with zero magnitude and confidence.

    - direction: ``up`` / ``down`` when the slope exceeds *slope_threshold*
      in either direction, else ``stable``
    - magnitude: ``|slope|`` relative to the value range, clamped to 0–1
    - confidence: ``sqrt(R²)``
    """
    data_points = list(points)
    n = len(data_points)
    if n < 2:
        return TrendAnalysis(
            direction="stable", magnitude=0.0, confidence=0.0, data_points=data_points
        )

    values = [p.value for p in data_points]
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_xx = sum(i * i for i in range(n))

    # Non-zero for n >= 2 since x = 0..n-1 are distinct
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    mean_y = sum_y / n
    total_variation = sum((v - mean_y) ** 2 for v in values)
    explained_variation = sum((slope * i + intercept - mean_y) ** 2 for i in range(n))
    r_squared = explained_variation / total_variation if total_variation > 0 else 0.0

    if slope > slope_threshold:
        direction = "up"
    elif slope < -slope_threshold:
        direction = "down"
    else:
        direction = "stable"

    value_range = max(values) - min(values)
    magnitude = abs(slope) / value_range if value_range > 0 else 0.0

    return TrendAnalysis(
        direction=direction,
        magnitude=clamp(magnitude),
        confidence=math.sqrt(clamp(r_squared)),
        data_points=data_points,
    )
