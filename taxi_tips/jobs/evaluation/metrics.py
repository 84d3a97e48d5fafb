"""
Local goodness-of-fit helpers for sampled prediction frames.
"""
import math
from typing import Sequence, Tuple

import numpy as np


def _as_arrays(actual: Sequence[float], predicted: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(actual, dtype=float)
    y = np.asarray(predicted, dtype=float)
    if x.shape != y.shape:
        raise ValueError(
            f"actual and predicted must have the same length, got {x.size} and {y.size}"
        )
    return x, y


def r_squared(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """
    Squared Pearson correlation between actual and predicted values.

    Returns NaN when either side has no variance or fewer than two points:
    the correlation is undefined there and is not replaced by a default.

    >>> r_squared([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    1.0
    """
    x, y = _as_arrays(actual, predicted)
    if x.size < 2:
        return math.nan

    dx = x - x.mean()
    dy = y - y.mean()
    sxx = float(np.dot(dx, dx))
    syy = float(np.dot(dy, dy))
    if sxx == 0.0 or syy == 0.0:
        return math.nan

    r = float(np.dot(dx, dy)) / math.sqrt(sxx * syy)
    return min(r * r, 1.0)


def reference_line(actual: Sequence[float], predicted: Sequence[float]) -> Tuple[float, float]:
    """
    Ordinary least squares fit of predicted on actual.

    :returns: (slope, intercept), both NaN when actual has no variance
    """
    x, y = _as_arrays(actual, predicted)
    if x.size < 2 or np.ptp(x) == 0:
        return math.nan, math.nan
    slope, intercept = np.polyfit(x, y, 1)
    return float(slope), float(intercept)
