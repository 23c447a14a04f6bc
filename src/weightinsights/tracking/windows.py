"""Trailing-window helpers over a flat, date-ordered sequence.

Windows are expressed as explicit [start, end) index pairs and clamped at
the start of the sequence, so early records use however many neighbours
actually exist.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def trailing_window(index: int, size: int) -> tuple[int, int]:
    """Return the [start, end) slice bounds of a window ending at index."""
    return max(0, index - size + 1), index + 1


def valid_values(values: Sequence[Optional[float]]) -> list[float]:
    """Drop missing entries."""
    return [v for v in values if v is not None]


def mean_or_none(values: Sequence[Optional[float]]) -> Optional[float]:
    """Arithmetic mean of the present values, None if there are none."""
    present = valid_values(values)
    if not present:
        return None
    return float(np.mean(present))


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1 denominator), 0 for fewer than 2 values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def rolling_average(values: Sequence[Optional[float]], window: int) -> list[Optional[float]]:
    """Trailing rolling mean that skips missing entries.

    Each output is the mean of the present values among the last `window`
    entries (including the current one), or None when all are missing.

    Example:
        >>> rolling_average([1.0, None, 3.0, 5.0], 2)
        [1.0, 1.0, 3.0, 4.0]
    """
    if window <= 0:
        return [None] * len(values)

    result: list[Optional[float]] = []
    for i in range(len(values)):
        start, end = trailing_window(i, window)
        result.append(mean_or_none(values[start:end]))
    return result
