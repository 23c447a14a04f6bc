"""Exponential moving average for weight tracking.

The trend follows the classic recursive form:
    T_n = T_{n-1} + α × (W_n - T_{n-1})

with α derived from an N-day window as α = 2 / (N + 1), the usual
"span" parameterisation (N=7 gives α=0.25). The trend is seeded by the
first logged weight and held flat across days without a weigh-in, so a
missing day never resets the series.
"""

from __future__ import annotations

from typing import Optional, Sequence

# Default window in days
DEFAULT_EMA_WINDOW = 7

# Approximate energy content of one kilogram of body mass change
DEFAULT_KCAL_PER_KG = 7700.0


def smoothing_from_window(window: int) -> float:
    """
    Convert an N-day window into a smoothing factor.

    Args:
        window: Window length in days (must be positive)

    Returns:
        α = 2 / (window + 1)

    Example:
        >>> smoothing_from_window(7)
        0.25
        >>> smoothing_from_window(1)  # No smoothing
        1.0
    """
    if window <= 0:
        raise ValueError(f"window must be positive, got {window}")
    return 2 / (window + 1)


def update_trend(prev_trend: float, today_weight: float, smoothing: float) -> float:
    """
    Calculate new trend value using exponentially smoothed moving average.

    Args:
        prev_trend: Previous trend value (T_{n-1})
        today_weight: Today's scale weight (W_n)
        smoothing: Smoothing factor α in (0, 1]
                   Higher values = more responsive, more noise
                   Lower values = smoother, more lag

    Returns:
        Today's trend value (T_n)

    Example:
        >>> update_trend(80.0, 79.0, 0.25)
        79.75
    """
    return prev_trend + smoothing * (today_weight - prev_trend)


def calculate_ema_series(
    weights: Sequence[Optional[float]],
    window: int = DEFAULT_EMA_WINDOW,
) -> list[Optional[float]]:
    """
    Calculate the EMA for a daily series that may contain gaps.

    Entries before the first weigh-in are None. After that, a missing
    weight carries the previous EMA forward unchanged.

    Args:
        weights: Weights in chronological order, None for missing days
        window: EMA window in days

    Returns:
        List of EMA values, same length as weights

    Example:
        >>> calculate_ema_series([None, 80.0, None, 79.0], window=7)
        [None, 80.0, 80.0, 79.75]
    """
    smoothing = smoothing_from_window(window)
    trends: list[Optional[float]] = []
    previous: Optional[float] = None

    for weight in weights:
        if weight is not None:
            previous = weight if previous is None else update_trend(previous, weight, smoothing)
        trends.append(previous)

    return trends


def estimate_daily_calorie_balance(
    weekly_change_kg: float,
    kcal_per_kg: float = DEFAULT_KCAL_PER_KG,
) -> float:
    """
    Estimate daily calorie surplus/deficit from weekly weight change.

    Args:
        weekly_change_kg: Weekly weight change in kg (negative = loss)
        kcal_per_kg: Energy per kg of body mass change

    Returns:
        Daily calorie balance (negative = deficit, positive = surplus)
    """
    return weekly_change_kg / 7 * kcal_per_kg
