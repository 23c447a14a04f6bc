"""Goal progress: distance, time-to-goal, required rate and calorie targets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from weightinsights.tracking.ema import DEFAULT_KCAL_PER_KG, estimate_daily_calorie_balance
from weightinsights.tracking.models import DailyRecord

# Below this absolute rate (kg/week) the trend counts as flat
FLAT_RATE_THRESHOLD = 0.01

DAYS_PER_MONTH = 365.25 / 12


@dataclass
class TargetRateFeedback:
    """How the current trend compares with the target rate."""

    text: str
    status: str  # "good", "warn" or ""


def _plural(value: float, unit: str) -> str:
    return f"{unit}s" if value >= 1.5 else unit


def estimate_time_to_goal(
    current_weight: Optional[float],
    goal_weight: Optional[float],
    weekly_change: Optional[float],
    goal_achieved: bool = False,
) -> str:
    """
    Describe how long the current trend takes to reach the goal.

    Returns:
        "Goal Achieved!", "N/A", "Trend flat", "Trending away", or an
        approximate duration such as "~5 days", "~3 weeks", "~4 months",
        "~1.6 years"

    Example:
        >>> estimate_time_to_goal(80.0, 75.0, -0.5)
        '~2 months'
    """
    if goal_achieved:
        return "Goal Achieved!"
    if current_weight is None or goal_weight is None or weekly_change is None:
        return "N/A"

    difference = goal_weight - current_weight
    if abs(weekly_change) < FLAT_RATE_THRESHOLD:
        return "Trend flat"
    if (weekly_change > 0 and difference < 0) or (weekly_change < 0 and difference > 0):
        return "Trending away"

    weeks = difference / weekly_change
    if weeks <= 0:
        return "N/A"  # Already past goal
    if weeks < 1:
        return f"~{weeks * 7:.0f} days"
    if weeks < 8:
        return f"~{round(weeks)} {_plural(weeks, 'week')}"

    months = weeks * 7 / DAYS_PER_MONTH
    if months < 18:
        return f"~{round(months)} {_plural(months, 'month')}"
    return f"~{months / 12:.1f} years"


def calculate_required_rate(
    current_weight: Optional[float],
    goal_weight: Optional[float],
    goal_date: Optional[date],
    reference_date: date,
) -> Optional[float]:
    """
    Weekly rate (kg/week) needed to reach goal_weight by goal_date.

    Returns:
        Required rate, or None when inputs are missing or the goal date
        is not after reference_date
    """
    if current_weight is None or goal_weight is None or goal_date is None:
        return None
    days_remaining = (goal_date - reference_date).days
    if days_remaining <= 0:
        return None
    return (goal_weight - current_weight) / (days_remaining / 7)


def calculate_calorie_adjustment(
    target_rate: Optional[float],
    current_rate: Optional[float],
    kcal_per_kg: float = DEFAULT_KCAL_PER_KG,
) -> Optional[float]:
    """Daily kcal change needed to move from current_rate to target_rate."""
    if target_rate is None or current_rate is None:
        return None
    return estimate_daily_calorie_balance(target_rate - current_rate, kcal_per_kg)


def suggest_intake_range(
    baseline_tdee: Optional[float],
    required_rate: Optional[float],
    margin: float = 100.0,
    kcal_per_kg: float = DEFAULT_KCAL_PER_KG,
) -> Optional[tuple[int, int]]:
    """Intake band around the calories needed to hit required_rate."""
    if baseline_tdee is None or required_rate is None:
        return None
    target_intake = baseline_tdee + estimate_daily_calorie_balance(required_rate, kcal_per_kg)
    return round(target_intake - margin), round(target_intake + margin)


def target_rate_feedback(
    current_rate: Optional[float],
    target_rate: Optional[float],
    tolerance: float = 0.03,
) -> TargetRateFeedback:
    """Compare the current trend to the target rate."""
    if current_rate is None or target_rate is None:
        return TargetRateFeedback("N/A", "")
    diff = current_rate - target_rate
    if abs(diff) < tolerance:
        return TargetRateFeedback("On Target", "good")
    if diff > 0:
        return TargetRateFeedback(f"Faster (+{diff:.2f})", "warn")
    return TargetRateFeedback(f"Slower ({diff:.2f})", "warn")


def find_goal_achieved_date(
    records: Sequence[DailyRecord],
    goal_weight: Optional[float],
    tolerance: float = 0.1,
) -> Optional[date]:
    """First date whose SMA is within tolerance of the goal weight."""
    if goal_weight is None:
        return None
    for r in records:
        if r.sma is not None and abs(goal_weight - r.sma) <= tolerance:
            return r.date
    return None


def project_trend_weight(
    start_date: date,
    initial_weight: float,
    weekly_change: float,
    target_date: date,
) -> float:
    """
    Weight on target_date along a straight manual trend line.

    Example:
        >>> project_trend_weight(date(2025, 1, 1), 80.0, -0.5, date(2025, 1, 15))
        79.0
    """
    weeks_elapsed = (target_date - start_date).days / 7
    return initial_weight + weeks_elapsed * weekly_change
