"""Data models for daily tracking records and derived analytics."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class PhaseType(Enum):
    """Periodization phase classification."""
    BULK = "bulk"
    CUT = "cut"
    MAINTENANCE = "maintenance"


@dataclass
class WorkoutEntry:
    """Training load logged for one day."""

    workout_count: Optional[int] = None
    total_sets: Optional[int] = None
    total_volume: Optional[float] = None
    is_rest_day: Optional[bool] = None


@dataclass
class RawHealthData:
    """Independently keyed raw series, date string -> value."""

    weights: dict[str, float] = field(default_factory=dict)
    calorie_intake: dict[str, float] = field(default_factory=dict)
    expenditure: dict[str, float] = field(default_factory=dict)
    body_fat: dict[str, float] = field(default_factory=dict)
    protein: dict[str, float] = field(default_factory=dict)
    carbs: dict[str, float] = field(default_factory=dict)
    fat: dict[str, float] = field(default_factory=dict)
    workouts: dict[str, WorkoutEntry] = field(default_factory=dict)


@dataclass
class DailyRecord:
    """One calendar day of raw measurements plus derived statistics.

    Raw fields come from the merger; every derived field stays None until
    the corresponding pipeline stage fills it in.
    """

    date: date

    # Raw
    weight: Optional[float] = None
    body_fat_pct: Optional[float] = None
    calorie_intake: Optional[float] = None
    expenditure: Optional[float] = None  # external estimate (e.g. wearable)
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    workout_count: Optional[int] = None
    total_sets: Optional[int] = None
    total_volume: Optional[float] = None
    is_rest_day: Optional[bool] = None
    net_balance: Optional[float] = None  # intake - expenditure

    # Derived
    lbm: Optional[float] = None
    fm: Optional[float] = None
    sma: Optional[float] = None
    std_dev: Optional[float] = None
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    lbm_sma: Optional[float] = None
    fm_sma: Optional[float] = None
    ema: Optional[float] = None
    is_outlier: bool = False
    rolling_volatility: Optional[float] = None
    daily_sma_rate: Optional[float] = None  # kg/day
    tdee_trend: Optional[float] = None
    adaptive_tdee: Optional[float] = None
    smoothed_weekly_rate: Optional[float] = None  # kg/week
    tdee_difference: Optional[float] = None
    avg_tdee_difference: Optional[float] = None
    rate_moving_average: Optional[float] = None

    @property
    def trend_weight(self) -> Optional[float]:
        """SMA when available, raw weight otherwise."""
        return self.sma if self.sma is not None else self.weight


@dataclass
class Phase:
    """A contiguous bulk, cut or maintenance period."""

    phase_type: PhaseType
    start_date: date
    end_date: date
    avg_rate: Optional[float]  # kg/week
    avg_intake: Optional[float]
    weight_change: Optional[float]

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def duration_weeks(self) -> int:
        return round(self.duration_days / 7)


@dataclass
class RegressionPoint:
    """Fitted value and prediction interval for one date."""

    date: date
    value: Optional[float]  # observed weight, None for extrapolated dates
    fitted: float
    lower: Optional[float] = None
    upper: Optional[float] = None


@dataclass
class RegressionResult:
    """Ordinary least-squares weight trend with prediction intervals.

    Attributes:
        slope: kg/day, None when there were too few points
        intercept: fitted weight at first_date
        points: one entry per input point
        first_date: date the x axis (elapsed days) is measured from
        n: number of points in the fit
        x_mean: mean of the elapsed-day values
        sxx: sum of squares of x about its mean
        see: residual standard error, None when degrees of freedom are too few
        t_value: t quantile used for the interval half-width
    """

    slope: Optional[float] = None
    intercept: Optional[float] = None
    points: list[RegressionPoint] = field(default_factory=list)
    first_date: Optional[date] = None
    n: int = 0
    x_mean: float = 0.0
    sxx: float = 0.0
    see: Optional[float] = None
    t_value: Optional[float] = None

    @classmethod
    def empty(cls) -> "RegressionResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.slope is None

    @property
    def weekly_slope(self) -> Optional[float]:
        return self.slope * 7 if self.slope is not None else None

    def predict(self, day: date, value: Optional[float] = None) -> Optional[RegressionPoint]:
        """Evaluate the fitted line and prediction interval at any date."""
        if self.slope is None or self.intercept is None or self.first_date is None:
            return None

        x = float((day - self.first_date).days)
        fitted = self.intercept + self.slope * x

        if self.see is None or self.t_value is None or self.n == 0:
            return RegressionPoint(date=day, value=value, fitted=fitted)

        leverage = (x - self.x_mean) ** 2 / self.sxx if self.sxx > 0 else 0.0
        margin = self.t_value * self.see * math.sqrt(1 + 1 / self.n + leverage)
        return RegressionPoint(
            date=day,
            value=value,
            fitted=fitted,
            lower=fitted - margin,
            upper=fitted + margin,
        )


@dataclass
class CorrelationMatrix:
    """Symmetric Pearson matrix over a fixed variable list."""

    keys: list[str]
    labels: list[str]
    values: list[list[Optional[float]]]

    def get(self, key_a: str, key_b: str) -> Optional[float]:
        return self.values[self.keys.index(key_a)][self.keys.index(key_b)]


@dataclass
class WeeklyAggregate:
    """One ISO week of averaged statistics."""

    week_key: str
    week_start: date
    avg_net_balance: Optional[float]
    weekly_rate: Optional[float]
    avg_weight: Optional[float]
    avg_expenditure: Optional[float]
    avg_intake: Optional[float]


@dataclass
class Plateau:
    """A sustained period with a near-zero smoothed weekly rate."""

    start_date: date
    end_date: date


@dataclass
class TrendChange:
    """A date where the SMA slope shifts markedly."""

    date: date
    magnitude: float  # slope difference, kg/day


@dataclass
class LoggingConsistency:
    """How many days in a range have a given metric logged."""

    count: int = 0
    total_days: int = 0
    percentage: float = 0.0


@dataclass
class Goal:
    """User goal. All fields optional."""

    weight: Optional[float] = None
    date: Optional[date] = None
    target_rate: Optional[float] = None  # kg/week


@dataclass
class AnalysisRequest:
    """Date ranges and goal for one aggregator run.

    None bounds default to the extents of the data; the regression range
    defaults to the analysis range; reference_date (used as "today" for
    goal arithmetic) defaults to the analysis end.
    """

    analysis_start: Optional[date] = None
    analysis_end: Optional[date] = None
    regression_start: Optional[date] = None
    regression_end: Optional[date] = None
    goal: Goal = field(default_factory=Goal)
    reference_date: Optional[date] = None


@dataclass
class DisplayStats:
    """Consolidated statistics read by presentation layers."""

    # Whole history
    starting_weight: Optional[float] = None
    current_weight: Optional[float] = None
    max_weight: Optional[float] = None
    max_weight_date: Optional[date] = None
    min_weight: Optional[float] = None
    min_weight_date: Optional[date] = None
    total_change: Optional[float] = None
    current_sma: Optional[float] = None
    starting_lbm: Optional[float] = None
    current_lbm_sma: Optional[float] = None
    total_lbm_change: Optional[float] = None
    current_fm_sma: Optional[float] = None
    total_fm_change: Optional[float] = None

    # Analysis range
    current_weekly_rate: Optional[float] = None
    volatility: Optional[float] = None
    rolling_volatility: Optional[float] = None
    avg_intake: Optional[float] = None
    avg_expenditure: Optional[float] = None
    avg_net_balance: Optional[float] = None
    avg_tdee_difference: Optional[float] = None
    avg_tdee_adaptive: Optional[float] = None
    avg_tdee_weight_change: Optional[float] = None
    estimated_deficit_surplus: Optional[float] = None
    rate_consistency: Optional[float] = None
    weight_data_consistency: LoggingConsistency = field(default_factory=LoggingConsistency)
    calorie_data_consistency: LoggingConsistency = field(default_factory=LoggingConsistency)
    net_cal_rate_correlation: Optional[float] = None
    regression_slope_weekly: Optional[float] = None
    regression_start_date: Optional[date] = None

    # Goal
    target_weight: Optional[float] = None
    target_rate: Optional[float] = None
    target_date: Optional[date] = None
    weight_to_goal: Optional[float] = None
    estimated_time_to_goal: str = "N/A"
    required_rate_for_goal: Optional[float] = None
    required_calorie_adjustment: Optional[float] = None
    required_net_calories: Optional[float] = None
    suggested_intake_range: Optional[tuple[int, int]] = None
    target_rate_feedback: str = "N/A"
    target_rate_status: str = ""  # "good", "warn" or ""


@dataclass
class AnalysisResult:
    """Everything the aggregator derives for one request."""

    analysis_start: Optional[date]
    analysis_end: Optional[date]
    filtered_records: list[DailyRecord] = field(default_factory=list)
    display_stats: DisplayStats = field(default_factory=DisplayStats)
    weekly_aggregates: list[WeeklyAggregate] = field(default_factory=list)
    phases: list[Phase] = field(default_factory=list)
    correlation_matrix: Optional[CorrelationMatrix] = None
    regression: RegressionResult = field(default_factory=RegressionResult)
    regression_line: list[RegressionPoint] = field(default_factory=list)
    plateaus: list[Plateau] = field(default_factory=list)
    trend_changes: list[TrendChange] = field(default_factory=list)
    goal_achieved_date: Optional[date] = None
