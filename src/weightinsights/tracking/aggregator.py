"""Range-scoped statistics over the processed daily sequence.

`analyze` is the single entry point consumers use: given processed
records and an AnalysisRequest it filters the analysis range, runs the
regression over the regression range, detects phases, plateaus and trend
changes, builds weekly aggregates and the correlation matrix, and fills
in DisplayStats. It reads nothing outside its arguments.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Optional, Sequence

from weightinsights.config.settings import AggregationSettings, Settings
from weightinsights.tracking.correlation import calculate_correlation_matrix, pearson_correlation
from weightinsights.tracking.ema import estimate_daily_calorie_balance
from weightinsights.tracking.goals import (
    calculate_calorie_adjustment,
    calculate_required_rate,
    estimate_time_to_goal,
    find_goal_achieved_date,
    suggest_intake_range,
    target_rate_feedback,
)
from weightinsights.tracking.models import (
    AnalysisRequest,
    AnalysisResult,
    DailyRecord,
    DisplayStats,
    LoggingConsistency,
    Plateau,
    TrendChange,
    WeeklyAggregate,
)
from weightinsights.tracking.phases import detect_phases
from weightinsights.tracking.regression import calculate_linear_regression, extend_regression_line
from weightinsights.tracking.windows import mean_or_none, sample_std, valid_values

logger = logging.getLogger(__name__)

FieldGetter = Callable[[DailyRecord], Optional[float]]


def filter_range(
    records: Sequence[DailyRecord],
    start: Optional[date],
    end: Optional[date],
) -> list[DailyRecord]:
    """Records with start <= date <= end (None bounds are open)."""
    return [
        r
        for r in records
        if (start is None or r.date >= start) and (end is None or r.date <= end)
    ]


def week_start(day: date) -> date:
    """Monday of the ISO week containing day."""
    return day - timedelta(days=day.weekday())


def _mean_if_enough(values: Sequence[Optional[float]], min_count: int) -> Optional[float]:
    present = valid_values(values)
    return mean_or_none(present) if len(present) >= min_count else None


def calculate_weekly_stats(
    records: Sequence[DailyRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
    min_days: int = 3,
) -> list[WeeklyAggregate]:
    """
    Group records by ISO week and average each metric.

    A week is kept only when it has at least `min_days` valid smoothed
    rates and `min_days` valid net balances. Within a kept week, the
    weight, expenditure and intake averages are None unless they too have
    `min_days` valid days.

    Returns:
        WeeklyAggregate list sorted by week start
    """
    weeks: dict[date, list[DailyRecord]] = {}
    for r in filter_range(records, start, end):
        weeks.setdefault(week_start(r.date), []).append(r)

    aggregates = []
    for monday in sorted(weeks):
        week = weeks[monday]
        rates = valid_values([r.smoothed_weekly_rate for r in week])
        balances = valid_values([r.net_balance for r in week])
        if len(rates) < min_days or len(balances) < min_days:
            continue
        aggregates.append(
            WeeklyAggregate(
                week_key=monday.strftime("%G-W%V"),
                week_start=monday,
                avg_net_balance=mean_or_none(balances),
                weekly_rate=mean_or_none(rates),
                avg_weight=_mean_if_enough([r.trend_weight for r in week], min_days),
                avg_expenditure=_mean_if_enough([r.expenditure for r in week], min_days),
                avg_intake=_mean_if_enough([r.calorie_intake for r in week], min_days),
            )
        )
    return aggregates


def calculate_net_cal_rate_correlation(
    weekly: Sequence[WeeklyAggregate],
    min_weeks: int = 4,
) -> Optional[float]:
    """Correlation between weekly average balance and weekly rate."""
    pairs = [
        (w.avg_net_balance, w.weekly_rate)
        for w in weekly
        if w.avg_net_balance is not None and w.weekly_rate is not None
    ]
    if len(pairs) < min_weeks:
        return None
    balances, rates = zip(*pairs)
    return pearson_correlation(balances, rates)


def detect_plateaus(
    records: Sequence[DailyRecord],
    settings: Optional[AggregationSettings] = None,
) -> list[Plateau]:
    """
    Find sustained runs where |smoothed weekly rate| stays below threshold.

    A record with no rate ends the run, as does a rate above threshold.
    """
    if settings is None:
        settings = AggregationSettings()
    min_days = settings.plateau_min_weeks * 7

    plateaus: list[Plateau] = []
    run_start: Optional[date] = None
    run_end: Optional[date] = None

    def _close() -> None:
        if run_start is not None and run_end is not None:
            if (run_end - run_start).days >= min_days - 1:
                plateaus.append(Plateau(start_date=run_start, end_date=run_end))

    for r in records:
        rate = r.smoothed_weekly_rate
        if rate is not None and abs(rate) < settings.plateau_rate_threshold:
            if run_start is None:
                run_start = r.date
            run_end = r.date
        else:
            _close()
            run_start = run_end = None

    _close()
    return plateaus


def _sma_slope(segment: Sequence[DailyRecord]) -> Optional[float]:
    with_sma = [r for r in segment if r.sma is not None]
    if len(with_sma) < 2:
        return None
    first, last = with_sma[0], with_sma[-1]
    days = (last.date - first.date).days
    if days <= 0:
        return None
    return (last.sma - first.sma) / days  # type: ignore[operator]


def detect_trend_changes(
    records: Sequence[DailyRecord],
    settings: Optional[AggregationSettings] = None,
) -> list[TrendChange]:
    """
    Mark dates where the SMA slope after differs from the slope before.

    Compares the `trend_change_window` records before index i with the
    window starting at i. Magnitude is the daily slope difference.
    """
    if settings is None:
        settings = AggregationSettings()
    window = settings.trend_change_window
    if len(records) < window * 2:
        return []

    min_diff = settings.trend_change_min_slope_diff / 7
    changes = []
    for i in range(window, len(records) - window):
        before = _sma_slope(records[i - window : i])
        after = _sma_slope(records[i : i + window])
        if before is None or after is None:
            continue
        diff = after - before
        if abs(diff) >= min_diff:
            changes.append(TrendChange(date=records[i].date, magnitude=diff))
    return changes


def calculate_logging_consistency(
    records: Sequence[DailyRecord],
    getter: FieldGetter,
    start: date,
    end: date,
) -> LoggingConsistency:
    """Count of days in [start, end] with the metric present."""
    total_days = (end - start).days + 1
    if total_days <= 0:
        return LoggingConsistency()
    count = sum(1 for r in filter_range(records, start, end) if getter(r) is not None)
    return LoggingConsistency(count=count, total_days=total_days, percentage=count / total_days * 100)


def calculate_range_volatility(records: Sequence[DailyRecord]) -> Optional[float]:
    """Sample std of (weight - SMA) for non-outlier days."""
    deviations = [
        r.weight - r.sma
        for r in records
        if r.weight is not None and r.sma is not None and not r.is_outlier
    ]
    return sample_std(deviations) if len(deviations) >= 2 else None


def calculate_current_rate(records: Sequence[DailyRecord], end: date) -> Optional[float]:
    """Most recent smoothed weekly rate on or before end."""
    for r in reversed(records):
        if r.date <= end and r.smoothed_weekly_rate is not None:
            return r.smoothed_weekly_rate
    return None


def _last(values: Sequence[Optional[float]]) -> Optional[float]:
    present = valid_values(values)
    return present[-1] if present else None


def _first(values: Sequence[Optional[float]]) -> Optional[float]:
    present = valid_values(values)
    return present[0] if present else None


def _difference(a: Optional[float], b: Optional[float]) -> Optional[float]:
    return a - b if a is not None and b is not None else None


def _history_stats(stats: DisplayStats, records: Sequence[DailyRecord]) -> None:
    weighed = [r for r in records if r.weight is not None]
    if weighed:
        heaviest = max(weighed, key=lambda r: r.weight)  # type: ignore[arg-type,return-value]
        lightest = min(weighed, key=lambda r: r.weight)  # type: ignore[arg-type,return-value]
        stats.starting_weight = weighed[0].weight
        stats.current_weight = weighed[-1].weight
        stats.max_weight, stats.max_weight_date = heaviest.weight, heaviest.date
        stats.min_weight, stats.min_weight_date = lightest.weight, lightest.date
        stats.total_change = _difference(stats.current_weight, stats.starting_weight)

    current_sma = _last([r.sma for r in records])
    stats.current_sma = current_sma if current_sma is not None else stats.current_weight

    stats.starting_lbm = _first([r.lbm_sma for r in records])
    stats.current_lbm_sma = _last([r.lbm_sma for r in records])
    stats.total_lbm_change = _difference(stats.current_lbm_sma, stats.starting_lbm)
    stats.current_fm_sma = _last([r.fm_sma for r in records])
    stats.total_fm_change = _difference(stats.current_fm_sma, _first([r.fm_sma for r in records]))


def _average(records: Sequence[DailyRecord], getter: FieldGetter) -> Optional[float]:
    return mean_or_none([getter(r) for r in records])


def analyze(
    records: list[DailyRecord],
    request: Optional[AnalysisRequest] = None,
    settings: Optional[Settings] = None,
) -> AnalysisResult:
    """
    Derive every range-scoped statistic for one request.

    Args:
        records: Output of process_records, ascending by date
        request: Analysis/regression ranges, goal and reference date
        settings: Full settings (regression, phases, correlation, aggregation)

    Returns:
        AnalysisResult; fields degrade to None/empty when data is missing
    """
    if request is None:
        request = AnalysisRequest()
    if settings is None:
        settings = Settings()
    agg = settings.aggregation
    kcal_per_kg = settings.analysis.kcal_per_kg

    if not records:
        logger.debug("No processed records; returning empty analysis")
        return AnalysisResult(analysis_start=request.analysis_start, analysis_end=request.analysis_end)

    start = request.analysis_start or records[0].date
    end = request.analysis_end or records[-1].date
    reference_date = request.reference_date or end
    goal = request.goal

    result = AnalysisResult(analysis_start=start, analysis_end=end)
    stats = result.display_stats
    _history_stats(stats, records)

    result.phases = detect_phases(records, settings.phases)
    result.correlation_matrix = calculate_correlation_matrix(records, settings.correlation)
    result.plateaus = detect_plateaus(records, agg)
    result.trend_changes = detect_trend_changes(records, agg)

    filtered = filter_range(records, start, end) if start <= end else []
    result.filtered_records = filtered

    if filtered:
        result.weekly_aggregates = calculate_weekly_stats(records, start, end, agg.weekly_min_days)
        stats.net_cal_rate_correlation = calculate_net_cal_rate_correlation(
            result.weekly_aggregates, agg.min_weeks_for_correlation
        )
        stats.current_weekly_rate = calculate_current_rate(records, end)
        stats.volatility = calculate_range_volatility(filtered)
        stats.rolling_volatility = _last([r.rolling_volatility for r in filtered])
        stats.avg_intake = _average(filtered, lambda r: r.calorie_intake)
        stats.avg_expenditure = _average(filtered, lambda r: r.expenditure)
        stats.avg_net_balance = _average(filtered, lambda r: r.net_balance)
        stats.avg_tdee_difference = _average(filtered, lambda r: r.avg_tdee_difference)
        stats.avg_tdee_adaptive = _average(filtered, lambda r: r.adaptive_tdee)

        rates = valid_values([r.smoothed_weekly_rate for r in filtered])
        stats.rate_consistency = sample_std(rates) if len(rates) >= 2 else None
        stats.weight_data_consistency = calculate_logging_consistency(
            records, lambda r: r.weight, start, end
        )
        stats.calorie_data_consistency = calculate_logging_consistency(
            records, lambda r: r.calorie_intake, start, end
        )

        regression_start = request.regression_start or start
        regression_end = request.regression_end or end
        result.regression = calculate_linear_regression(
            records, regression_start, regression_end, settings.regression
        )
        result.regression_line = extend_regression_line(result.regression, start, end)
        stats.regression_slope_weekly = result.regression.weekly_slope
        stats.regression_start_date = regression_start

        trend = (
            stats.regression_slope_weekly
            if stats.regression_slope_weekly is not None
            else stats.current_weekly_rate
        )
        if trend is not None:
            stats.estimated_deficit_surplus = estimate_daily_calorie_balance(trend, kcal_per_kg)
            if stats.avg_intake is not None:
                stats.avg_tdee_weight_change = stats.avg_intake - stats.estimated_deficit_surplus

        result.goal_achieved_date = find_goal_achieved_date(
            filtered, goal.weight, agg.goal_tolerance_kg
        )

    _goal_stats(stats, request, reference_date, result.goal_achieved_date is not None, settings)

    logger.debug(
        "Analysis %s..%s: %d records, %d weeks, %d phases",
        start,
        end,
        len(filtered),
        len(result.weekly_aggregates),
        len(result.phases),
    )
    return result


def _goal_stats(
    stats: DisplayStats,
    request: AnalysisRequest,
    reference_date: date,
    achieved: bool,
    settings: Settings,
) -> None:
    goal = request.goal
    agg = settings.aggregation
    kcal_per_kg = settings.analysis.kcal_per_kg

    stats.target_weight = goal.weight
    stats.target_rate = goal.target_rate
    stats.target_date = goal.date

    reference_weight = stats.current_sma if stats.current_sma is not None else stats.current_weight
    current_trend = (
        stats.regression_slope_weekly
        if stats.regression_slope_weekly is not None
        else stats.current_weekly_rate
    )

    stats.weight_to_goal = _difference(goal.weight, reference_weight)
    stats.estimated_time_to_goal = estimate_time_to_goal(
        reference_weight, goal.weight, current_trend, achieved
    )
    if goal.date is not None and not achieved:
        stats.required_rate_for_goal = calculate_required_rate(
            reference_weight, goal.weight, goal.date, reference_date
        )

    baseline_tdee = next(
        (
            v
            for v in (stats.avg_tdee_adaptive, stats.avg_tdee_weight_change, stats.avg_expenditure)
            if v is not None
        ),
        None,
    )

    if baseline_tdee is not None:
        stats.required_calorie_adjustment = calculate_calorie_adjustment(
            goal.target_rate, current_trend, kcal_per_kg
        )
        if stats.required_rate_for_goal is not None:
            stats.required_net_calories = estimate_daily_calorie_balance(
                stats.required_rate_for_goal, kcal_per_kg
            )
            stats.suggested_intake_range = suggest_intake_range(
                baseline_tdee,
                stats.required_rate_for_goal,
                agg.suggested_intake_margin,
                kcal_per_kg,
            )

    feedback = target_rate_feedback(current_trend, goal.target_rate, agg.on_target_tolerance)
    stats.target_rate_feedback = feedback.text
    stats.target_rate_status = feedback.status
