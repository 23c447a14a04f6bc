"""Tests for range-scoped statistics and the analyze entry point."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import day, make_records

from weightinsights.config.settings import AggregationSettings
from weightinsights.tracking.aggregator import (
    analyze,
    calculate_current_rate,
    calculate_logging_consistency,
    calculate_net_cal_rate_correlation,
    calculate_range_volatility,
    calculate_weekly_stats,
    detect_plateaus,
    detect_trend_changes,
    filter_range,
    week_start,
)
from weightinsights.tracking.models import AnalysisRequest, Goal, PhaseType, WeeklyAggregate
from weightinsights.tracking.service import build_records


class TestFilterRange:
    """Tests for filter_range and week_start helpers."""

    def test_inclusive_bounds(self) -> None:
        records = make_records(weight=[80.0] * 10)
        assert [r.date for r in filter_range(records, day(2), day(4))] == [day(2), day(3), day(4)]

    def test_open_bounds(self) -> None:
        records = make_records(weight=[80.0] * 5)
        assert len(filter_range(records, None, None)) == 5
        assert len(filter_range(records, day(3), None)) == 2

    def test_week_start_is_monday(self) -> None:
        assert week_start(day(0)) == day(0)
        assert week_start(day(6)) == day(0)
        assert week_start(day(7)) == day(7)


class TestWeeklyStats:
    """Tests for calculate_weekly_stats function."""

    def test_groups_by_iso_week(self) -> None:
        records = make_records(
            weight=[80.0] * 14,
            smoothed_weekly_rate=[-0.5] * 7 + [-0.3] * 7,
            net_balance=[-500.0] * 7 + [-300.0] * 7,
            calorie_intake=[2000.0] * 14,
        )
        weeks = calculate_weekly_stats(records)
        assert [w.week_key for w in weeks] == ["2024-W01", "2024-W02"]
        assert weeks[0].week_start == day(0)
        assert weeks[0].weekly_rate == pytest.approx(-0.5)
        assert weeks[1].avg_net_balance == pytest.approx(-300.0)
        assert weeks[1].avg_intake == pytest.approx(2000.0)

    def test_sparse_week_dropped(self) -> None:
        rates = [-0.5] * 7 + [-0.5, -0.5] + [None] * 5
        balances = [-500.0] * 14
        weeks = calculate_weekly_stats(make_records(smoothed_weekly_rate=rates, net_balance=balances))
        assert len(weeks) == 1

    def test_sparse_metric_is_none(self) -> None:
        records = make_records(
            smoothed_weekly_rate=[-0.5] * 7,
            net_balance=[-500.0] * 7,
            expenditure=[2500.0, 2500.0] + [None] * 5,
        )
        week = calculate_weekly_stats(records)[0]
        assert week.avg_expenditure is None
        assert week.avg_weight is None

    def test_range_restricts_weeks(self) -> None:
        records = make_records(smoothed_weekly_rate=[-0.5] * 21, net_balance=[-500.0] * 21)
        weeks = calculate_weekly_stats(records, day(7), day(13))
        assert [w.week_start for w in weeks] == [day(7)]

    def test_net_cal_rate_correlation(self) -> None:
        weekly = [
            WeeklyAggregate(f"2024-W0{i + 1}", day(7 * i), -500.0 + 100 * i, -0.5 + 0.1 * i, None, None, None)
            for i in range(5)
        ]
        assert calculate_net_cal_rate_correlation(weekly) == pytest.approx(1.0)
        assert calculate_net_cal_rate_correlation(weekly[:3]) is None


class TestPlateaus:
    """Tests for detect_plateaus function."""

    def test_long_flat_run(self) -> None:
        rates = [0.0] * 25 + [-0.5] * 10
        plateaus = detect_plateaus(make_records(smoothed_weekly_rate=rates))
        assert len(plateaus) == 1
        assert plateaus[0].start_date == day(0)
        assert plateaus[0].end_date == day(24)

    def test_short_flat_run_ignored(self) -> None:
        rates = [-0.5] * 10 + [0.02] * 10 + [-0.5] * 10
        assert detect_plateaus(make_records(smoothed_weekly_rate=rates)) == []

    def test_missing_rate_breaks_run(self) -> None:
        rates = [0.0] * 12 + [None] + [0.0] * 12
        assert detect_plateaus(make_records(smoothed_weekly_rate=rates)) == []

    def test_custom_settings(self) -> None:
        rates = [0.1] * 10
        settings = AggregationSettings(plateau_rate_threshold=0.2, plateau_min_weeks=1)
        assert len(detect_plateaus(make_records(smoothed_weekly_rate=rates), settings)) == 1


class TestTrendChanges:
    """Tests for detect_trend_changes function."""

    def test_reversal_detected(self) -> None:
        smas = [80.0 - 0.1 * min(k, 19) + 0.1 * max(0, k - 19) for k in range(40)]
        changes = detect_trend_changes(make_records(sma=smas))
        dates = [c.date for c in changes]
        assert day(20) in dates
        assert all(c.magnitude > 0 for c in changes)

    def test_steady_trend_has_no_changes(self) -> None:
        smas = [80.0 - 0.1 * k for k in range(40)]
        assert detect_trend_changes(make_records(sma=smas)) == []

    def test_too_short(self) -> None:
        assert detect_trend_changes(make_records(sma=[80.0] * 20)) == []


class TestRangeHelpers:
    """Tests for consistency, volatility and current-rate helpers."""

    def test_logging_consistency(self) -> None:
        records = make_records(weight=[80.0, None] * 5)
        result = calculate_logging_consistency(records, lambda r: r.weight, day(0), day(9))
        assert result.count == 5
        assert result.total_days == 10
        assert result.percentage == pytest.approx(50.0)

    def test_logging_consistency_counts_unlogged_dates(self) -> None:
        """Dates with no record at all count toward the total."""
        records = make_records(weight=[80.0] * 5)
        result = calculate_logging_consistency(records, lambda r: r.weight, day(0), day(9))
        assert result.percentage == pytest.approx(50.0)

    def test_range_volatility_excludes_outliers(self) -> None:
        records = make_records(weight=[80.0, 80.2, 79.8, 85.0], sma=[80.0] * 4)
        records[3].is_outlier = True
        assert calculate_range_volatility(records) == pytest.approx(0.2)

    def test_current_rate_on_or_before_end(self) -> None:
        records = make_records(smoothed_weekly_rate=[-0.5, -0.4, None, -0.2])
        assert calculate_current_rate(records, day(2)) == pytest.approx(-0.4)
        assert calculate_current_rate(records, day(3)) == pytest.approx(-0.2)


class TestAnalyze:
    """Tests for the analyze entry point."""

    def test_empty_records(self) -> None:
        result = analyze([])
        assert result.filtered_records == []
        assert result.phases == []
        assert result.regression.is_empty
        assert result.display_stats.estimated_time_to_goal == "N/A"

    def test_full_history(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        result = analyze(records)
        stats = result.display_stats

        assert result.analysis_start == day(0)
        assert result.analysis_end == day(59)
        assert len(result.filtered_records) == 60

        assert stats.starting_weight == pytest.approx(90.0)
        assert stats.current_weight == pytest.approx(87.05)
        assert stats.total_change == pytest.approx(-2.95)
        assert stats.max_weight_date == day(0)
        assert stats.min_weight_date == day(59)
        assert stats.current_sma == pytest.approx(87.2)

        assert stats.regression_slope_weekly == pytest.approx(-0.35, abs=1e-3)
        assert stats.current_weekly_rate == pytest.approx(-0.35, abs=1e-3)
        assert stats.avg_intake == pytest.approx(2000.0)
        assert stats.avg_net_balance == pytest.approx(-400.0)
        assert stats.estimated_deficit_surplus == pytest.approx(-385.0, abs=1.0)
        assert stats.avg_tdee_weight_change == pytest.approx(2385.0, abs=1.0)
        assert stats.weight_data_consistency.percentage == pytest.approx(100.0)
        assert stats.current_lbm_sma is not None

        assert len(result.weekly_aggregates) == 9
        assert result.weekly_aggregates[0].week_key == "2024-W01"
        # Constant weekly balance has no variance
        assert stats.net_cal_rate_correlation == 0.0

        assert [p.phase_type for p in result.phases] == [PhaseType.CUT]
        assert result.plateaus == []
        assert result.correlation_matrix is not None

    def test_analysis_range(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        request = AnalysisRequest(analysis_start=day(30), analysis_end=day(44))
        result = analyze(records, request)
        assert len(result.filtered_records) == 15
        assert result.regression.first_date == day(30)
        assert result.regression_line[0].date == day(30)
        assert result.regression_line[-1].date == day(44)
        # Phases use the whole history
        assert result.phases[0].start_date < day(30)

    def test_separate_regression_range(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        request = AnalysisRequest(
            analysis_start=day(0),
            analysis_end=day(59),
            regression_start=day(40),
            regression_end=day(59),
        )
        result = analyze(records, request)
        assert result.regression.first_date == day(40)
        assert result.display_stats.regression_start_date == day(40)
        # Line still spans the analysis range
        assert result.regression_line[0].date == day(0)

    def test_inverted_range(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        result = analyze(records, AnalysisRequest(analysis_start=day(40), analysis_end=day(10)))
        assert result.filtered_records == []
        assert result.regression.is_empty
        assert result.display_stats.starting_weight == pytest.approx(90.0)

    def test_goal_statistics(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        goal = Goal(weight=85.0, date=day(59) + timedelta(days=56), target_rate=-0.5)
        stats = analyze(records, AnalysisRequest(goal=goal)).display_stats

        assert stats.target_weight == 85.0
        assert stats.weight_to_goal == pytest.approx(-2.2)
        assert stats.estimated_time_to_goal == "~6 weeks"
        assert stats.required_rate_for_goal == pytest.approx(-0.275)
        assert stats.required_net_calories == pytest.approx(-302.5)
        low, high = stats.suggested_intake_range
        assert high - low == 200
        assert stats.required_calorie_adjustment == pytest.approx(-165.0, abs=1.0)
        assert stats.target_rate_feedback.startswith("Faster")
        assert stats.target_rate_status == "warn"

    def test_goal_achieved(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        result = analyze(records, AnalysisRequest(goal=Goal(weight=88.0)))
        assert result.goal_achieved_date is not None
        achieved = next(r for r in records if r.date == result.goal_achieved_date)
        assert abs(achieved.sma - 88.0) <= 0.1
        assert result.display_stats.estimated_time_to_goal == "Goal Achieved!"
        assert result.display_stats.required_rate_for_goal is None

    def test_reference_date_overrides_analysis_end(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        goal = Goal(weight=85.0, date=day(59) + timedelta(days=56))
        request = AnalysisRequest(goal=goal, reference_date=day(59) + timedelta(days=28))
        stats = analyze(records, request).display_stats
        assert stats.required_rate_for_goal == pytest.approx(-0.55)

    def test_no_goal(self, linear_loss_raw) -> None:
        stats = analyze(build_records(linear_loss_raw)).display_stats
        assert stats.weight_to_goal is None
        assert stats.suggested_intake_range is None
        assert stats.target_rate_feedback == "N/A"
