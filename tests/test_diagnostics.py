"""Tests for plain-text analysis reports."""

from __future__ import annotations

from datetime import timedelta

from conftest import day

from weightinsights.tracking.aggregator import analyze
from weightinsights.tracking.diagnostics import (
    format_analysis_report,
    format_goal_report,
    format_phase,
    format_weight_report,
    strongest_correlations,
)
from weightinsights.tracking.models import (
    AnalysisRequest,
    CorrelationMatrix,
    DisplayStats,
    Goal,
    Phase,
    PhaseType,
)
from weightinsights.tracking.service import build_records


class TestFormatWeightReport:
    """Tests for format_weight_report function."""

    def test_missing_values_shown_as_na(self) -> None:
        text = format_weight_report(DisplayStats())
        assert "Weight Summary" in text
        assert "Current weight:  N/A" in text
        assert "Lean mass" not in text

    def test_values(self) -> None:
        stats = DisplayStats(current_weight=80.04, total_change=-2.5, current_lbm_sma=62.0, total_lbm_change=0.3)
        text = format_weight_report(stats)
        assert "80.0 kg" in text
        assert "-2.5 kg" in text
        assert "+0.3 kg" in text


class TestFormatGoalReport:
    """Tests for format_goal_report function."""

    def test_no_goal(self) -> None:
        assert format_goal_report(DisplayStats()) == ""

    def test_goal_lines(self) -> None:
        stats = DisplayStats(
            target_weight=75.0,
            weight_to_goal=-5.0,
            estimated_time_to_goal="~2 months",
            required_rate_for_goal=-0.5,
            target_date=day(70),
            suggested_intake_range=(1850, 2050),
        )
        text = format_goal_report(stats)
        assert "~2 months" in text
        assert "1850-2050 kcal/day" in text
        assert "2024-03-11" in text


class TestFormatPhase:
    """Tests for format_phase function."""

    def test_one_line(self) -> None:
        phase = Phase(PhaseType.BULK, day(0), day(27), 0.25, 2900.0, 1.0)
        text = format_phase(phase)
        assert text.startswith("bulk")
        assert "(4 wk)" in text
        assert "+0.25 kg/wk" in text
        assert "\n" not in text


class TestStrongestCorrelations:
    """Tests for strongest_correlations function."""

    def test_ordered_by_magnitude(self) -> None:
        matrix = CorrelationMatrix(
            keys=["a", "b", "c"],
            labels=["A", "B", "C"],
            values=[[1.0, 0.2, -0.9], [0.2, 1.0, None], [-0.9, None, 1.0]],
        )
        assert strongest_correlations(matrix) == [("A", "C", -0.9), ("A", "B", 0.2)]
        assert strongest_correlations(matrix, limit=1) == [("A", "C", -0.9)]


class TestFormatAnalysisReport:
    """Tests for format_analysis_report function."""

    def test_full_report(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        goal = Goal(weight=85.0, date=day(59) + timedelta(days=56))
        text = format_analysis_report(analyze(records, AnalysisRequest(goal=goal)))
        assert "Weight Summary" in text
        assert "Analysis Range (2024-01-01 to 2024-02-29)" in text
        assert "Goal Progress" in text
        assert "Phases:" in text
        assert "Weight logged:       60/60 days (100%)" in text
