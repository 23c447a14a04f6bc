"""Tests for the least-squares weight trend."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest
from conftest import day, make_records

from weightinsights.config.settings import RegressionSettings
from weightinsights.tracking.regression import (
    calculate_linear_regression,
    extend_regression_line,
    select_regression_points,
)

NOISE = [0.2, -0.1, 0.15, -0.25, 0.05, 0.1, -0.2, 0.3, -0.15, 0.0, 0.1, -0.05, 0.2, -0.2]


def noisy_line(n: int = 14):
    return make_records(weight=[80.0 - 0.1 * i + NOISE[i % len(NOISE)] for i in range(n)])


class TestSelectRegressionPoints:
    """Tests for select_regression_points function."""

    def test_excludes_outliers_and_missing(self) -> None:
        records = make_records(weight=[80.0, None, 79.8, 79.7])
        records[2] = replace(records[2], is_outlier=True)
        selected = select_regression_points(records)
        assert [r.date for r in selected] == [day(0), day(3)]

    def test_date_bounds_inclusive(self) -> None:
        records = make_records(weight=[80.0] * 10)
        selected = select_regression_points(records, day(2), day(5))
        assert [r.date for r in selected] == [day(i) for i in range(2, 6)]


class TestCalculateLinearRegression:
    """Tests for calculate_linear_regression function."""

    def test_exact_line(self) -> None:
        records = make_records(weight=[80.0 - 0.1 * i for i in range(10)])
        result = calculate_linear_regression(records)
        assert result.slope == pytest.approx(-0.1)
        assert result.intercept == pytest.approx(80.0)
        assert result.weekly_slope == pytest.approx(-0.7)
        assert result.first_date == day(0)
        assert len(result.points) == 10

    def test_matches_normal_equations(self) -> None:
        records = noisy_line()
        result = calculate_linear_regression(records)
        x = np.arange(len(records), dtype=float)
        y = np.array([r.weight for r in records])
        slope, intercept = np.polyfit(x, y, 1)
        assert result.slope == pytest.approx(slope)
        assert result.intercept == pytest.approx(intercept)

    def test_interval_contains_fit(self) -> None:
        result = calculate_linear_regression(noisy_line())
        for p in result.points:
            assert p.lower < p.fitted < p.upper

    def test_interval_widens_away_from_centre(self) -> None:
        result = calculate_linear_regression(noisy_line())
        widths = [p.upper - p.lower for p in result.points]
        centre = len(widths) // 2
        assert widths[0] > widths[centre]
        assert widths[-1] > widths[centre]

    def test_too_few_points_is_empty(self) -> None:
        records = make_records(weight=[80.0, 79.9, 79.8, 79.7, 79.6])
        result = calculate_linear_regression(records)
        assert result.is_empty
        assert result.points == []
        assert result.weekly_slope is None

    def test_outliers_excluded_from_fit(self) -> None:
        records = make_records(weight=[80.0 - 0.1 * i for i in range(10)])
        records[4] = replace(records[4], weight=95.0, is_outlier=True)
        result = calculate_linear_regression(records)
        assert result.slope == pytest.approx(-0.1)
        assert result.n == 9

    def test_few_degrees_of_freedom_gives_no_interval(self) -> None:
        records = make_records(weight=[80.0, 79.8, 79.9, 79.5])
        result = calculate_linear_regression(records, settings=RegressionSettings(min_points=3))
        assert result.slope is not None
        assert all(p.lower is None and p.upper is None for p in result.points)

    def test_single_date_is_empty(self) -> None:
        records = make_records(weight=[80.0] * 10)
        result = calculate_linear_regression(records, day(3), day(3), RegressionSettings(min_points=3))
        assert result.is_empty

    def test_sub_range(self) -> None:
        weights = [80.0] * 10 + [80.0 - 0.2 * i for i in range(10)]
        result = calculate_linear_regression(make_records(weight=weights), day(10), day(19))
        assert result.slope == pytest.approx(-0.2)
        assert result.first_date == day(10)


class TestExtendRegressionLine:
    """Tests for extend_regression_line function."""

    def test_adds_range_boundaries(self) -> None:
        records = noisy_line()
        result = calculate_linear_regression(records, day(3), day(10))
        line = extend_regression_line(result, day(0), day(13))
        assert line[0].date == day(0)
        assert line[-1].date == day(13)
        assert line[0].value is None
        assert line[0].fitted == pytest.approx(result.intercept + result.slope * -3)
        # Extrapolated bounds are wider than any fitted point's
        fitted_width = max(p.upper - p.lower for p in result.points)
        assert line[-1].upper - line[-1].lower > fitted_width

    def test_no_duplicate_boundary(self) -> None:
        result = calculate_linear_regression(noisy_line())
        line = extend_regression_line(result, day(0), day(13))
        assert len(line) == len(result.points)

    def test_empty_regression(self) -> None:
        result = calculate_linear_regression(make_records(weight=[80.0]))
        assert extend_regression_line(result, day(0), day(5)) == []
