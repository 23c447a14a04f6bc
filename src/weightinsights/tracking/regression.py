"""Ordinary least-squares weight trend with prediction intervals.

The fit is over (days since first point, weight). Each point gets a
two-sided prediction interval:

    ŷ ± t(1 - α/2, n - 2) × SEE × sqrt(1 + 1/n + (x - x̄)² / Sxx)

where SEE is the residual standard error and Sxx the sum of squares of
x about its mean. The interval is narrowest at the temporal centre of
the data and widens toward (and beyond) its ends.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import numpy as np
from scipy import stats

from weightinsights.config.settings import RegressionSettings
from weightinsights.tracking.models import DailyRecord, RegressionPoint, RegressionResult

logger = logging.getLogger(__name__)

# Below this many residual degrees of freedom the interval is not reported
MIN_DEGREES_OF_FREEDOM = 3


def select_regression_points(
    records: list[DailyRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[DailyRecord]:
    """Records in [start, end] with a weight that is not an outlier."""
    return [
        r
        for r in records
        if r.weight is not None
        and not r.is_outlier
        and (start is None or r.date >= start)
        and (end is None or r.date <= end)
    ]


def calculate_linear_regression(
    records: list[DailyRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
    settings: Optional[RegressionSettings] = None,
) -> RegressionResult:
    """
    Fit a linear weight trend over a date sub-range.

    Args:
        records: Processed records (outlier flags must be set)
        start: First date to include, None for no lower bound
        end: Last date to include, None for no upper bound
        settings: Minimum point count and significance level

    Returns:
        RegressionResult; empty when fewer than min_points qualify
    """
    if settings is None:
        settings = RegressionSettings()

    points = sorted(select_regression_points(records, start, end), key=lambda r: r.date)
    n = len(points)
    if n < settings.min_points:
        logger.debug("Regression skipped: %d points (need %d)", n, settings.min_points)
        return RegressionResult.empty()

    first_date = points[0].date
    x = np.array([(p.date - first_date).days for p in points], dtype=float)
    y = np.array([p.weight for p in points], dtype=float)

    x_mean = float(x.mean())
    sxx = float(((x - x_mean) ** 2).sum())
    if sxx == 0:
        return RegressionResult.empty()

    slope = float(((x - x_mean) * (y - y.mean())).sum() / sxx)
    intercept = float(y.mean() - slope * x_mean)

    fitted = intercept + slope * x
    residuals = y - fitted
    dof = n - 2

    see: Optional[float] = None
    t_value: Optional[float] = None
    if dof >= MIN_DEGREES_OF_FREEDOM:
        see = float(np.sqrt((residuals**2).sum() / dof))
        t_value = float(stats.t.ppf(1 - settings.confidence_alpha / 2, dof))

    result = RegressionResult(
        slope=slope,
        intercept=intercept,
        first_date=first_date,
        n=n,
        x_mean=x_mean,
        sxx=sxx,
        see=see,
        t_value=t_value,
    )
    result.points = [result.predict(p.date, value=p.weight) for p in points]  # type: ignore[misc]
    return result


def extend_regression_line(
    result: RegressionResult,
    range_start: Optional[date],
    range_end: Optional[date],
) -> list[RegressionPoint]:
    """Fitted line across the display range.

    Returns the regression points plus the line evaluated at the range
    boundaries when those fall outside the fitted points, in date order.
    """
    if result.is_empty:
        return []

    line = list(result.points)
    known = {p.date for p in line}
    for boundary in (range_start, range_end):
        if boundary is not None and boundary not in known:
            point = result.predict(boundary)
            if point is not None:
                line.append(point)
                known.add(boundary)
    return sorted(line, key=lambda p: p.date)
