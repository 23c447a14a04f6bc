"""Daily weight, intake and expenditure analytics.

Data flows Merger -> SeriesProcessor -> {regression, phases, correlation}
-> aggregator. Every stage is a pure function of its input records and
an explicit settings object.

Key components:
- merge_raw_data: date-keyed raw series -> ordered DailyRecord list
- process_records: SMA/EMA, outliers, volatility, rates, adaptive TDEE
- calculate_linear_regression: OLS trend with prediction intervals
- detect_phases: bulk / cut / maintenance segmentation
- calculate_correlation_matrix: Pearson matrix over derived variables
- analyze: range-scoped statistics, weekly summaries and goal figures
"""

from __future__ import annotations

from weightinsights.tracking.aggregator import analyze, calculate_weekly_stats
from weightinsights.tracking.correlation import calculate_correlation_matrix
from weightinsights.tracking.merger import (
    InvalidInputError,
    load_raw_data,
    merge_raw_data,
    raw_data_from_mapping,
)
from weightinsights.tracking.models import (
    AnalysisRequest,
    AnalysisResult,
    CorrelationMatrix,
    DailyRecord,
    Goal,
    Phase,
    PhaseType,
    RawHealthData,
    RegressionResult,
    WeeklyAggregate,
)
from weightinsights.tracking.phases import detect_phases
from weightinsights.tracking.pipeline import process_records
from weightinsights.tracking.regression import calculate_linear_regression
from weightinsights.tracking.service import RecomputeQueue, build_records, recompute

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "CorrelationMatrix",
    "DailyRecord",
    "Goal",
    "InvalidInputError",
    "Phase",
    "PhaseType",
    "RawHealthData",
    "RecomputeQueue",
    "RegressionResult",
    "WeeklyAggregate",
    "analyze",
    "build_records",
    "calculate_correlation_matrix",
    "calculate_linear_regression",
    "calculate_weekly_stats",
    "detect_phases",
    "load_raw_data",
    "merge_raw_data",
    "process_records",
    "raw_data_from_mapping",
    "recompute",
]
