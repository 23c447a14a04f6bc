"""Serialization of processed records and analysis results.

Dict output is JSON-safe (dates as ISO strings, enums as values) and is
what the CLI prints with --json. Records can also be flattened into a
pandas DataFrame for CSV export.
"""

from __future__ import annotations

from dataclasses import asdict, fields
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Sequence, Union

import pandas as pd

from weightinsights.tracking.models import (
    AnalysisResult,
    CorrelationMatrix,
    DailyRecord,
    Phase,
    RegressionResult,
    WeeklyAggregate,
)

RECORD_COLUMNS = [f.name for f in fields(DailyRecord)]


def _to_json_safe(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_safe(v) for v in value]
    return value


def serialize_record(record: DailyRecord) -> dict[str, Any]:
    """Convert a DailyRecord to a JSON-serializable dict."""
    return _to_json_safe(asdict(record))


def serialize_phase(phase: Phase) -> dict[str, Any]:
    """Convert a Phase, including its derived durations."""
    data = _to_json_safe(asdict(phase))
    data["duration_days"] = phase.duration_days
    data["duration_weeks"] = phase.duration_weeks
    return data


def serialize_weekly_aggregate(week: WeeklyAggregate) -> dict[str, Any]:
    return _to_json_safe(asdict(week))


def serialize_regression(result: RegressionResult) -> dict[str, Any]:
    """Slope, intercept and points of a regression result."""
    return {
        "slope": result.slope,
        "intercept": result.intercept,
        "weekly_slope": result.weekly_slope,
        "points": [_to_json_safe(asdict(p)) for p in result.points],
    }


def serialize_correlation_matrix(matrix: CorrelationMatrix) -> dict[str, Any]:
    return {"keys": matrix.keys, "labels": matrix.labels, "values": matrix.values}


def serialize_analysis_result(
    result: AnalysisResult,
    include_records: bool = False,
) -> dict[str, Any]:
    """
    Convert an AnalysisResult to a JSON-serializable dict.

    Args:
        result: Aggregator output
        include_records: Also include the filtered daily records

    Returns:
        Nested dict of plain values
    """
    data: dict[str, Any] = {
        "analysis_start": _to_json_safe(result.analysis_start),
        "analysis_end": _to_json_safe(result.analysis_end),
        "display_stats": _to_json_safe(asdict(result.display_stats)),
        "weekly_aggregates": [serialize_weekly_aggregate(w) for w in result.weekly_aggregates],
        "phases": [serialize_phase(p) for p in result.phases],
        "correlation_matrix": (
            serialize_correlation_matrix(result.correlation_matrix)
            if result.correlation_matrix is not None
            else None
        ),
        "regression": serialize_regression(result.regression),
        "regression_line": [_to_json_safe(asdict(p)) for p in result.regression_line],
        "plateaus": [_to_json_safe(asdict(p)) for p in result.plateaus],
        "trend_changes": [_to_json_safe(asdict(t)) for t in result.trend_changes],
        "goal_achieved_date": _to_json_safe(result.goal_achieved_date),
    }
    if include_records:
        data["records"] = [serialize_record(r) for r in result.filtered_records]
    return data


def records_to_dataframe(records: Sequence[DailyRecord]) -> pd.DataFrame:
    """Flatten records into a DataFrame indexed by date."""
    df = pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
    df["date"] = pd.to_datetime(df["date"])
    return df.set_index("date")


def export_records_csv(records: Sequence[DailyRecord], path: Union[str, Path]) -> Path:
    """Write processed records to CSV and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records_to_dataframe(records).to_csv(path)
    return path
