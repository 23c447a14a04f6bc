"""Pytest fixtures for weightinsights tests."""

from __future__ import annotations

import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from weightinsights.tracking.models import DailyRecord, RawHealthData

START = date(2024, 1, 1)  # a Monday


def day(offset: int) -> date:
    """Date `offset` days after START."""
    return START + timedelta(days=offset)


def key(offset: int) -> str:
    """Unpadded date key, as some exporters write them."""
    d = day(offset)
    return f"{d.year}-{d.month}-{d.day}"


def make_records(**series: list) -> list[DailyRecord]:
    """Build consecutive DailyRecords starting at START from per-field lists.

    Example:
        make_records(weight=[80.0, 79.9], calorie_intake=[2000, None])
    """
    length = max(len(values) for values in series.values())
    records = []
    for i in range(length):
        values = {name: seq[i] for name, seq in series.items() if i < len(seq)}
        records.append(DailyRecord(date=day(i), **values))
    return records


@pytest.fixture
def linear_loss_raw() -> RawHealthData:
    """60 days of steady loss (0.05 kg/day) with full intake and expenditure logs."""
    return RawHealthData(
        weights={key(i): round(90.0 - 0.05 * i, 3) for i in range(60)},
        calorie_intake={key(i): 2000.0 for i in range(60)},
        expenditure={key(i): 2400.0 for i in range(60)},
        protein={key(i): 150.0 + (i % 5) * 5 for i in range(60)},
        carbs={key(i): 200.0 - (i % 3) * 10 for i in range(60)},
        fat={key(i): 60.0 + (i % 4) * 2 for i in range(60)},
        body_fat={key(i): 25.0 - 0.02 * i for i in range(0, 60, 3)},
    )


@pytest.fixture
def sample_raw_mapping() -> dict:
    """Decoded JSON input with mixed key padding and a few bad entries."""
    return {
        "weights": {
            "2024-01-01": 80.0,
            "2024-1-2": 79.8,
            "2024-01-03": "79.9",
            "not-a-date": 70.0,
            "2024-01-04": "heavy",
        },
        "calorieIntake": {"2024-1-1": 2100, "2024-01-02": 1900},
        "expenditure": {"2024-01-01": 2500},
        "bodyFat": {"2024-01-01": 20.0},
        "protein": {"2024-01-01": 160},
        "workouts": {
            "2024-01-02": {"workoutCount": 1, "totalSets": 18, "totalVolume": 5400.5, "isRestDay": False},
        },
    }


@pytest.fixture
def raw_json_file(tmp_path: Path, linear_loss_raw: RawHealthData) -> Path:
    """Write the linear-loss dataset in the JSON input format."""
    path = tmp_path / "health.json"
    payload = {
        "weights": linear_loss_raw.weights,
        "calorieIntake": linear_loss_raw.calorie_intake,
        "expenditure": linear_loss_raw.expenditure,
        "bodyFat": linear_loss_raw.body_fat,
        "protein": linear_loss_raw.protein,
        "carbs": linear_loss_raw.carbs,
        "fat": linear_loss_raw.fat,
    }
    path.write_text(json.dumps(payload))
    return path
