"""Merge independently keyed raw series into one ordered daily sequence.

Each raw series maps a date string to a value. Series are sparse and may
use different paddings for the same date ("2024-1-5" vs "2024-01-05"), so
keys are normalised to calendar dates before merging.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

from weightinsights.tracking.models import DailyRecord, RawHealthData, WorkoutEntry

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when the raw input does not have the expected shape."""


# JSON key -> RawHealthData attribute
SERIES_KEYS = {
    "weights": "weights",
    "calorieIntake": "calorie_intake",
    "expenditure": "expenditure",
    "googleFitExpenditure": "expenditure",
    "bodyFat": "body_fat",
    "protein": "protein",
    "carbs": "carbs",
    "fat": "fat",
}

# RawHealthData attribute -> DailyRecord field
RECORD_FIELDS = {
    "weights": "weight",
    "body_fat": "body_fat_pct",
    "calorie_intake": "calorie_intake",
    "expenditure": "expenditure",
    "protein": "protein_g",
    "carbs": "carbs_g",
    "fat": "fat_g",
}


def parse_date_key(key: str) -> Optional[date]:
    """Parse a year-month-day key, zero-padded or not.

    Returns:
        The calendar date, or None if the key is not a valid date
    """
    if not isinstance(key, str):
        return None
    try:
        return datetime.strptime(key.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def coerce_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _parse_workout(value: Any) -> Optional[WorkoutEntry]:
    if not isinstance(value, dict):
        return None

    def _int(name: str) -> Optional[int]:
        number = coerce_number(value.get(name))
        return int(number) if number is not None else None

    is_rest_day = value.get("isRestDay")
    return WorkoutEntry(
        workout_count=_int("workoutCount"),
        total_sets=_int("totalSets"),
        total_volume=coerce_number(value.get("totalVolume")),
        is_rest_day=is_rest_day if isinstance(is_rest_day, bool) else None,
    )


def raw_data_from_mapping(data: Any) -> RawHealthData:
    """Build RawHealthData from a decoded JSON object.

    Missing series are treated as empty. Series that are present but are
    not mappings make the whole input invalid.

    Raises:
        InvalidInputError: If the top level or a series is not a mapping
    """
    if not isinstance(data, dict):
        raise InvalidInputError(
            f"Raw data must be a JSON object, got {type(data).__name__}"
        )

    raw = RawHealthData()
    for json_key, attr in SERIES_KEYS.items():
        series = data.get(json_key)
        if series is None:
            continue
        if not isinstance(series, dict):
            raise InvalidInputError(f"Series '{json_key}' must be an object keyed by date")
        target = getattr(raw, attr)
        for key, value in series.items():
            # googleFitExpenditure is an alias; an explicit expenditure entry wins
            target.setdefault(key, value)

    workouts = data.get("workouts")
    if workouts is not None:
        if not isinstance(workouts, dict):
            raise InvalidInputError("Series 'workouts' must be an object keyed by date")
        for key, value in workouts.items():
            entry = _parse_workout(value)
            if entry is None:
                logger.warning("Skipping malformed workout entry for %s", key)
                continue
            raw.workouts[key] = entry

    return raw


def load_raw_data(path: Union[str, Path]) -> RawHealthData:
    """Load raw series from a JSON file.

    Raises:
        InvalidInputError: If the file cannot be read or decoded
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise InvalidInputError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Invalid JSON in {path}: {e}") from e
    return raw_data_from_mapping(data)


def merge_raw_data(raw: RawHealthData) -> list[DailyRecord]:
    """Combine raw series into one ascending DailyRecord per date.

    Unparseable date keys and non-numeric values are skipped with a
    warning. Keys that normalise to the same date share a record; the
    first value seen for a field is kept.

    Args:
        raw: Raw date-keyed series

    Returns:
        Records sorted by date with raw fields populated and derived
        fields unset
    """
    by_date: dict[date, dict[str, Any]] = {}
    skipped_keys: set[str] = set()

    def _slot(key: str) -> Optional[dict[str, Any]]:
        day = parse_date_key(key)
        if day is None:
            if key not in skipped_keys:
                logger.warning("Skipping invalid date string: %r", key)
                skipped_keys.add(key)
            return None
        return by_date.setdefault(day, {})

    for attr, record_field in RECORD_FIELDS.items():
        series: dict[str, Any] = getattr(raw, attr)
        for key, value in series.items():
            slot = _slot(key)
            if slot is None:
                continue
            number = coerce_number(value)
            if number is None:
                if value is not None:
                    logger.warning("Ignoring non-numeric %s value %r on %s", attr, value, key)
                continue
            if slot.get(record_field) is not None:
                logger.warning("Duplicate %s entry for %s, keeping the first value", attr, key)
                continue
            slot[record_field] = number

    for key, workout in raw.workouts.items():
        slot = _slot(key)
        if slot is None:
            continue
        if "workout_count" in slot:
            logger.warning("Duplicate workouts entry for %s, keeping the first value", key)
            continue
        slot["workout_count"] = workout.workout_count
        slot["total_sets"] = workout.total_sets
        slot["total_volume"] = workout.total_volume
        slot["is_rest_day"] = workout.is_rest_day

    records = []
    for day in sorted(by_date):
        values = by_date[day]
        intake = values.get("calorie_intake")
        expenditure = values.get("expenditure")
        net_balance = intake - expenditure if intake is not None and expenditure is not None else None
        records.append(DailyRecord(date=day, net_balance=net_balance, **values))

    logger.debug("Merged data for %d unique dates", len(records))
    return records
