"""Pairwise Pearson correlations across derived daily variables."""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence

import numpy as np

from weightinsights.config.settings import CorrelationSettings
from weightinsights.tracking.models import CorrelationMatrix, DailyRecord

# Atwater factors (kcal per gram)
PROTEIN_KCAL_PER_G = 4
CARB_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9


def macro_percent(grams: Optional[float], kcal_per_g: float, intake: Optional[float]) -> Optional[float]:
    """Share of the day's calories from one macronutrient, in percent."""
    if grams is None or intake is None or intake <= 0:
        return None
    return grams * kcal_per_g / intake * 100


def best_expenditure(record: DailyRecord) -> Optional[float]:
    """Adaptive estimate, else trend-based, else the external estimate."""
    for value in (record.adaptive_tdee, record.tdee_trend, record.expenditure):
        if value is not None:
            return value
    return None


def weight_deltas(records: Sequence[DailyRecord]) -> list[Optional[float]]:
    """Change from the previous day's weight, None across gaps."""
    deltas: list[Optional[float]] = [None] * len(records)
    for i in range(1, len(records)):
        prev, curr = records[i - 1], records[i]
        if (
            prev.weight is not None
            and curr.weight is not None
            and (curr.date - prev.date).days == 1
        ):
            deltas[i] = curr.weight - prev.weight
    return deltas


# key, label, per-record extractor (weight delta handled separately)
VARIABLES: list[tuple[str, str, Optional[Callable[[DailyRecord], Optional[float]]]]] = [
    ("intake", "Calories", lambda r: r.calorie_intake),
    ("protein_pct", "Protein %", lambda r: macro_percent(r.protein_g, PROTEIN_KCAL_PER_G, r.calorie_intake)),
    ("carbs_pct", "Carbs %", lambda r: macro_percent(r.carbs_g, CARB_KCAL_PER_G, r.calorie_intake)),
    ("fat_pct", "Fat %", lambda r: macro_percent(r.fat_g, FAT_KCAL_PER_G, r.calorie_intake)),
    ("volatility", "Volatility", lambda r: r.rolling_volatility),
    ("weight_delta", "Weight Δ", None),
    ("expenditure", "TDEE", best_expenditure),
    ("weekly_rate", "Rate", lambda r: r.smoothed_weekly_rate),
]


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson coefficient of two equal-length samples.

    Zero variance (or any other numerically undefined case) yields 0
    instead of NaN. The result is clipped to [-1, 1].
    """
    if len(xs) != len(ys):
        raise ValueError("Samples must have equal length")
    if len(xs) < 2:
        return 0.0

    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float((dx**2).sum()) * float((dy**2).sum()))
    if denominator == 0 or not math.isfinite(denominator):
        return 0.0

    r = float((dx * dy).sum()) / denominator
    if not math.isfinite(r):
        return 0.0
    return max(-1.0, min(1.0, r))


def extract_variables(records: Sequence[DailyRecord]) -> dict[str, list[Optional[float]]]:
    """Per-day series for every correlation variable."""
    series: dict[str, list[Optional[float]]] = {}
    for key, _, extractor in VARIABLES:
        if extractor is None:
            series[key] = weight_deltas(records)
        else:
            series[key] = [extractor(r) for r in records]
    return series


def calculate_correlation_matrix(
    records: Sequence[DailyRecord],
    settings: Optional[CorrelationSettings] = None,
) -> CorrelationMatrix:
    """
    Build the symmetric correlation matrix.

    For each pair only days where both variables are present count. Pairs
    with fewer than `min_samples` such days get None. The diagonal is 1.

    Args:
        records: Processed records
        settings: Minimum pair count

    Returns:
        CorrelationMatrix over the fixed VARIABLES list
    """
    if settings is None:
        settings = CorrelationSettings()

    series = extract_variables(records)
    keys = [key for key, _, _ in VARIABLES]
    labels = [label for _, label, _ in VARIABLES]
    size = len(keys)
    values: list[list[Optional[float]]] = [[None] * size for _ in range(size)]

    for i in range(size):
        values[i][i] = 1.0
        for j in range(i + 1, size):
            pairs = [
                (a, b)
                for a, b in zip(series[keys[i]], series[keys[j]])
                if a is not None and b is not None
            ]
            if len(pairs) < settings.min_samples:
                continue
            xs, ys = zip(*pairs)
            r = pearson_correlation(xs, ys)
            values[i][j] = r
            values[j][i] = r

    return CorrelationMatrix(keys=keys, labels=labels, values=values)
