"""Windowed transform chain over the merged daily sequence.

Each stage takes the full record list and the analysis settings and
returns a new list of new records with one more group of derived fields
filled in. Stages never mutate their input, so a previously computed
sequence stays valid while a new one is being built.

Stage order matters: later stages read fields produced by earlier ones
(outliers need the SMA band, volatility needs outlier flags, and so on).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from weightinsights.config.settings import AnalysisSettings
from weightinsights.tracking.ema import calculate_ema_series
from weightinsights.tracking.models import DailyRecord
from weightinsights.tracking.windows import (
    mean_or_none,
    rolling_average,
    sample_std,
    trailing_window,
    valid_values,
)

logger = logging.getLogger(__name__)

Stage = Callable[[list[DailyRecord], AnalysisSettings], list[DailyRecord]]


def calculate_body_composition(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Split weight into lean and fat mass where body fat is in [0, 100)."""
    result = []
    for r in records:
        lbm = fm = None
        if r.weight is not None and r.body_fat_pct is not None and 0 <= r.body_fat_pct < 100:
            lbm = r.weight * (1 - r.body_fat_pct / 100)
            fm = r.weight * (r.body_fat_pct / 100)
        result.append(replace(r, lbm=lbm, fm=fm))
    return result


def calculate_sma_and_std(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Trailing SMA, sample std dev band, and SMA of lean/fat mass."""
    window = settings.sma_window
    multiplier = settings.std_dev_multiplier
    result = []

    for i, r in enumerate(records):
        start, end = trailing_window(i, window)
        window_records = records[start:end]
        weights = valid_values([p.weight for p in window_records])

        sma = std_dev = lower = upper = None
        if weights:
            sma = mean_or_none(weights)
            std_dev = sample_std(weights)
            lower = sma - multiplier * std_dev
            upper = sma + multiplier * std_dev

        result.append(
            replace(
                r,
                sma=sma,
                std_dev=std_dev,
                lower_bound=lower,
                upper_bound=upper,
                lbm_sma=mean_or_none([p.lbm for p in window_records]),
                fm_sma=mean_or_none([p.fm for p in window_records]),
            )
        )
    return result


def calculate_ema(records: list[DailyRecord], settings: AnalysisSettings) -> list[DailyRecord]:
    """Exponential moving average of weight, carried through gaps."""
    emas = calculate_ema_series([r.weight for r in records], settings.ema_window)
    return [replace(r, ema=ema) for r, ema in zip(records, emas)]


def identify_outliers(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Flag weights further than threshold × std dev from the SMA."""
    threshold = settings.outlier_std_dev_threshold
    floor = settings.outlier_min_std_dev
    result = []
    for r in records:
        is_outlier = (
            r.weight is not None
            and r.sma is not None
            and r.std_dev is not None
            and r.std_dev > floor
            and abs(r.weight - r.sma) > threshold * r.std_dev
        )
        result.append(replace(r, is_outlier=is_outlier))
    return result


def calculate_rolling_volatility(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Std dev of (weight - SMA) over a trailing window, outliers excluded."""
    window = settings.volatility_window
    result = []
    for i, r in enumerate(records):
        start, end = trailing_window(i, window)
        deviations = [
            p.weight - p.sma
            for p in records[start:end]
            if p.weight is not None and p.sma is not None and not p.is_outlier
        ]
        volatility = sample_std(deviations) if len(deviations) >= 2 else None
        result.append(replace(r, rolling_volatility=volatility))
    return result


def calculate_daily_rates(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Day-over-day SMA slope and the expenditure it implies.

    The slope is only taken across gaps no longer than the SMA window.
    Trend expenditure uses the previous day's intake: what was eaten
    yesterday minus the energy stored (or released) as today's change.
    """
    result = []
    for i, r in enumerate(records):
        daily_rate = tdee_trend = None
        if i > 0:
            prev = records[i - 1]
            gap = (r.date - prev.date).days
            if prev.sma is not None and r.sma is not None and 0 < gap <= settings.sma_window:
                daily_rate = (r.sma - prev.sma) / gap
                if prev.calorie_intake is not None:
                    tdee_trend = prev.calorie_intake - daily_rate * settings.kcal_per_kg
        result.append(replace(r, daily_sma_rate=daily_rate, tdee_trend=tdee_trend))
    return result


def calculate_adaptive_tdee(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Expenditure from average intake and SMA change over a long window.

    Requires a full window, at least `adaptive_min_data_ratio` of its days
    with logged intake, and an SMA at both window endpoints.
    """
    window = settings.adaptive_tdee_window
    min_intakes = window * settings.adaptive_min_data_ratio
    result = []

    for i, r in enumerate(records):
        adaptive = None
        if i >= window - 1:
            start, end = trailing_window(i, window)
            first = records[start]
            intakes = valid_values([p.calorie_intake for p in records[start:end]])
            elapsed = (r.date - first.date).days
            if (
                len(intakes) >= min_intakes
                and first.sma is not None
                and r.sma is not None
                and elapsed > 0
            ):
                avg_intake = mean_or_none(intakes)
                daily_change = (r.sma - first.sma) / elapsed
                adaptive = avg_intake - daily_change * settings.kcal_per_kg
        result.append(replace(r, adaptive_tdee=adaptive))
    return result


def smooth_rates(records: list[DailyRecord], settings: AnalysisSettings) -> list[DailyRecord]:
    """Smoothed weekly rate and smoothed trend-vs-external expenditure gap."""
    smoothed_daily = rolling_average(
        [r.daily_sma_rate for r in records], settings.rate_smoothing_window
    )
    differences = [
        r.tdee_trend - r.expenditure
        if r.tdee_trend is not None and r.expenditure is not None
        else None
        for r in records
    ]
    smoothed_differences = rolling_average(differences, settings.tdee_diff_smoothing_window)

    return [
        replace(
            r,
            smoothed_weekly_rate=rate * 7 if rate is not None else None,
            tdee_difference=diff,
            avg_tdee_difference=avg_diff,
        )
        for r, rate, diff, avg_diff in zip(records, smoothed_daily, differences, smoothed_differences)
    ]


def calculate_rate_moving_average(
    records: list[DailyRecord], settings: AnalysisSettings
) -> list[DailyRecord]:
    """Rolling average of the smoothed weekly rate."""
    averages = rolling_average(
        [r.smoothed_weekly_rate for r in records], settings.rate_moving_average_window
    )
    return [replace(r, rate_moving_average=avg) for r, avg in zip(records, averages)]


PIPELINE_STAGES: tuple[Stage, ...] = (
    calculate_body_composition,
    calculate_sma_and_std,
    calculate_ema,
    identify_outliers,
    calculate_rolling_volatility,
    calculate_daily_rates,
    calculate_adaptive_tdee,
    smooth_rates,
    calculate_rate_moving_average,
)


def process_records(
    records: list[DailyRecord],
    settings: Optional[AnalysisSettings] = None,
) -> list[DailyRecord]:
    """Run the full transform chain.

    Args:
        records: Merged records in ascending date order
        settings: Window sizes and constants (defaults if None)

    Returns:
        New list of records with every derived field computed
    """
    if settings is None:
        settings = AnalysisSettings()

    if not records:
        logger.debug("No records to process")
        return []

    processed = list(records)
    for stage in PIPELINE_STAGES:
        processed = stage(processed, settings)

    logger.debug(
        "Processed %d records - SMA: %d, EMA: %d, rate: %d, adaptive TDEE: %d, volatility: %d",
        len(processed),
        sum(r.sma is not None for r in processed),
        sum(r.ema is not None for r in processed),
        sum(r.smoothed_weekly_rate is not None for r in processed),
        sum(r.adaptive_tdee is not None for r in processed),
        sum(r.rolling_volatility is not None for r in processed),
    )
    return processed
