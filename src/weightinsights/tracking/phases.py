"""Segment the processed sequence into bulk, cut and maintenance phases."""

from __future__ import annotations

import logging
from typing import Optional

from weightinsights.config.settings import PhaseSettings
from weightinsights.tracking.models import DailyRecord, Phase, PhaseType
from weightinsights.tracking.windows import mean_or_none

logger = logging.getLogger(__name__)


def classify_rate(rate: float, settings: PhaseSettings) -> PhaseType:
    """Classify a smoothed weekly rate (kg/week)."""
    if rate >= settings.bulk_threshold:
        return PhaseType.BULK
    if rate <= settings.cut_threshold:
        return PhaseType.CUT
    return PhaseType.MAINTENANCE


def _build_phase(phase_type: PhaseType, members: list[DailyRecord]) -> Phase:
    trend = [r.trend_weight for r in members if r.trend_weight is not None]
    return Phase(
        phase_type=phase_type,
        start_date=members[0].date,
        end_date=members[-1].date,
        avg_rate=mean_or_none([r.smoothed_weekly_rate for r in members]),
        avg_intake=mean_or_none([r.calorie_intake for r in members]),
        weight_change=trend[-1] - trend[0] if trend else None,
    )


def detect_phases(
    records: list[DailyRecord],
    settings: Optional[PhaseSettings] = None,
) -> list[Phase]:
    """
    Walk records in order and group runs of the same rate classification.

    Records without a smoothed weekly rate are skipped; they neither
    extend nor break the current run. Runs shorter than
    `min_duration_days` (inclusive calendar days) are discarded rather
    than folded into a neighbour.

    Args:
        records: Processed records in ascending date order
        settings: Thresholds and minimum duration

    Returns:
        Non-overlapping phases in date order
    """
    if settings is None:
        settings = PhaseSettings()

    runs: list[tuple[PhaseType, list[DailyRecord]]] = []
    current_type: Optional[PhaseType] = None
    members: list[DailyRecord] = []

    for r in records:
        if r.smoothed_weekly_rate is None:
            continue
        phase_type = classify_rate(r.smoothed_weekly_rate, settings)
        if phase_type != current_type:
            if current_type is not None:
                runs.append((current_type, members))
            current_type = phase_type
            members = []
        members.append(r)

    if current_type is not None:
        runs.append((current_type, members))

    phases = [_build_phase(phase_type, run) for phase_type, run in runs]
    kept = [p for p in phases if p.duration_days >= settings.min_duration_days]
    logger.debug("Detected %d phases (%d below minimum duration)", len(kept), len(phases) - len(kept))
    return kept
