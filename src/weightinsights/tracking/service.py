"""Explicit recomputation entry points.

The pipeline is a pure function of (raw snapshot, request, settings).
Callers that receive bursts of range changes queue them through
RecomputeQueue, which keeps only the latest pending request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from weightinsights.config.settings import Settings
from weightinsights.tracking.aggregator import analyze
from weightinsights.tracking.merger import merge_raw_data
from weightinsights.tracking.models import AnalysisRequest, AnalysisResult, DailyRecord, RawHealthData
from weightinsights.tracking.pipeline import process_records

logger = logging.getLogger(__name__)


def build_records(raw: RawHealthData, settings: Optional[Settings] = None) -> list[DailyRecord]:
    """Merge raw series and run the transform chain."""
    if settings is None:
        settings = Settings()
    return process_records(merge_raw_data(raw), settings.analysis)


def recompute(
    raw: RawHealthData,
    request: Optional[AnalysisRequest] = None,
    settings: Optional[Settings] = None,
) -> AnalysisResult:
    """Run merge, processing and analysis against one input snapshot."""
    if settings is None:
        settings = Settings()
    return analyze(build_records(raw, settings), request, settings)


@dataclass
class RecomputeQueue:
    """Single-slot request queue where a new request supersedes a pending one."""

    pending: Optional[AnalysisRequest] = None
    superseded: int = 0

    def submit(self, request: AnalysisRequest) -> None:
        """Queue a request, dropping any request still waiting."""
        if self.pending is not None:
            self.superseded += 1
            logger.debug("Superseding pending recompute request")
        self.pending = request

    def run_pending(self, raw: RawHealthData, settings: Settings) -> Optional[AnalysisResult]:
        """Run the latest pending request, if any, and clear it."""
        request = self.pending
        if request is None:
            return None
        self.pending = None
        return recompute(raw, request, settings)
