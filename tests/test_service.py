"""Tests for the recompute entry points."""

from __future__ import annotations

from conftest import day

from weightinsights.config.settings import AnalysisSettings, Settings
from weightinsights.tracking.models import AnalysisRequest, RawHealthData
from weightinsights.tracking.service import RecomputeQueue, build_records, recompute


class TestBuildRecords:
    """Tests for build_records function."""

    def test_runs_full_chain(self, linear_loss_raw) -> None:
        records = build_records(linear_loss_raw)
        assert len(records) == 60
        assert records[-1].sma is not None
        assert records[-1].adaptive_tdee is not None

    def test_identical_inputs_identical_outputs(self, linear_loss_raw) -> None:
        assert build_records(linear_loss_raw) == build_records(linear_loss_raw)

    def test_settings_respected(self, linear_loss_raw) -> None:
        settings = Settings(analysis=AnalysisSettings(adaptive_tdee_window=70))
        records = build_records(linear_loss_raw, settings)
        assert all(r.adaptive_tdee is None for r in records)

    def test_empty_input(self) -> None:
        assert build_records(RawHealthData()) == []


class TestRecompute:
    """Tests for recompute function."""

    def test_returns_analysis(self, linear_loss_raw) -> None:
        result = recompute(linear_loss_raw, AnalysisRequest(analysis_start=day(30)))
        assert result.analysis_start == day(30)
        assert len(result.filtered_records) == 30

    def test_empty_input(self) -> None:
        result = recompute(RawHealthData())
        assert result.filtered_records == []


class TestRecomputeQueue:
    """Tests for RecomputeQueue."""

    def test_latest_request_wins(self, linear_loss_raw) -> None:
        queue = RecomputeQueue()
        queue.submit(AnalysisRequest(analysis_start=day(10)))
        queue.submit(AnalysisRequest(analysis_start=day(40)))
        assert queue.superseded == 1

        result = queue.run_pending(linear_loss_raw, Settings())
        assert result is not None
        assert result.analysis_start == day(40)
        assert queue.pending is None

    def test_nothing_pending(self, linear_loss_raw) -> None:
        assert RecomputeQueue().run_pending(linear_loss_raw, Settings()) is None
