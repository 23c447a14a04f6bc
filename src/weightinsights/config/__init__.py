"""Configuration loading."""

from weightinsights.config.settings import (
    AggregationSettings,
    AnalysisSettings,
    CorrelationSettings,
    PhaseSettings,
    RegressionSettings,
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "AggregationSettings",
    "AnalysisSettings",
    "CorrelationSettings",
    "PhaseSettings",
    "RegressionSettings",
    "Settings",
    "get_settings",
    "reload_settings",
]
