"""Application settings and configuration management."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".weightinsights"


def _require_window(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")


@dataclass
class AnalysisSettings:
    """Window sizes and constants for the per-day transform chain."""

    sma_window: int = 7
    ema_window: int = 7
    std_dev_multiplier: float = 1.0  # SMA band width in std devs
    outlier_std_dev_threshold: float = 2.5
    outlier_min_std_dev: float = 0.01
    volatility_window: int = 14
    rate_smoothing_window: int = 7
    rate_moving_average_window: int = 7
    tdee_diff_smoothing_window: int = 14
    adaptive_tdee_window: int = 28
    adaptive_min_data_ratio: float = 0.7
    kcal_per_kg: float = 7700.0

    def __post_init__(self) -> None:
        for name in (
            "sma_window",
            "ema_window",
            "volatility_window",
            "rate_smoothing_window",
            "rate_moving_average_window",
            "tdee_diff_smoothing_window",
            "adaptive_tdee_window",
        ):
            _require_window(name, getattr(self, name))
        if not 0 < self.adaptive_min_data_ratio <= 1:
            raise ValueError(
                f"adaptive_min_data_ratio must be in (0, 1], got {self.adaptive_min_data_ratio}"
            )


@dataclass
class RegressionSettings:
    """Linear regression configuration."""

    min_points: int = 7
    confidence_alpha: float = 0.05  # 0.05 -> 95% prediction interval

    def __post_init__(self) -> None:
        if self.min_points < 3:
            raise ValueError(f"min_points must be at least 3, got {self.min_points}")
        if not 0 < self.confidence_alpha < 1:
            raise ValueError(
                f"confidence_alpha must be in (0, 1), got {self.confidence_alpha}"
            )


@dataclass
class PhaseSettings:
    """Bulk/cut/maintenance classification thresholds (kg/week)."""

    bulk_threshold: float = 0.1
    cut_threshold: float = -0.1
    min_duration_days: int = 14

    def __post_init__(self) -> None:
        if self.cut_threshold >= self.bulk_threshold:
            raise ValueError("cut_threshold must be below bulk_threshold")


@dataclass
class CorrelationSettings:
    """Correlation matrix configuration."""

    min_samples: int = 14

    def __post_init__(self) -> None:
        if self.min_samples < 2:
            raise ValueError(f"min_samples must be at least 2, got {self.min_samples}")


@dataclass
class AggregationSettings:
    """Range statistics, plateau and goal configuration."""

    weekly_min_days: int = 3
    min_weeks_for_correlation: int = 4
    goal_tolerance_kg: float = 0.1
    plateau_rate_threshold: float = 0.07  # kg/week
    plateau_min_weeks: int = 3
    trend_change_window: int = 14
    trend_change_min_slope_diff: float = 0.3  # kg/week
    on_target_tolerance: float = 0.03  # kg/week
    suggested_intake_margin: float = 100.0  # kcal


@dataclass
class DefaultsConfig:
    """Default values for CLI output."""

    output_format: str = "table"  # "table" or "json"
    preview_rows: int = 14

    def __post_init__(self) -> None:
        if self.output_format not in ("table", "json"):
            raise ValueError(f"output_format must be 'table' or 'json', got {self.output_format!r}")
        _require_window("preview_rows", self.preview_rows)


@dataclass
class Settings:
    """Main application settings."""

    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    regression: RegressionSettings = field(default_factory=RegressionSettings)
    phases: PhaseSettings = field(default_factory=PhaseSettings)
    correlation: CorrelationSettings = field(default_factory=CorrelationSettings)
    aggregation: AggregationSettings = field(default_factory=AggregationSettings)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.weightinsights/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from a parsed config mapping.

        Each top-level key names a section; values are coerced to the type
        of the section's default. Unknown sections and keys are ignored.
        """
        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping")

        sections: dict[str, Any] = {}
        for section_field in fields(cls):
            default_section = section_field.default_factory()  # type: ignore[misc]
            section_data = data.get(section_field.name) or {}
            sections[section_field.name] = _parse_section(
                section_field.name, default_section, section_data
            )

        for key in data:
            if key not in sections:
                logger.warning("Ignoring unknown config section '%s'", key)

        return cls(**sections)

    def to_dict(self) -> dict[str, Any]:
        """Return settings as a plain nested dictionary."""
        return asdict(self)

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.weightinsights/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _parse_section(name: str, default_section: Any, section_data: Any) -> Any:
    if not isinstance(section_data, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")

    values: dict[str, Any] = {}
    known = {f.name for f in fields(default_section)}
    for key, raw_value in section_data.items():
        if key not in known:
            logger.warning("Ignoring unknown config key '%s.%s'", name, key)
            continue
        default_value = getattr(default_section, key)
        if isinstance(default_value, int) and isinstance(raw_value, float) and not raw_value.is_integer():
            raise ValueError(f"Invalid value for '{name}.{key}': {raw_value!r} is not a whole number")
        try:
            values[key] = type(default_value)(raw_value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for '{name}.{key}': {raw_value!r}") from e

    return type(default_section)(**{**asdict(default_section), **values})


# Global settings instance (lazy loaded, CLI only)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings
