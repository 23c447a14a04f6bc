"""Plain-text reports for analysis results."""

from __future__ import annotations

from typing import Optional

from weightinsights.tracking.models import AnalysisResult, CorrelationMatrix, DisplayStats, Phase


def _fmt(value: Optional[float], digits: int = 1, unit: str = "", signed: bool = False) -> str:
    if value is None:
        return "N/A"
    text = f"{value:+.{digits}f}" if signed else f"{value:.{digits}f}"
    return f"{text} {unit}".rstrip()


def format_weight_report(stats: DisplayStats) -> str:
    """Format whole-history weight statistics as text."""
    lines = [
        "Weight Summary",
        "=" * 45,
        f"Starting weight: {_fmt(stats.starting_weight, unit='kg')}",
        f"Current weight:  {_fmt(stats.current_weight, unit='kg')}",
        f"Current SMA:     {_fmt(stats.current_sma, 2, 'kg')}",
        f"Total change:    {_fmt(stats.total_change, unit='kg', signed=True)}",
        f"Range:           {_fmt(stats.min_weight, unit='kg')} ({stats.min_weight_date or 'N/A'})"
        f" - {_fmt(stats.max_weight, unit='kg')} ({stats.max_weight_date or 'N/A'})",
    ]

    if stats.current_lbm_sma is not None:
        lines.append(
            f"Lean mass:       {_fmt(stats.current_lbm_sma, unit='kg')}"
            f" ({_fmt(stats.total_lbm_change, unit='kg', signed=True)})"
        )
    if stats.current_fm_sma is not None:
        lines.append(
            f"Fat mass:        {_fmt(stats.current_fm_sma, unit='kg')}"
            f" ({_fmt(stats.total_fm_change, unit='kg', signed=True)})"
        )

    return "\n".join(lines)


def format_range_report(result: AnalysisResult) -> str:
    """Format analysis-range statistics as text."""
    stats = result.display_stats
    weight_log = stats.weight_data_consistency
    calorie_log = stats.calorie_data_consistency

    lines = [
        "",
        f"Analysis Range ({result.analysis_start} to {result.analysis_end})",
        "=" * 50,
        f"Current rate:        {_fmt(stats.current_weekly_rate, 2, 'kg/week', signed=True)}",
        f"Regression slope:    {_fmt(stats.regression_slope_weekly, 2, 'kg/week', signed=True)}",
        f"Rate consistency:    {_fmt(stats.rate_consistency, 2, 'kg/week')}",
        f"Volatility:          {_fmt(stats.volatility, 2, 'kg')}",
        f"Avg intake:          {_fmt(stats.avg_intake, 0, 'kcal')}",
        f"Avg expenditure:     {_fmt(stats.avg_expenditure, 0, 'kcal')}",
        f"Avg net balance:     {_fmt(stats.avg_net_balance, 0, 'kcal', signed=True)}",
        f"Adaptive TDEE:       {_fmt(stats.avg_tdee_adaptive, 0, 'kcal')}",
        f"TDEE (weight trend): {_fmt(stats.avg_tdee_weight_change, 0, 'kcal')}",
        f"Weight logged:       {weight_log.count}/{weight_log.total_days} days"
        f" ({weight_log.percentage:.0f}%)",
        f"Calories logged:     {calorie_log.count}/{calorie_log.total_days} days"
        f" ({calorie_log.percentage:.0f}%)",
    ]
    return "\n".join(lines)


def format_goal_report(stats: DisplayStats) -> str:
    """Format goal progress as text, empty when no goal is set."""
    if stats.target_weight is None and stats.target_rate is None:
        return ""

    lines = ["", "Goal Progress", "-" * 45]
    if stats.target_weight is not None:
        lines.append(f"  Target weight:   {_fmt(stats.target_weight, unit='kg')}")
        lines.append(f"  To goal:         {_fmt(stats.weight_to_goal, unit='kg', signed=True)}")
        lines.append(f"  Time to goal:    {stats.estimated_time_to_goal}")
    if stats.required_rate_for_goal is not None:
        lines.append(
            f"  Required rate:   {_fmt(stats.required_rate_for_goal, 2, 'kg/week', signed=True)}"
            f" by {stats.target_date}"
        )
    if stats.suggested_intake_range is not None:
        low, high = stats.suggested_intake_range
        lines.append(f"  Suggested intake: {low}-{high} kcal/day")
    if stats.target_rate is not None:
        lines.append(f"  Target rate:     {_fmt(stats.target_rate, 2, 'kg/week', signed=True)}")
        lines.append(f"  Feedback:        {stats.target_rate_feedback}")
        if stats.required_calorie_adjustment is not None:
            lines.append(
                f"  Adjust intake by {_fmt(stats.required_calorie_adjustment, 0, 'kcal/day', signed=True)}"
            )
    return "\n".join(lines)


def format_phase(phase: Phase) -> str:
    """One-line description of a phase."""
    return (
        f"{phase.phase_type.value:<12} {phase.start_date} -> {phase.end_date}"
        f" ({phase.duration_weeks} wk)  rate {_fmt(phase.avg_rate, 2, signed=True)} kg/wk,"
        f" change {_fmt(phase.weight_change, unit='kg', signed=True)},"
        f" intake {_fmt(phase.avg_intake, 0, 'kcal')}"
    )


def strongest_correlations(matrix: CorrelationMatrix, limit: int = 5) -> list[tuple[str, str, float]]:
    """Off-diagonal pairs ordered by absolute coefficient."""
    pairs = []
    size = len(matrix.keys)
    for i in range(size):
        for j in range(i + 1, size):
            value = matrix.values[i][j]
            if value is not None:
                pairs.append((matrix.labels[i], matrix.labels[j], value))
    pairs.sort(key=lambda p: abs(p[2]), reverse=True)
    return pairs[:limit]


def format_analysis_report(result: AnalysisResult) -> str:
    """Format full analysis report as text."""
    stats = result.display_stats
    parts = [format_weight_report(stats), format_range_report(result)]

    goal = format_goal_report(stats)
    if goal:
        parts.append(goal)

    if result.phases:
        parts.append("")
        parts.append("Phases:")
        for phase in result.phases:
            parts.append(f"  - {format_phase(phase)}")

    if result.plateaus:
        parts.append("")
        parts.append("Plateaus:")
        for plateau in result.plateaus:
            parts.append(f"  - {plateau.start_date} -> {plateau.end_date}")

    if result.correlation_matrix is not None:
        top = strongest_correlations(result.correlation_matrix, limit=3)
        if top:
            parts.append("")
            parts.append("Strongest correlations:")
            for a, b, value in top:
                parts.append(f"  - {a} / {b}: {value:+.2f}")

    return "\n".join(parts)
