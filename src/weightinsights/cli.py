"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from weightinsights.config import Settings, get_settings, reload_settings
from weightinsights.tracking.merger import InvalidInputError, load_raw_data
from weightinsights.tracking.models import AnalysisRequest, DailyRecord, Goal
from weightinsights.tracking.service import build_records, recompute

app = typer.Typer(
    help="Weight trend, TDEE and phase analytics for daily health logs",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def parse_date_option(value: Optional[str], name: str) -> Optional[date]:
    """Parse a YYYY-MM-DD option value."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid date '{value}', expected YYYY-MM-DD", param_hint=name)


def use_json(flag: bool) -> bool:
    """JSON output when requested or configured as the default format."""
    return flag or get_settings().defaults.output_format == "json"


def fail(command: str, message: str, json_output: bool) -> NoReturn:
    """Report an error and exit with status 1."""
    if json_output:
        output_json({"success": False, "command": command, "errors": [message]})
    else:
        err_console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def load_records(data_file: Path, command: str, json_output: bool) -> list[DailyRecord]:
    """Load a raw data file and run the processing pipeline."""
    try:
        raw = load_raw_data(data_file)
    except InvalidInputError as e:
        fail(command, str(e), json_output)
    records = build_records(raw, get_settings())
    logger.debug("Loaded %d daily records from %s", len(records), data_file)
    return records


def _num(value: Optional[float], digits: int = 1) -> str:
    return f"{value:.{digits}f}" if value is not None else "-"


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml (default: ~/.weightinsights/config.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging and settings before running a command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    try:
        reload_settings(config)
    except (ValueError, OSError) as e:
        err_console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Commands
# ============================================================================


@app.command()
def process(
    data_file: Path = typer.Argument(..., help="Raw data JSON file"),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="Write processed records to CSV"),
    rows: Optional[int] = typer.Option(None, "--rows", "-n", min=1, help="Rows to preview"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Merge raw series and compute the per-day derived statistics."""
    from weightinsights.tracking.serialization import export_records_csv, serialize_record

    json_output = use_json(json_output)
    records = load_records(data_file, "process", json_output)

    if csv_path is not None:
        export_records_csv(records, csv_path)

    if json_output:
        output_json({
            "success": True,
            "command": "process",
            "data": {"records": [serialize_record(r) for r in records]},
            "human_summary": f"Processed {len(records)} days",
        })
        return

    if not records:
        console.print("[yellow]No valid records found[/yellow]")
        return

    preview = rows if rows is not None else get_settings().defaults.preview_rows
    table = Table(title=f"Processed Records (last {min(preview, len(records))} of {len(records)})")
    table.add_column("Date", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("SMA", justify="right", style="blue")
    table.add_column("EMA", justify="right")
    table.add_column("Rate kg/wk", justify="right")
    table.add_column("Intake", justify="right")
    table.add_column("Adaptive TDEE", justify="right")
    table.add_column("", justify="center")

    for r in records[max(len(records) - preview, 0):]:
        table.add_row(
            r.date.isoformat(),
            _num(r.weight),
            _num(r.sma, 2),
            _num(r.ema, 2),
            _num(r.smoothed_weekly_rate, 2),
            _num(r.calorie_intake, 0),
            _num(r.adaptive_tdee, 0),
            "[red]outlier[/red]" if r.is_outlier else "",
        )
    console.print(table)

    if csv_path is not None:
        console.print(f"[green]Wrote[/green] {len(records)} records to {csv_path}")


@app.command()
def stats(
    data_file: Path = typer.Argument(..., help="Raw data JSON file"),
    start: Optional[str] = typer.Option(None, "--start", help="Analysis start (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="Analysis end (YYYY-MM-DD)"),
    reg_start: Optional[str] = typer.Option(None, "--reg-start", help="Regression start"),
    reg_end: Optional[str] = typer.Option(None, "--reg-end", help="Regression end"),
    goal_weight: Optional[float] = typer.Option(None, "--goal-weight", help="Target weight (kg)"),
    goal_date: Optional[str] = typer.Option(None, "--goal-date", help="Target date"),
    target_rate: Optional[float] = typer.Option(None, "--target-rate", help="Target rate (kg/week)"),
    today: Optional[str] = typer.Option(
        None, "--today", help="Reference date for goal maths (default: analysis end)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show range statistics, regression, phases and goal progress."""
    from weightinsights.tracking.diagnostics import format_analysis_report
    from weightinsights.tracking.serialization import serialize_analysis_result

    json_output = use_json(json_output)
    request = AnalysisRequest(
        analysis_start=parse_date_option(start, "--start"),
        analysis_end=parse_date_option(end, "--end"),
        regression_start=parse_date_option(reg_start, "--reg-start"),
        regression_end=parse_date_option(reg_end, "--reg-end"),
        goal=Goal(
            weight=goal_weight,
            date=parse_date_option(goal_date, "--goal-date"),
            target_rate=target_rate,
        ),
        reference_date=parse_date_option(today, "--today"),
    )

    try:
        raw = load_raw_data(data_file)
    except InvalidInputError as e:
        fail("stats", str(e), json_output)
    result = recompute(raw, request, get_settings())

    if json_output:
        s = result.display_stats
        output_json({
            "success": True,
            "command": "stats",
            "data": serialize_analysis_result(result),
            "human_summary": (
                f"Current SMA {_num(s.current_sma, 2)} kg, "
                f"rate {_num(s.current_weekly_rate, 2)} kg/week"
            ),
        })
    else:
        console.print(format_analysis_report(result))


@app.command()
def weekly(
    data_file: Path = typer.Argument(..., help="Raw data JSON file"),
    start: Optional[str] = typer.Option(None, "--start", help="Range start (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="Range end (YYYY-MM-DD)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show weekly averages of balance, rate, weight and intake."""
    from weightinsights.tracking.aggregator import calculate_weekly_stats
    from weightinsights.tracking.serialization import serialize_weekly_aggregate

    json_output = use_json(json_output)
    records = load_records(data_file, "weekly", json_output)
    weeks = calculate_weekly_stats(
        records,
        parse_date_option(start, "--start"),
        parse_date_option(end, "--end"),
        get_settings().aggregation.weekly_min_days,
    )

    if json_output:
        output_json({
            "success": True,
            "command": "weekly",
            "data": {"weeks": [serialize_weekly_aggregate(w) for w in weeks]},
            "human_summary": f"{len(weeks)} weeks with enough data",
        })
        return

    if not weeks:
        console.print("[yellow]No weeks with enough data[/yellow]")
        return

    table = Table(title="Weekly Summary")
    table.add_column("Week", style="cyan")
    table.add_column("Start")
    table.add_column("Avg Weight", justify="right")
    table.add_column("Rate kg/wk", justify="right")
    table.add_column("Intake", justify="right")
    table.add_column("Expenditure", justify="right")
    table.add_column("Net", justify="right")
    for w in weeks:
        table.add_row(
            w.week_key,
            w.week_start.isoformat(),
            _num(w.avg_weight, 2),
            _num(w.weekly_rate, 2),
            _num(w.avg_intake, 0),
            _num(w.avg_expenditure, 0),
            _num(w.avg_net_balance, 0),
        )
    console.print(table)


@app.command()
def phases(
    data_file: Path = typer.Argument(..., help="Raw data JSON file"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Detect bulk, cut and maintenance phases."""
    from weightinsights.tracking.phases import detect_phases
    from weightinsights.tracking.serialization import serialize_phase

    json_output = use_json(json_output)
    records = load_records(data_file, "phases", json_output)
    detected = detect_phases(records, get_settings().phases)

    if json_output:
        output_json({
            "success": True,
            "command": "phases",
            "data": {"phases": [serialize_phase(p) for p in detected]},
            "human_summary": f"{len(detected)} phases detected",
        })
        return

    if not detected:
        console.print(
            "[yellow]No phases detected. Need at least 2 weeks of data with a consistent trend.[/yellow]"
        )
        return

    table = Table(title="Periodization Phases")
    table.add_column("Phase", style="cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Weeks", justify="right")
    table.add_column("Avg Rate", justify="right")
    table.add_column("Weight Δ", justify="right")
    table.add_column("Avg Intake", justify="right")
    for p in detected:
        table.add_row(
            p.phase_type.value,
            p.start_date.isoformat(),
            p.end_date.isoformat(),
            str(p.duration_weeks),
            _num(p.avg_rate, 2),
            _num(p.weight_change, 1),
            _num(p.avg_intake, 0),
        )
    console.print(table)


@app.command()
def correlations(
    data_file: Path = typer.Argument(..., help="Raw data JSON file"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the correlation matrix of intake, macros, volatility and rate."""
    from weightinsights.tracking.correlation import calculate_correlation_matrix
    from weightinsights.tracking.serialization import serialize_correlation_matrix

    json_output = use_json(json_output)
    records = load_records(data_file, "correlations", json_output)
    matrix = calculate_correlation_matrix(records, get_settings().correlation)

    if json_output:
        output_json({
            "success": True,
            "command": "correlations",
            "data": serialize_correlation_matrix(matrix),
            "human_summary": f"{len(matrix.keys)}x{len(matrix.keys)} correlation matrix",
        })
        return

    table = Table(title="Correlation Matrix")
    table.add_column("", style="cyan")
    for label in matrix.labels:
        table.add_column(label, justify="right")
    for label, row in zip(matrix.labels, matrix.values):
        table.add_row(label, *(f"{v:+.2f}" if v is not None else "-" for v in row))
    console.print(table)


@app.command("init-config")
def init_config(
    path: Optional[Path] = typer.Option(None, "--path", help="Where to write config.yaml"),
) -> None:
    """Write the default configuration file."""
    settings = Settings()
    settings.save(path)
    console.print(f"[green]Wrote default configuration[/green] to {path or '~/.weightinsights/config.yaml'}")


if __name__ == "__main__":
    app()
