"""Command-line interface for dingplan."""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
from typing import Annotated

import typer

from .config import discover_config, set_config_path
from .engine import SchedulingEngine
from .exceptions import PlannerError, SchedulingError
from .histogram import daily_crew, peak_crew, weekly_crew
from .logger import setup_logger
from .storage import read_snapshot, write_snapshot
from .validator import ValidationReport

app = typer.Typer(
    name="dingplan",
    help="Construction schedule planner - inspect, repair and edit schedule snapshots",
    add_completion=False,
)

FileArgument = Annotated[Path, typer.Argument(help="Path to the schedule snapshot (YAML or JSON)")]


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=warnings only (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: dingplan_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for dingplan commands."""
    setup_logger(verbose)
    set_config_path(config)


def _load_engine(file: Path) -> tuple[SchedulingEngine, ValidationReport]:
    """Build an engine from config and import the snapshot, or exit with an error."""
    try:
        engine = SchedulingEngine.from_config(discover_config(file))
        report = engine.import_state(read_snapshot(file))
    except (PlannerError, FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    return engine, report


def _save(engine: SchedulingEngine, path: Path) -> None:
    write_snapshot(path, engine.export_state())
    typer.echo(f"Snapshot written to {path}")


@app.command()
def check(
    file: FileArgument,
    fix: Annotated[
        bool, typer.Option("--fix", help="Write the repaired snapshot back to FILE")
    ] = False,
) -> None:
    """Validate a snapshot and report repairs (exits 1 if repairs are needed without --fix)."""
    engine, report = _load_engine(file)

    if not report.total:
        typer.echo(f"{file}: OK ({len(engine.tasks)} tasks, {len(engine.lanes)} lanes)")
        return

    typer.echo(f"{file}: {report.total} repair(s) needed")
    for category, count in report.categories().items():
        typer.echo(f"  - {category.replace('_', ' ')}: {count}")

    if fix:
        _save(engine, file)
    else:
        raise typer.Exit(1)


@app.command()
def summary(file: FileArgument) -> None:
    """List lanes and their tasks."""
    engine, _ = _load_engine(file)

    for lane in engine.lanes:
        typer.echo(f"{lane.name} ({lane.id})")
        if not lane.task_ids:
            typer.echo("  (empty)")
        ordered = sorted(lane.task_ids, key=lambda t: lane.positions[t].y)
        for task_id in ordered:
            task = engine.get_task(task_id)
            typer.echo(
                f"  {task.name} [{task.id}]  {task.start_date} -> {task.end_date}  "
                f"{task.duration}d  crew {task.crew_size}  {task.trade_id}  {task.status.value}"
            )
        typer.echo("")

    edges = engine.dependency_edges()
    typer.echo(f"{len(engine.tasks)} tasks, {len(engine.lanes)} lanes, {len(edges)} dependencies")


@app.command()
def shift(  # noqa: PLR0913 - CLI command needs multiple options
    file: FileArgument,
    task_id: Annotated[str, typer.Argument(help="ID of the task to move")],
    days: Annotated[int, typer.Argument(help="Calendar days to move (negative moves earlier)")],
    *,
    no_cascade: Annotated[
        bool, typer.Option("--no-cascade", help="Do not move dependent tasks")
    ] = False,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output file (default: FILE)")
    ] = None,
) -> None:
    """Move a task by a number of days, dragging its successors along."""
    engine, _ = _load_engine(file)

    try:
        task = engine.get_task(task_id)
        target = task.start_date + timedelta(days=days)
        moved = engine.move_task(task_id, target, cascade=False if no_cascade else None)
    except SchedulingError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Moved {len(moved)} task(s)")
    for moved_task in moved:
        typer.echo(f"  {moved_task.name} [{moved_task.id}] now starts {moved_task.start_date}")
    _save(engine, output or file)


@app.command()
def link(
    file: FileArgument,
    task_ids: Annotated[list[str], typer.Argument(help="Task IDs in execution order")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output file (default: FILE)")
    ] = None,
) -> None:
    """Chain tasks so each one depends on the one before it."""
    engine, _ = _load_engine(file)

    try:
        added = engine.link_in_sequence(task_ids)
    except SchedulingError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Added {added} dependency link(s)")
    _save(engine, output or file)


@app.command()
def templates(
    term: Annotated[
        str | None, typer.Argument(help="Only show templates matching this text")
    ] = None,
) -> None:
    """List the construction sequence templates."""
    try:
        library = discover_config().templates.build_library()
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    found = library.search(term) if term else library.all()
    if not found:
        typer.echo(f"No templates match '{term}'")
        raise typer.Exit(1)
    for template in found:
        total = sum(step.duration for step in template.tasks)
        typer.echo(template.describe())
        typer.echo(f"  {template.name}: {len(template.tasks)} tasks, {total} working days of work")


@app.command()
def insert(  # noqa: PLR0913 - CLI command needs multiple options
    file: FileArgument,
    name: Annotated[str, typer.Argument(help="Template key, name or alias")],
    *,
    start: Annotated[
        str | None, typer.Option("--start", help="First day (YYYY-MM-DD, default: today)")
    ] = None,
    lane: Annotated[
        str | None, typer.Option("--lane", help="Target lane ID (default: first lane)")
    ] = None,
    location: Annotated[
        str | None, typer.Option("--location", help="Appended to every task name")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output file (default: FILE)")
    ] = None,
) -> None:
    """Insert a construction sequence template as chained tasks."""
    start_date = _parse_date_option(start, "--start")
    engine, _ = _load_engine(file)

    try:
        created = engine.insert_template(name, start_date, lane, location)
    except SchedulingError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Inserted {len(created)} task(s)")
    for task in created:
        typer.echo(f"  {task.name} [{task.id}]  {task.start_date} -> {task.end_date}")
    _save(engine, output or file)


def _parse_date_option(date_str: str | None, option_name: str) -> date | None:
    """Parse a YYYY-MM-DD option value, exiting with an error if invalid."""
    if date_str is None:
        return None
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        typer.echo(
            f"Error: Invalid {option_name} date format: {date_str}. Use YYYY-MM-DD",
            err=True,
        )
        raise typer.Exit(1) from None


@app.command()
def histogram(
    file: FileArgument,
    weekly: Annotated[
        bool, typer.Option("--weekly", help="Show the peak crew per trade for each week")
    ] = False,
    start: Annotated[str | None, typer.Option("--start", help="First day (YYYY-MM-DD)")] = None,
    end: Annotated[str | None, typer.Option("--end", help="Day after the last (YYYY-MM-DD)")] = None,
) -> None:
    """Show crew totals per trade by day (or by week)."""
    start_date = _parse_date_option(start, "--start")
    end_date = _parse_date_option(end, "--end")
    engine, _ = _load_engine(file)

    daily = daily_crew(engine.tasks, start_date, end_date)
    rows = weekly_crew(daily) if weekly else daily
    if not rows:
        typer.echo("No crew scheduled")
        return

    for day, trades in rows.items():
        label = f"week of {day}" if weekly else f"{day} {day.strftime('%a')}"
        breakdown = ", ".join(f"{trade}={crew}" for trade, crew in sorted(trades.items()))
        typer.echo(f"{label}: {sum(trades.values())} ({breakdown})")
    typer.echo(f"Peak daily crew: {peak_crew(daily)}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
