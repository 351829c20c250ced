# ABOUTME: Provides a CLI that renders tutor analytics reports and tutor matches from exported facts.
# ABOUTME: Reads parquet/JSON-lines fact files and a JSON profiles document; can write results as JSON.

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from src.analytics.service import AnalyticsService
from src.common.config import load_engine_config
from src.common.errors import AnalyticsError
from src.common.io import load_fact_store
from src.matching.profiles import load_profile_directory
from src.matching.ranking import MatchingService

console = Console()
app = typer.Typer(help="Engagement heatmaps, score distributions, consistency calendars, and tutor matching.")

_SHADES = " .:-=+*#%@"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log aggregation steps.")) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _service(facts_dir: Path, config: Optional[Path]) -> AnalyticsService:
    if not facts_dir.exists():
        console.print(f"[red]Missing facts directory at {facts_dir}[/red]")
        raise typer.Exit(code=1)
    try:
        return AnalyticsService(load_fact_store(facts_dir), load_engine_config(config))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _write_json(payload: Dict[str, Any], output: Optional[Path], tag: str) -> None:
    if output is None:
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, indent=2, default=str))
    typer.echo(f"[{tag}] wrote {output}")


def _print_insights(insights) -> None:
    if not insights:
        return
    console.print()
    console.print("[bold yellow]Insights[/bold yellow]")
    colors = {"warning": "red", "info": "cyan", "success": "green"}
    for insight in insights:
        color = colors.get(insight.type, "white")
        console.print(f"[{color}]{insight.priority:<6}[/{color}] {insight.message}")


@app.command()
def heatmap(
    facts_dir: Path = typer.Option(..., "--facts-dir", help="Directory with engagement.{parquet,jsonl}."),
    counterpart_id: str = typer.Option(..., "--counterpart-id", help="Tutor whose learners are aggregated."),
    start: Optional[str] = typer.Option(None, "--start", help="Inclusive start date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--end", help="Inclusive end date (YYYY-MM-DD)."),
    subject_id: Optional[str] = typer.Option(None, "--subject-id", help="Add detail for one learner."),
    config: Optional[Path] = typer.Option(None, "--config", help="Analytics YAML config."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the full result as JSON."),
) -> None:
    """
    Print the 7x24 engagement grid as a shaded table with a peak-slot summary.
    """
    service = _service(facts_dir, config)
    try:
        result = service.engagement_heatmap(counterpart_id, start=start, end=end, subject_id=subject_id)
    except AnalyticsError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console.rule(f"[bold blue]Engagement heatmap for {counterpart_id}[/bold blue]")
    peak = max((c.total_activities for c in result.cells), default=0)
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Day")
    for hour in range(24):
        table.add_column(f"{hour:02d}", justify="center")
    for day in range(7):
        row = [result.cell(day, 0).day_name]
        for hour in range(24):
            count = result.cell(day, hour).total_activities
            row.append(_SHADES[round(count / peak * (len(_SHADES) - 1))] if peak else " ")
        table.add_row(*row)
    console.print(table)

    summary = result.summary
    console.print(f"[bold]Activities:[/] {summary.total_activities}  [bold]Avg engagement:[/] {summary.average_engagement}")
    if summary.peak_time is not None:
        console.print(f"[bold]Peak:[/] {summary.peak_time.day_name} {summary.peak_time.hour_label}")
    if result.student_detail is not None:
        detail = result.student_detail
        console.print(
            f"[bold]Learner {detail.subject_id}:[/] {detail.total_activities} activities, "
            f"avg engagement {detail.average_engagement}"
        )
    _print_insights(result.insights)
    _write_json(result.to_dict(), output, "heatmap")


@app.command()
def distribution(
    facts_dir: Path = typer.Option(..., "--facts-dir", help="Directory with performance.{parquet,jsonl}."),
    counterpart_id: str = typer.Option(..., "--counterpart-id", help="Tutor whose learners are graded."),
    category: Optional[str] = typer.Option(None, "--category", help="quiz, test, assignment, project, overall, or all."),
    start: Optional[str] = typer.Option(None, "--start", help="Inclusive start date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--end", help="Inclusive end date (YYYY-MM-DD)."),
    config: Optional[Path] = typer.Option(None, "--config", help="Analytics YAML config."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the full result as JSON."),
) -> None:
    """
    Print the score histogram, summary statistics, and outliers.
    """
    service = _service(facts_dir, config)
    try:
        result = service.score_distribution(counterpart_id, category=category, start=start, end=end)
    except AnalyticsError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console.rule(f"[bold blue]Score distribution for {counterpart_id} ({result.category})[/bold blue]")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Range")
    table.add_column("Count", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Students", justify="right")
    for b in result.histogram:
        table.add_row(b.range_label, str(b.count), f"{b.percentage:.1f}", f"{b.average_score:.1f}", str(b.unique_students))
    console.print(table)

    stats = result.statistics
    console.print(
        f"[bold]n=[/]{stats.total_records}  [bold]mean[/] {stats.mean}  [bold]median[/] {stats.median}  "
        f"[bold]mode[/] {stats.mode}  [bold]std[/] {stats.standard_deviation}"
    )
    for outlier in result.outliers:
        console.print(f"[yellow]Outlier[/yellow] {outlier.subject_id}: {outlier.score} ({outlier.deviation_from_mean:+.1f})")
    _print_insights(result.insights)
    _write_json(result.to_dict(), output, "distribution")


@app.command()
def calendar(
    facts_dir: Path = typer.Option(..., "--facts-dir", help="Directory with attendance.{parquet,jsonl}."),
    counterpart_id: str = typer.Option(..., "--counterpart-id", help="Tutor whose attendance days are tracked."),
    subject_id: Optional[str] = typer.Option(None, "--subject-id", help="Restrict to one learner."),
    start: Optional[str] = typer.Option(None, "--start", help="Inclusive start date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--end", help="Inclusive end date (YYYY-MM-DD)."),
    config: Optional[Path] = typer.Option(None, "--config", help="Analytics YAML config."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write the full result as JSON."),
) -> None:
    """
    Print weekly consistency, streaks, and attendance/submission rates.
    """
    service = _service(facts_dir, config)
    try:
        result = service.consistency_calendar(counterpart_id, subject_id=subject_id, start=start, end=end)
    except AnalyticsError as exc:
        raise typer.BadParameter(str(exc)) from exc

    console.rule(f"[bold blue]Consistency calendar for {counterpart_id}[/bold blue]")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ISO week")
    table.add_column("Days", justify="right")
    table.add_column("Avg consistency", justify="right")
    table.add_column("Attendance %", justify="right")
    for week in result.weekly:
        style = "red" if week.low_consistency else None
        table.add_row(
            f"{week.year}-W{week.week:02d}",
            str(week.days_tracked),
            str(week.avg_consistency),
            str(week.attendance_rate),
            style=style,
        )
    console.print(table)

    stats = result.statistics
    console.print(
        f"[bold]Attendance[/] {stats.attendance_rate}%  [bold]Submissions[/] {stats.submission_rate}%  "
        f"[bold]Streak[/] {stats.current_streak} (best {stats.longest_streak})"
    )
    _print_insights(result.insights)
    _write_json(result.to_dict(), output, "calendar")


@app.command()
def match(
    profiles: Path = typer.Option(..., "--profiles", help="JSON document with teaching, learning, locations."),
    learner_id: str = typer.Option(..., "--learner-id", help="Learner looking for a tutor."),
    skill_id: str = typer.Option(..., "--skill-id", help="Skill to be taught."),
    limit: int = typer.Option(10, "--limit", help="Number of tutors to show."),
) -> None:
    """
    Rank tutors for one learner and skill.
    """
    if not profiles.exists():
        console.print(f"[red]Missing profiles file at {profiles}[/red]")
        raise typer.Exit(code=1)
    service = MatchingService(load_profile_directory(profiles))
    ranked = service.rank_tutors(learner_id, skill_id, limit=limit)
    if not ranked:
        console.print(f"[yellow]No tutors teach {skill_id}[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Tutor", no_wrap=True)
    table.add_column("Score", justify="right")
    table.add_column("Reason")
    for candidate in ranked:
        table.add_row(candidate.user_id, str(candidate.score), candidate.reason)
    console.print(table)


if __name__ == "__main__":
    app()
