"""CLI commands for the practice engine.

Commands:
- init-db: Create the database schema
- select: Pick the next exercise for a learner
- report: Apply a graded attempt to a learner's level
- levels: Show a learner's levels
- inventory: Show cached content counts
- pregenerate: Top up a cache pool
- retire: Take a content item out of rotation
"""

import json
import logging
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from practice.config.app_config import load_app_config
from practice.core.catalog import UnknownExerciseTypeError
from practice.core.leveling import BANDS, InvalidScoreError
from practice.core.payloads import payload_to_dict
from practice.core.selector import NoContentAvailableError, Selector, build_selector
from practice.core.stores import ConcurrencyConflictError, ContentItemNotFoundError
from practice.db.database import init_db

app = typer.Typer(
    name="practice",
    help="Adaptive content selection and leveling for language practice.",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Adaptive practice engine."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def _selector(db: Path | None) -> Selector:
    """Build a selector over an initialized database."""
    config = load_app_config()
    db_path = init_db(db or config.db_path)
    return build_selector(config=config, db_path=db_path)


def _fail(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


DB_OPTION = typer.Option(None, "--db", help="Database file (default from config)")


# =============================================================================
# COMMANDS
# =============================================================================


@app.command(name="init-db")
def init_database(db: Path | None = DB_OPTION) -> None:
    """Create the database schema."""
    path = init_db(db or load_app_config().db_path)
    console.print(f"[green]✓ Database ready[/green] [dim]{path}[/dim]")


@app.command()
def select(
    user_id: str = typer.Argument(..., help="Learner id"),
    skill_area: str = typer.Argument(..., help="speaking, writing, listening or reading"),
    exercise_type: str = typer.Argument(..., help="Exercise type, e.g. listen_and_respond"),
    as_json: bool = typer.Option(False, "--json", help="Print the payload as JSON"),
    db: Path | None = DB_OPTION,
) -> None:
    """Pick the next exercise for a learner."""
    selector = _selector(db)

    try:
        result = selector.select_for(user_id, skill_area, exercise_type)
    except UnknownExerciseTypeError as e:
        _fail(str(e))
    except NoContentAvailableError as e:
        _fail(str(e))

    item = result.item
    if as_json:
        console.print_json(json.dumps(item.to_dict(), ensure_ascii=False))
        return

    source_color = {"cache": "green", "generated": "cyan", "fallback": "yellow"}[result.source.value]
    console.print(f"[green]✓ Selected[/green] [bold]{item.id}[/bold]")
    console.print(f"  [dim]source:[/dim]     [{source_color}]{result.source.value}[/{source_color}]")
    console.print(f"  [dim]item band:[/dim]  {item.band_level}")
    console.print(
        f"  [dim]user level:[/dim] {result.user_level.band_level} "
        f"({result.user_level.numeric_level:.1f})"
    )
    console.print_json(json.dumps(payload_to_dict(item.payload), ensure_ascii=False))


@app.command()
def report(
    user_id: str = typer.Argument(..., help="Learner id"),
    skill_area: str = typer.Argument(..., help="Skill area"),
    exercise_type: str = typer.Argument(..., help="Exercise type"),
    score: float = typer.Argument(..., help="Score 0-100"),
    item_id: str | None = typer.Option(None, "--item", help="Content item the score belongs to"),
    db: Path | None = DB_OPTION,
) -> None:
    """Apply a graded attempt to a learner's level."""
    selector = _selector(db)

    try:
        adjustment = selector.report_score(
            user_id, skill_area, exercise_type, score, content_item_id=item_id
        )
    except (InvalidScoreError, UnknownExerciseTypeError, ConcurrencyConflictError) as e:
        _fail(str(e))

    prev, cur = adjustment.previous, adjustment.current
    if adjustment.delta > 0:
        arrow = "[green]▲[/green]"
    elif adjustment.delta < 0:
        arrow = "[red]▼[/red]"
    else:
        arrow = "[dim]=[/dim]"

    console.print(
        f"{arrow} {prev.band_level} ({prev.numeric_level:.1f}) → "
        f"[bold]{cur.band_level}[/bold] ({cur.numeric_level:.1f})"
    )
    console.print(
        f"  [dim]streak:[/dim] {cur.correct_streak}  "
        f"[dim]failures:[/dim] {cur.failure_streak}  "
        f"[dim]attempts at level:[/dim] {cur.attempts_at_band}"
    )


@app.command()
def levels(
    user_id: str = typer.Argument(..., help="Learner id"),
    db: Path | None = DB_OPTION,
) -> None:
    """Show a learner's levels per skill area and exercise type."""
    summaries = _selector(db).levels_for_user(user_id)

    table = Table(show_header=True, header_style="bold", title=f"Levels for {user_id}")
    table.add_column("Skill", style="cyan")
    table.add_column("Exercise type")
    table.add_column("Band", justify="center")
    table.add_column("Level", justify="right")
    table.add_column("Streak", justify="right")

    for summary in summaries:
        table.add_row(
            f"[bold]{summary.skill_area}[/bold]",
            "[dim]overall[/dim]",
            f"[bold]{summary.band_level}[/bold]",
            f"{summary.numeric_level:.2f}",
            "",
        )
        for level in summary.levels:
            table.add_row(
                "",
                level.exercise_type,
                level.band_level,
                f"{level.numeric_level:.1f}",
                str(level.correct_streak),
            )

    console.print(table)


@app.command()
def inventory(db: Path | None = DB_OPTION) -> None:
    """Show active cached items per pool."""
    entries = _selector(db).inventory()

    if not entries:
        console.print("[yellow]No cached content yet[/yellow]")
        console.print("  Use: practice pregenerate <skill> <type> <band>")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Skill", style="cyan")
    table.add_column("Exercise type")
    table.add_column("Band", justify="center")
    table.add_column("Items", justify="right")
    for e in entries:
        table.add_row(e.skill_area, e.exercise_type, e.band_level, str(e.count))

    console.print(table)
    console.print(f"[dim]Total active items:[/dim] {sum(e.count for e in entries)}")


@app.command()
def pregenerate(
    skill_area: str = typer.Argument(..., help="Skill area"),
    exercise_type: str = typer.Argument(..., help="Exercise type"),
    band: str = typer.Argument(..., help="CEFR band, A1-C2"),
    target: int | None = typer.Option(None, "--target", "-n", help="Pool size to reach"),
    db: Path | None = DB_OPTION,
) -> None:
    """Generate content until a pool holds the target number of items."""
    band = band.upper()
    if band not in BANDS:
        _fail(f"Unknown band: {band} (expected one of {', '.join(BANDS)})")

    try:
        result = _selector(db).pre_generate(skill_area, exercise_type, band, target_count=target)
    except UnknownExerciseTypeError as e:
        _fail(str(e))

    console.print(f"[green]✓ Generated {result.generated} item(s)[/green]")
    for error in result.errors:
        console.print(f"  [yellow]⚠ {error}[/yellow]")
    if result.errors and result.generated == 0:
        raise typer.Exit(code=1)


@app.command()
def retire(
    item_id: str = typer.Argument(..., help="Content item id"),
    db: Path | None = DB_OPTION,
) -> None:
    """Take a content item out of rotation."""
    try:
        _selector(db).retire(item_id)
    except ContentItemNotFoundError as e:
        _fail(str(e))

    console.print(f"[green]✓ Retired[/green] {item_id}")
