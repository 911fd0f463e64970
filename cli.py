import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typing import Optional
from datetime import datetime, timezone

from hifz.database import engine, init_db, reset_db as reset_database
from hifz.errors import NotFoundError, StorageError, ValidationError
from hifz.legacy import import_legacy_items
from hifz.logging import configure_logging
from hifz.models import Grade
from hifz.review_schedule import NeverReviewed, is_due
from hifz.scheduler import get_scheduler
from hifz.utils import as_utc_naive

app = typer.Typer(help="Hifz CLI - spaced repetition review for memorized verses")
console = Console()

@app.callback()
def main(log_level: Optional[str] = typer.Option(None, help="Override HIFZ_LOG_LEVEL")):
    configure_logging(log_level)

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _save_failed(e: StorageError):
    console.print(f"[red]✗[/red] Could not save progress: {escape(str(e))}")
    raise typer.Exit(code=1)

def _format_due(item) -> str:
    if isinstance(item.review_schedule, NeverReviewed):
        return "New"
    return item.review_schedule.at.strftime("%Y-%m-%d %H:%M")

@app.command()
def init():
    """Initialize database tables"""
    init_db()
    console.print("[green]✓[/green] Database initialized successfully!")

@app.command()
def reset_db():
    """Delete all memorization items and reinitialize database (WARNING: irreversible!)"""
    confirm = typer.confirm("⚠️  This will DELETE ALL DATA. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    console.print("[yellow]Dropping and recreating tables...[/yellow]")
    reset_database()
    console.print("[green]✓[/green] Database reset complete! All data deleted.")

@app.command()
def add(
    surah: int = typer.Argument(..., help="Surah number (1-114)"),
    ayah: int = typer.Argument(..., help="Ayah number within the surah"),
    page: int = typer.Option(0, help="Mushaf page, shown during review")
):
    """Register a verse for memorization"""
    try:
        item_id = get_scheduler().add_item(surah, ayah, page, now=_now())
    except ValidationError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except StorageError as e:
        _save_failed(e)

    console.print(f"[green]✓[/green] Verse {surah}:{ayah} is tracked. Item ID: {item_id}")

@app.command()
def remove(item_id: str):
    """Stop tracking a verse"""
    try:
        removed = get_scheduler().remove_item(item_id)
    except StorageError as e:
        _save_failed(e)

    if removed:
        console.print(f"[green]✓[/green] Item {item_id} removed")
    else:
        console.print(f"[yellow]Item {item_id} was not tracked[/yellow]")

@app.command()
def due(limit: Optional[int] = typer.Option(None, help="Maximum items to list")):
    """List verses due for review"""
    try:
        items = get_scheduler().get_due_items(_now(), limit)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except StorageError as e:
        _save_failed(e)

    if not items:
        console.print("[green]Nothing due for review. Well done![/green]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Verse", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Due", style="yellow")
    table.add_column("Interval", style="blue", justify="right")
    table.add_column("Ease", justify="right")

    for item in items:
        table.add_row(
            item.id,
            f"{item.surah}:{item.ayah}",
            item.status.value,
            _format_due(item),
            f"{item.interval_days} d",
            f"{item.ease_factor:.2f}"
        )

    console.print(table)

@app.command()
def grade(
    item_id: str,
    quality: str = typer.Argument(..., help="again, hard, good, easy (or 0-3)")
):
    """Record a review attempt for a verse"""
    try:
        outcome = get_scheduler().record_attempt(item_id, quality, now=_now())
    except ValidationError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except NotFoundError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    except StorageError as e:
        _save_failed(e)

    console.print(f"[green]✓[/green] Attempt recorded ({Grade.parse(quality).name.title()})")
    console.print(f"  Next review: {outcome.next_review_at:%Y-%m-%d} (in {outcome.interval_days} days)")
    console.print(f"  Status: {outcome.status.value}")
    console.print(f"  Easiness: {outcome.ease_factor:.2f}")

@app.command()
def show(item_id: str):
    """Show the scheduling state of one item"""
    try:
        item = get_scheduler().get_item(item_id)
    except NotFoundError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    except StorageError as e:
        _save_failed(e)

    console.print(f"\n[bold]Verse {item.surah}:{item.ayah}[/bold] (page {item.page})")
    console.print(f"  Status: {item.status.value}")
    due_marker = " [yellow](due now)[/yellow]" if is_due(item.review_schedule, as_utc_naive(_now())) else ""
    console.print(f"  Next review: {_format_due(item)}{due_marker}")
    console.print(f"  Interval: {item.interval_days} days, easiness {item.ease_factor:.2f}")
    console.print(f"  Reviews: {item.total_reps} total, {item.consecutive_correct} correct in a row")
    if item.last_grade_enum is not None:
        console.print(f"  Last grade: {item.last_grade_enum.name.title()} at {item.last_attempt_at:%Y-%m-%d %H:%M}")

@app.command()
def stats():
    """View memorization progress"""
    try:
        progress = get_scheduler().get_progress_stats(_now())
    except StorageError as e:
        _save_failed(e)

    console.print(f"\n[bold]Memorization Progress[/bold]\n")
    console.print(f"  Verses tracked: {progress.total_items}")
    console.print(f"  Due for review: {progress.due_today}")
    console.print(f"  Learning: {progress.learning_count}")
    console.print(f"  In review: {progress.review_count}")
    console.print(f"  Mastered: {progress.mastered_count}")

@app.command()
def import_legacy(table: str = typer.Option("memorization", help="Legacy table name")):
    """Import verses from the legacy memorization table"""
    try:
        imported = import_legacy_items(engine, table=table)
    except ValidationError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(code=2)
    except StorageError as e:
        _save_failed(e)

    console.print(f"[green]✓[/green] Imported {imported} verses from {table}")

if __name__ == "__main__":
    app()
