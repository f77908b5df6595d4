"""bulkrecon CLI.

Commands:
- init: Initialize database schema
- template: Write an import template (CSV/XLSX)
- preview: Classify an import file without writing anything
- run: Classify and commit an import file
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from bulkrecon.config import get_config
from bulkrecon.core.logging import LogFormat, configure_logging
from bulkrecon.db.connection import close_db, get_session_factory, init_db
from bulkrecon.db.repository import SqlTrainingRepository
from bulkrecon.importing.committer import CommitProgress
from bulkrecon.importing.export import write_error_rows, write_template
from bulkrecon.importing.reader import read_import_file
from bulkrecon.importing.rows import ImportPreview
from bulkrecon.importing.session import ImportSession
from bulkrecon.models import BatchResult, Disposition, DuplicatePolicy, ImportRow

app = typer.Typer(
    name="bulkrecon",
    help="bulkrecon - Bulk training import with fuzzy catalogue matching",
    no_args_is_help=True,
)

console = Console()
logger = structlog.get_logger()


@app.callback()
def setup(
    log_level: str = typer.Option("INFO", "--log-level", envvar="LOG_LEVEL", help="Logging verbosity"),
    log_format: LogFormat = typer.Option(
        LogFormat.TEXT, "--log-format", envvar="LOG_FORMAT", case_sensitive=False, help="Log renderer"
    ),
):
    """Configure logging (same LOG_LEVEL / LOG_FORMAT variables as AppConfig)."""
    try:
        configure_logging(level=log_level, log_format=log_format)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level")


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        try:
            if drop:
                console.print("[yellow]Dropping existing tables...[/yellow]")
            await init_db(drop=drop)
        finally:
            await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def template(
    path: Path = typer.Argument(..., help="Output file (.csv or .xlsx)"),
):
    """Write an import template with sample rows."""
    try:
        write_template(path)
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✓[/bold green] Template written to {path}")


def _load_rows(file_path: Path) -> list[ImportRow]:
    importing = get_config().importing
    try:
        rows = read_import_file(
            file_path,
            max_file_size_mb=importing.max_file_size_mb,
            max_rows=importing.max_rows,
        )
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"  Read {len(rows)} rows from {file_path}")
    return rows


def _print_preview(preview: ImportPreview) -> None:
    summary = preview.summary()

    table = Table(title="Import Preview")
    table.add_column("Bucket", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    table.add_row("Total", str(summary["total_rows"]))
    table.add_row("Valid", str(summary["valid"]))
    table.add_row("Auto-matched", str(summary["auto_matched"]))
    table.add_row("Suggestions", str(summary["suggestion"]))
    table.add_row("Duplicates", str(summary["duplicate"]))
    table.add_row("Errors", str(summary["error"]))
    console.print(table)

    flagged = [row for row in preview.rows() if row.disposition is not Disposition.VALID]
    if not flagged:
        return

    details = Table(title="Rows needing attention")
    details.add_column("Row", justify="right")
    details.add_column("Status", style="yellow")
    details.add_column("Training type")
    details.add_column("Message", style="dim")
    for row in flagged:
        message = getattr(row, "error", None) or getattr(row, "warning", None) or ""
        details.add_row(
            str(row.row_number),
            row.disposition.value,
            row.data.training_type_name or "",
            message,
        )
    console.print(details)


def _export_errors(preview: ImportPreview, errors_out: Path | None) -> None:
    if errors_out is None or not preview.errors:
        return
    count = write_error_rows(preview, errors_out)
    console.print(f"[yellow]⚠[/yellow] {count} error rows written to {errors_out}")


def _print_result(result: BatchResult) -> None:
    table = Table(title="Commit Result")
    table.add_column("Outcome", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    table.add_row("Inserted", str(result.inserted))
    table.add_row("Updated", str(result.updated))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Failed", str(result.failed))
    if result.cancelled:
        table.add_row("Not attempted", str(result.not_attempted))
    console.print(table)

    for failure in result.failures[:5]:  # Show first 5 failures
        rows = ", ".join(str(n) for n in failure.row_numbers)
        console.print(f"  [red]✗[/red] rows {rows}: {failure.message}", style="dim")


@app.command()
def preview(
    file_path: Path = typer.Argument(..., help="Import file (CSV/XLSX)"),
    errors_out: Path | None = typer.Option(None, "--errors-out", help="Write error rows to CSV/XLSX"),
):
    """Classify an import file and show the result without committing."""
    config = get_config()
    console.print(f"[bold]Previewing import:[/bold] {file_path}")
    rows = _load_rows(file_path)

    async def _preview():
        try:
            session = ImportSession(SqlTrainingRepository(get_session_factory()), config=config.importing)
            return await session.prepare(rows)
        finally:
            await close_db()

    result = asyncio.run(_preview())
    _print_preview(result)
    _export_errors(result, errors_out)


@app.command()
def run(
    file_path: Path = typer.Argument(..., help="Import file (CSV/XLSX)"),
    duplicates: DuplicatePolicy = typer.Option(
        DuplicatePolicy.SKIP, "--duplicates", help="What to do with existing trainings"
    ),
    approve_suggestions: bool = typer.Option(
        False, "--approve-suggestions", help="Approve every fuzzy suggestion"
    ),
    errors_out: Path | None = typer.Option(None, "--errors-out", help="Write error rows to CSV/XLSX"),
):
    """Classify an import file and commit accepted rows."""
    config = get_config()
    console.print(f"[bold]Importing:[/bold] {file_path} (duplicates={duplicates.value})")
    rows = _load_rows(file_path)

    async def _run():
        session = ImportSession(SqlTrainingRepository(get_session_factory()), config=config.importing)
        loop = asyncio.get_running_loop()
        handler_installed = True
        try:
            # Ctrl-C stops at the next chunk boundary instead of aborting mid-write
            loop.add_signal_handler(signal.SIGINT, session.cancel)
        except NotImplementedError:
            handler_installed = False
            logger.warning("SIGINT handler unavailable; Ctrl-C will abort immediately")

        try:
            preview_result = await session.prepare(rows)
            _print_preview(preview_result)
            _export_errors(preview_result, errors_out)

            if approve_suggestions:
                approved = session.workflow.approve_all()
                console.print(f"  Approved {approved} suggestions")

            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Committing", total=None)

                def _on_progress(update: CommitProgress) -> None:
                    progress.update(task, completed=update.processed, total=update.total)

                return await session.commit(duplicates, on_progress=_on_progress)
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)
            await close_db()

    result = asyncio.run(_run())
    _print_result(result)
    logger.info(
        "import finished",
        file=str(file_path),
        inserted=result.inserted,
        updated=result.updated,
        failed=result.failed,
        cancelled=result.cancelled,
    )
    if result.cancelled:
        console.print("[yellow]⚠[/yellow] Import cancelled; committed chunks were kept")
        raise typer.Exit(code=130)
    if result.failed:
        raise typer.Exit(code=1)
    console.print("[bold green]✓[/bold green] Import complete")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
