"""
Command line interface for the repository quality service.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .errors import InvalidInput, LibQualityError
from .logger import configure_logging, redirect_logging_to_file
from .models import IssueState
from .services import RepositoryIngestionService
from .settings import settings
from .storage import MongoRepositoryStore

app = typer.Typer(name="libquality", help="GitHub repository quality cache CLI.")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Emit debug logs to the console."
    ),
) -> None:
    configure_logging(level="DEBUG" if verbose else settings.log_level)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port."),
) -> None:
    """Run the HTTP API."""
    from .api.main import run

    run(host=host, port=port)


@app.command()
def lookup(
    repo: str = typer.Argument(..., help="Exact GitHub repository name."),
    state: IssueState = typer.Option(
        IssueState.ALL, "--state", "-s", help="Issue state to count."
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log",
        help="Redirect detailed logs to the given file.",
    ),
) -> None:
    """Look a repository up, fetching it from GitHub when it is not cached."""
    if log_file:
        redirect_logging_to_file(log_file.resolve(), level=settings.log_level)
        typer.echo(f"Logging detailed output to {log_file.resolve()}")

    store = MongoRepositoryStore()
    service = RepositoryIngestionService(store=store)
    try:
        outcome = service.lookup(repo, state)
    except InvalidInput as exc:
        typer.echo(f"[ERROR] {exc.message}")
        raise typer.Exit(code=2)
    except LibQualityError as exc:
        typer.echo(f"[ERROR] {exc.message}")
        raise typer.Exit(code=1)
    finally:
        store.close()

    record = outcome.record
    source = "cache" if outcome.cache_hit else "github"
    typer.echo(
        f"{record.owner}/{record.name} issues[{record.issue_state.value}]="
        f"{record.open_issue_count} url={record.repository_url} source={source}"
    )


@app.command("list")
def list_repos() -> None:
    """List repositories cached in the database."""
    store = MongoRepositoryStore()
    try:
        records = store.list_repositories()
    except LibQualityError as exc:
        typer.echo(f"[ERROR] {exc.message}")
        raise typer.Exit(code=1)
    finally:
        store.close()

    if not records:
        typer.echo("No repositories cached yet.")
        return

    table = Table(title="Cached repositories")
    table.add_column("Repository")
    table.add_column("Issues", justify="right")
    table.add_column("State")
    table.add_column("Registered")
    for record in records:
        table.add_row(
            f"{record.owner}/{record.name}",
            str(record.open_issue_count),
            record.issue_state.value,
            record.registered_at.isoformat(timespec="seconds"),
        )
    console.print(table)


if __name__ == "__main__":  # pragma: no cover
    app()
