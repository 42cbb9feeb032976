# src/jobrelay/cli.py
"""
Command-line interface for the job relay.

This module provides CLI commands to:
- Serve the HTTP relay (/api/fetch-jobs, /api/fetch)
- Run a ScrapingDog fetch from the terminal (optionally without writing)
- Debug Google Sheets access (tab list, header row)
"""

from dotenv import load_dotenv
load_dotenv(override=True)  # automatically looks for a .env file in the project root

import json
import logging
from typing import List, Optional

import typer

from jobrelay import service
from jobrelay.config import load_settings
from jobrelay.errors import ConfigError, RelayError
from jobrelay.io.sheets import SheetSynchronizer
from jobrelay.models import Destination, SearchQuery

# Typer app instance for CLI commands
app = typer.Typer(help="Job relay")


class _NoSheet:
    """Stand-in writer for --dry-run: accepts rows, writes nothing."""

    def write(self, rows, destination, headers):
        return None


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apify_client").setLevel(logging.WARNING)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: Optional[int] = typer.Option(None, "--port", help="Defaults to $PORT or 5000"),
):
    """Run the HTTP relay with uvicorn."""
    import uvicorn

    settings = load_settings()
    _setup_logging(settings.log_level)
    uvicorn.run("jobrelay.api:app", host=host, port=port or settings.port)


@app.command()
def fetch_jobs(
    field: str,
    sheet_id: str = typer.Option("", "--sheet-id", help="Destination spreadsheet id"),
    sheet_name: str = typer.Option("Sheet1", "--sheet-name"),
    location: str = typer.Option("", "--location"),
    sort_by: str = typer.Option("", "--sort-by", help='"", day, week or month'),
    work_type: str = typer.Option("", "--work-type"),
    job_type: List[str] = typer.Option([], "--job-type", help="Repeatable"),
    exp_level: List[str] = typer.Option([], "--exp-level", help="Repeatable"),
    total: int = typer.Option(50, "--total"),
    chunk: int = typer.Option(10, "--chunk"),
    max_age_minutes: Optional[float] = typer.Option(None, "--max-age-minutes"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print rows but do not write to Sheets"),
):
    """
    Fetch ScrapingDog LinkedIn jobs → dedupe/exclude → append to the sheet.
    """
    settings = load_settings()
    _setup_logging(settings.log_level)

    query = SearchQuery(
        field=field,
        location=location,
        sort_by=sort_by,
        work_type=work_type,
        job_types=job_type,
        exp_levels=exp_level,
        total=total,
        chunk=chunk,
    )
    destination = Destination(sheet_id or "dry-run", sheet_name) if dry_run else Destination(sheet_id, sheet_name)
    typer.echo(f"Fetching up to {query.total} jobs for field: {field!r}...")

    try:
        out = service.fetch_jobs(
            query,
            destination,
            settings,
            sheets=_NoSheet() if dry_run else None,  # type: ignore[arg-type]
            max_age_minutes=max_age_minutes,
        )
    except ConfigError as e:
        raise SystemExit(str(e))
    except RelayError as e:
        typer.echo(f"Fetch failed: {e}", err=True)
        raise typer.Exit(code=1)

    if dry_run:
        typer.echo(json.dumps({"fetched": out["rowCount"], "requests": out["requestsMade"], "preview_rows": out["jobs"]}, indent=2))
        return
    typer.echo(json.dumps({k: out[k] for k in ("rowCount", "requestsMade", "combos")}, indent=2))


@app.command()
def sheets_debug(sheet_id: str):
    """
    List worksheet titles and IDs via gspread to verify service-account access.
    """
    sync = SheetSynchronizer.from_settings(load_settings())
    for title, gid in sync.list_tabs(sheet_id):
        print(f"{title}  gid={gid}")


@app.command()
def sheet_headers(sheet_id: str, sheet_name: str = typer.Option("Sheet1", "--sheet-name")):
    """
    Debug: show the first row of a tab so we can confirm the header layout.
    """
    sync = SheetSynchronizer.from_settings(load_settings())
    print("Headers:", sync.read_header(Destination(sheet_id, sheet_name)))


if __name__ == "__main__":
    app()
