from __future__ import annotations

import json
import logging
import os
from typing import Any

import typer
from rich.box import ROUNDED
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from vpms.config import get_settings
from vpms.db import init_db, session_scope
from vpms.metrics import compute_metrics
from vpms.schemas import VentureOut
from vpms.seed import seed_ventures

app = typer.Typer(help="Venture pipeline management service")
console = Console()


def _configure_logging(*, verbose: int, json_output: bool) -> None:
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handlers: list[logging.Handler]
    if json_output:
        handlers = [logging.StreamHandler()]
        fmt = "%(levelname)s: %(message)s"
    else:
        handlers = [RichHandler(console=console, show_time=False, show_path=False, markup=True)]
        fmt = "%(message)s"

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)


@app.callback()
def app_callback(
    ctx: typer.Context,
    database_url: str | None = typer.Option(
        None, "--database-url", help="Store connection string (overrides VPMS_DATABASE_URL).",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON for scripting."),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity."),
) -> None:
    if database_url:
        os.environ["VPMS_DATABASE_URL"] = database_url
        get_settings.cache_clear()
    ctx.obj = {"json_output": json_output, "verbose": verbose}
    _configure_logging(verbose=verbose, json_output=json_output)


def _wants_json(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json_output"))


def _render_table(title: str, rows: list[tuple[str, str]]) -> None:
    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    for metric, value in rows:
        table.add_row(metric, value)
    console.print(Panel(table, title=title, border_style="cyan"))


def _print(title: str, payload: Any, ctx: typer.Context) -> None:
    if _wants_json(ctx):
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    if isinstance(payload, dict):
        _render_table(title, [(k, str(v)) for k, v in payload.items()])
        return
    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    for column in ("code", "name", "stage", "readinessScore", "capitalStatus"):
        table.add_column(column)
    for row in payload:
        table.add_row(*(str(row.get(c, "-")) for c in ("code", "name", "stage", "readinessScore", "capitalStatus")))
    console.print(Panel(table, title=title, border_style="cyan"))


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind address (defaults to HOST or 127.0.0.1)."),
    port: int | None = typer.Option(None, help="Listening port (defaults to PORT or 4000)."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("vpms.app:app", host=host or settings.host, port=port or settings.port, reload=reload)


@app.command()
def seed(ctx: typer.Context) -> None:
    """Replace all ventures with the sample portfolio."""
    init_db()
    with session_scope() as session:
        created = seed_ventures(session)
        payload = [VentureOut.model_validate(v).model_dump(mode="json", by_alias=True) for v in created]
    _print("Seeded ventures", payload, ctx)


@app.command()
def metrics(ctx: typer.Context) -> None:
    """Print portfolio metrics."""
    init_db()
    with session_scope() as session:
        payload = compute_metrics(session)
    _print("Portfolio metrics", payload, ctx)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
