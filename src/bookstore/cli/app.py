"""
Root Typer application for the bookstore CLI.

    bookstore serve [--ssl] [--http2] [--config PATH]
"""

from __future__ import annotations

import signal
from concurrent.futures import wait
from pathlib import Path

import typer
from rich.console import Console

from bookstore import __version__
from bookstore.core.errors import BookstoreError

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="bookstore",
    help="bookstore: a configurable book collection service.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bookstore {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """bookstore CLI: run the book collection service."""


# ── serve ────────────────────────────────────────────────────────────────


@app.command("serve")
def serve(
    ssl: bool = typer.Option(False, "--ssl", help="Serve HTTPS using server.tls.keystore"),
    http2: bool = typer.Option(False, "--http2", help="Offer HTTP/2"),
    config: Path | None = typer.Option(None, "--config", "-c", help="TOML configuration file"),  # noqa: UP007
) -> None:
    """Start the bookstore server and run until interrupted."""
    from bookstore.server import start

    try:
        handle = start(ssl_enabled=ssl, http2_enabled=http2, config=config)
    except BookstoreError as e:
        err_console.print(f"[red]Startup failed:[/red] {e.message}")
        raise typer.Exit(code=1) from e

    def _request_stop(signum: int, frame: object) -> None:
        handle.stop()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    console.print(f"[bold green]bookstore[/bold green] listening on {handle.url()}")
    while not handle.shutdown.done():
        wait([handle.shutdown], timeout=0.5)

    error = handle.started.exception() or handle.shutdown.exception()
    if error is not None:
        err_console.print(f"[red]Server failed:[/red] {error}")
        raise typer.Exit(code=1)
