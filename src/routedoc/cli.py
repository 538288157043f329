"""CLI interface for routedoc."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from routedoc.auth import issue_token
from routedoc.config import RoutedocConfig, load_config, merge_cli_overrides
from routedoc.errors import AuthenticationError, ConfigError, ContentError
from routedoc.service import ContentService

app = typer.Typer(
    name="routedoc",
    help="Store markdown documents by route and render them to HTML.",
)

console = Console()
err_console = Console(stderr=True)

TokenOption = Annotated[
    Optional[str],
    typer.Option(
        "--token",
        "-t",
        envvar="ROUTEDOC_TOKEN",
        help="Bearer credential (JWT). Defaults to $ROUTEDOC_TOKEN.",
    ),
]

MarkdownFile = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Markdown file with YAML frontmatter.",
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from routedoc import __version__

        console.print(f"routedoc {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .routedoc.toml file."),
    ] = None,
    store_dir: Annotated[
        Optional[str],
        typer.Option("--store-dir", help="Directory of the JSON file store."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log store and update activity."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """routedoc - markdown content keyed by route."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )
    try:
        config = merge_cli_overrides(load_config(config_path), store_dir=store_dir)
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    ctx.obj = config


def _service(ctx: typer.Context) -> ContentService:
    config: RoutedocConfig = ctx.obj
    try:
        return ContentService.from_config(config)
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _auth_failed(exc: AuthenticationError) -> typer.Exit:
    err_console.print(f"[red]Authentication failed:[/red] {escape(str(exc))}")
    return typer.Exit(2)


@app.command(name="parse")
def parse_cmd(ctx: typer.Context, file: MarkdownFile, token: TokenOption = None) -> None:
    """Render a markdown file and print its attributes and HTML."""
    service = _service(ctx)
    try:
        record = service.parse_content(token, file.read_text(encoding="utf-8"))
    except AuthenticationError as exc:
        raise _auth_failed(exc) from exc
    except ContentError as exc:
        err_console.print(f"[red]{exc.code}:[/red] {escape(exc.message)}")
        raise typer.Exit(1) from exc
    console.print_json(json.dumps({"attributes": record.attributes, "rendered": record.rendered}))


@app.command(name="update")
def update_cmd(
    ctx: typer.Context,
    file: MarkdownFile,
    expect: Annotated[
        Optional[Path],
        typer.Option(
            "--expect",
            "-e",
            exists=True,
            dir_okay=False,
            help="File holding the content you last read; the write is "
            "rejected if the stored content no longer matches it. "
            "Without it the write is unconditional.",
        ),
    ] = None,
    token: TokenOption = None,
) -> None:
    """Create or replace content at the route declared in its frontmatter."""
    service = _service(ctx)
    expected = expect.read_text(encoding="utf-8") if expect is not None else None
    try:
        error = service.update_content(token, file.read_text(encoding="utf-8"), expected)
    except AuthenticationError as exc:
        raise _auth_failed(exc) from exc
    if error is not None:
        err_console.print(f"[red]{error.code}:[/red] {escape(error.message)}")
        raise typer.Exit(1)
    console.print(f"[green]Stored[/green] {file}")


@app.command(name="get")
def get_cmd(
    ctx: typer.Context,
    route: Annotated[str, typer.Argument(help="Route of the content.")],
    token: TokenOption = None,
) -> None:
    """Print the stored raw markdown for a route."""
    service = _service(ctx)
    try:
        record = service.get_content_by_route(token, route)
    except AuthenticationError as exc:
        raise _auth_failed(exc) from exc
    except ContentError as exc:
        err_console.print(f"[red]{exc.code}:[/red] {escape(exc.message)}")
        raise typer.Exit(1) from exc
    typer.echo(record.raw)


@app.command(name="load")
def load_cmd(
    ctx: typer.Context,
    route: Annotated[str, typer.Argument(help="Route of the content.")],
) -> None:
    """Print the rendered HTML for a route."""
    service = _service(ctx)
    try:
        html = service.load_content_by_route(route)
    except ContentError as exc:
        err_console.print(f"[red]{exc.code}:[/red] {escape(exc.message)}")
        raise typer.Exit(1) from exc
    typer.echo(html)


@app.command(name="list")
def list_cmd(
    ctx: typer.Context,
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON.")] = False,
) -> None:
    """List the frontmatter of all stored content."""
    meta = _service(ctx).list_content_meta()
    if as_json:
        typer.echo(json.dumps(meta))
        return
    if not meta:
        console.print("[yellow]No content stored.[/yellow]")
        return
    table = Table("Route", "Title")
    for attributes in meta:
        table.add_row(str(attributes.get("route", "")), str(attributes.get("title", "")))
    console.print(table)


@app.command(name="token")
def token_cmd(
    ctx: typer.Context,
    subject: Annotated[str, typer.Argument(help="Subject (sub claim) of the token.")],
    ttl: Annotated[
        Optional[int],
        typer.Option("--ttl", help="Lifetime in seconds. Defaults to auth.token_ttl_seconds."),
    ] = None,
) -> None:
    """Issue a credential signed with the configured secret."""
    config: RoutedocConfig = ctx.obj
    if not config.auth.is_configured:
        err_console.print("[red]Error:[/red] auth.secret is not set (ROUTEDOC_AUTH_SECRET)")
        raise typer.Exit(1)
    token = issue_token(
        config.auth.secret,
        subject,
        ttl_seconds=ttl or config.auth.token_ttl_seconds,
        audience=config.auth.audience,
    )
    typer.echo(token)
