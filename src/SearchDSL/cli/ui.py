"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to the runner.
"""

from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

from SearchDSL.cli.runner import CommandRunner
from SearchDSL.config import DEFAULT_CONFIG_PATH, load_config_with_defaults

_DOCUMENT = click.Path(path_type=Path, dir_okay=False, exists=True)


@click.group(help="SearchDSL: compile and run YAML search documents.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file, merged over the defaults.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env before reading the config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path)


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default: server.host).")
@click.option("--port", type=int, default=None, help="Bind port (default: server.port).")
@click.pass_context
def serve_cmd(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve the HTTP search API."""
    CommandRunner(ctx.obj).run_serve(action=ctx.command.name, host=host, port=port)


@cli.command("compile")
@click.argument("document", type=_DOCUMENT)
@click.pass_context
def compile_cmd(ctx: click.Context, document: Path) -> None:
    """Print the engine request DOCUMENT compiles to."""
    CommandRunner(ctx.obj).run_compile(action=ctx.command.name, document=document)


@cli.command("search")
@click.argument("document", type=_DOCUMENT)
@click.pass_context
def search_cmd(ctx: click.Context, document: Path) -> None:
    """Run the search document DOCUMENT and print JSON results."""
    CommandRunner(ctx.obj).run_search(action=ctx.command.name, document=document)


@cli.command("index")
@click.argument("documents", type=_DOCUMENT)
@click.pass_context
def index_cmd(ctx: click.Context, documents: Path) -> None:
    """Embed and index DOCUMENTS (JSON, JSON Lines or YAML)."""
    CommandRunner(ctx.obj).run_index(action=ctx.command.name, documents=documents)
