"""Command line entry point (``search-dsl``)."""

from __future__ import annotations

from typing import Sequence

from SearchDSL.cli.runner import CommandRunner
from SearchDSL.cli.ui import cli

__all__ = ["CommandRunner", "cli", "main"]


def main(argv: Sequence[str] | None = None) -> None:
    """Run the CLI; ``argv`` defaults to ``sys.argv[1:]``."""
    cli.main(args=list(argv) if argv is not None else None, prog_name="search-dsl")
