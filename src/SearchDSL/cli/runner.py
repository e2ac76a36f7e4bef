"""Command runner for coordinating CLI execution.

Owns logging configuration, component creation, resource cleanup and the
error boundary for every command.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from SearchDSL.compiler import create_compiler
from SearchDSL.config import AppConfig
from SearchDSL.core.errors import QueryError, describe
from SearchDSL.dsl.parser import parse_search_document
from SearchDSL.embeddings import create_embedding_client
from SearchDSL.services import (
    build_engine_request,
    create_indexing_service,
    create_search_service,
    load_documents,
    open_index,
)
from SearchDSL.utils.log import SERVER_LOGGERS, configure_logging, log


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


class CommandRunner:
    """Runs one CLI command against the configured components."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def _configure_logging(self, action: str, extra_loggers: tuple[str, ...] = ()) -> None:
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
            extra_loggers=extra_loggers,
        )

    def run_serve(self, action: str, host: str | None, port: int | None) -> None:
        """Serve the HTTP API until interrupted.

        Raises:
            click.Abort: When the server cannot start.
        """
        import uvicorn

        from SearchDSL.server import create_app

        self._configure_logging(action, extra_loggers=SERVER_LOGGERS)
        host = host or self.config.server.host
        port = port or self.config.server.port
        try:
            index = open_index(self.config)
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Failed to open index %s: %s", self.config.index.path, e)
            raise click.Abort from e

        embedder = create_embedding_client(self.config)
        try:
            app = create_app(create_search_service(self.config, index, embedder))
            log.info("Server starting on http://%s:%d", host, port)
            # log_config=None keeps the handlers installed above
            uvicorn.run(
                app,
                host=host,
                port=port,
                log_config=None,
                log_level=self.config.runtime.level.lower(),
                access_log=self.config.runtime.access_log,
            )
        finally:
            embedder.close()
            index.close()

    def run_compile(self, action: str, document: Path) -> None:
        """Print the engine request a search document compiles to.

        Raises:
            click.ClickException: When the document is invalid.
        """
        self._configure_logging(action)
        embedder = create_embedding_client(self.config)
        try:
            request = parse_search_document(document.read_text(encoding="utf-8"))
            engine_request = build_engine_request(create_compiler(self.config, embedder), request)
        except QueryError as e:
            raise click.ClickException(describe(e)) from e
        finally:
            embedder.close()
        _echo_json(engine_request.to_dict())

    def run_search(self, action: str, document: Path) -> None:
        """Execute a search document and print the JSON result.

        Raises:
            click.ClickException: When the document is invalid.
            click.Abort: When the search fails.
        """
        self._configure_logging(action)
        embedder = create_embedding_client(self.config)
        index = None
        try:
            index = open_index(self.config)
            service = create_search_service(self.config, index, embedder)
            result = service.search_document(document.read_text(encoding="utf-8"))
        except QueryError as e:
            raise click.ClickException(describe(e)) from e
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Search failed: %s", e)
            raise click.Abort from e
        finally:
            embedder.close()
            if index is not None:
                index.close()
        _echo_json(result.to_dict())

    def run_index(self, action: str, documents: Path) -> None:
        """Embed and index every document in ``documents``.

        Raises:
            click.Abort: When nothing could be indexed.
        """
        self._configure_logging(action)
        embedder = create_embedding_client(self.config)
        index = None
        try:
            index = open_index(self.config)
            service = create_indexing_service(index, embedder)
            report = service.index_batch(load_documents(documents))
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Indexing failed: %s", e)
            raise click.Abort from e
        finally:
            embedder.close()
            if index is not None:
                index.close()
        if report.failed and not report.indexed:
            log.error("No documents were indexed (%d failed)", report.failed)
            raise click.Abort
        log.info("Indexed %d documents (%d failed)", report.indexed, report.failed)
