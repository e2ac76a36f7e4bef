"""FastAPI entrypoint: search, document listing and index mapping."""

from __future__ import annotations

from typing import Any

import yaml
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from SearchDSL.core.errors import EngineError, QueryError, describe
from SearchDSL.services.search import LIST_DOCUMENTS_LIMIT, SearchService, documents_payload
from SearchDSL.utils.log import log


def create_app(service: SearchService) -> FastAPI:
    """Build the HTTP app around an already wired search service."""
    app = FastAPI(title="SearchDSL", version="0.1.0")
    app.state.search_service = service

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "documents": service.index.document_count()}

    @app.get("/", response_class=PlainTextResponse)
    def mapping() -> str:
        return yaml.safe_dump(service.index.mapping.to_dict(), sort_keys=False)

    @app.post("/search")
    async def search(request: Request) -> dict[str, Any]:
        try:
            body = (await request.body()).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise HTTPException(status_code=400, detail=f"request body is not valid UTF-8: {exc.reason}") from exc
        if not body.strip():
            raise HTTPException(status_code=400, detail="request body must be a search document")
        try:
            result = await run_in_threadpool(service.search_document, body)
        except EngineError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except QueryError as exc:
            log.info("Rejected search document: %s", describe(exc))
            raise HTTPException(status_code=400, detail=describe(exc)) from exc
        return result.to_dict()

    @app.get("/documents")
    def list_documents(limit: int = LIST_DOCUMENTS_LIMIT) -> dict[str, Any]:
        if not 0 < limit <= LIST_DOCUMENTS_LIMIT:
            raise HTTPException(status_code=400, detail=f"limit must be in range 1..{LIST_DOCUMENTS_LIMIT}")
        try:
            result = service.list_documents(limit=limit)
        except EngineError as exc:
            raise HTTPException(status_code=500, detail=f"failed to list documents: {exc}") from exc
        return documents_payload(result)

    return app
