#!/usr/bin/env python3
"""
Mizan Memory Engine Web Server
FastAPI app exposing the engine over HTTP.
Copyright 2025 Jurden Bruce
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Query, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import EngineConfig, default_port, load_config
from .engine import MemoryEngine
from .errors import MemoryEngineError, ValidationError
from .models import ListOptions, MemoryCategory, MemoryInput, SearchOptions
from .utils import parse_date_ms, parse_tags, setup_logging

logger = logging.getLogger("mizan-memory.web")

# Error kinds that are the caller's fault; everything else is a 500
_CLIENT_ERROR_KINDS = {
    "validation",
    "empty_content",
    "missing_category",
    "invalid_category",
    "empty_query",
    "missing_id",
    "embedding_unavailable",
    "embedding_failed",
}


class StoreMemoryRequest(BaseModel):
    content: str = Field(..., description="Memory content to store")
    category: str = Field(..., description="One of: " + ", ".join(MemoryCategory.values()))
    tags: Optional[List[str]] = Field(default=None, description="Optional tags")
    importance: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Importance score 0-1")
    timestamp: Optional[int] = Field(default=None, description="Creation time, epoch ms")


def _optional_category(value: Optional[str]) -> Optional[MemoryCategory]:
    """Unknown category query values are treated as no filter"""
    if not value:
        return None
    try:
        return MemoryCategory.parse(value)
    except ValidationError:
        logger.warning(f"Ignoring unknown category filter: {value}")
        return None


def _error_response(error: MemoryEngineError) -> JSONResponse:
    status = 400 if error.kind in _CLIENT_ERROR_KINDS else 500
    if status == 500:
        logger.error(f"Request failed ({error.kind}): {error}")
    return JSONResponse(status_code=status, content=error.to_dict())


def create_app(engine: Optional[MemoryEngine] = None, config: Optional[EngineConfig] = None) -> FastAPI:
    """Build the FastAPI app around an engine

    When no engine is passed, one is created from ``config`` on startup and
    closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = engine is None
        app.state.engine = engine or MemoryEngine(config or load_config())
        try:
            yield
        finally:
            if owned:
                app.state.engine.close()

    app = FastAPI(
        title="Mizan Memory API",
        description="Durable, semantically searchable agent memory",
        version="1.0.0",
        lifespan=lifespan,
    )
    if engine is not None:
        app.state.engine = engine

    @app.exception_handler(MemoryEngineError)
    async def handle_engine_error(request, exc: MemoryEngineError):
        return _error_response(exc)

    @app.get("/health")
    async def health():
        return app.state.engine.health().to_dict()

    @app.post("/memories", status_code=201)
    async def create_memory(request: StoreMemoryRequest):
        memory = await app.state.engine.add_memory(MemoryInput(
            content=request.content,
            category=request.category,
            tags=request.tags,
            importance=request.importance,
            timestamp=request.timestamp,
        ))
        return memory.to_api_dict()

    @app.get("/memories/search")
    async def search_memories(
        q: str = Query("", description="Search query"),
        limit: Optional[int] = Query(None, ge=0, le=1000),
        category: Optional[str] = None,
        tags: Optional[str] = None,
    ):
        results = await app.state.engine.search(q, SearchOptions(
            limit=limit,
            category=_optional_category(category),
            tags=parse_tags(tags) or None,
        ))
        return [r.to_api_dict() for r in results]

    @app.get("/memories")
    async def list_memories(
        category: Optional[str] = None,
        tags: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        limit: Optional[int] = Query(None, ge=0),
        offset: Optional[int] = Query(None, ge=0),
    ):
        memories = app.state.engine.list(ListOptions(
            category=_optional_category(category),
            tags=parse_tags(tags) or None,
            since=parse_date_ms(since),
            until=parse_date_ms(until),
            limit=limit,
            offset=offset,
        ))
        return [m.to_api_dict() for m in memories]

    @app.post("/memories/summarize")
    async def summarize_memories():
        return (await app.state.engine.summarize()).to_dict()

    @app.post("/memories/decay")
    async def decay_memories():
        return app.state.engine.decay().to_dict()

    @app.get("/memories/{memory_id}")
    async def get_memory(memory_id: str):
        memory = app.state.engine.get(memory_id)
        if memory is None:
            return JSONResponse(status_code=404, content={"error": "Memory not found."})
        return memory.to_api_dict()

    @app.delete("/memories/{memory_id}")
    async def delete_memory(memory_id: str):
        if not app.state.engine.delete(memory_id):
            return JSONResponse(status_code=404, content={"error": "Memory not found."})
        return Response(status_code=204)

    return app


def serve(config: Optional[EngineConfig] = None, host: str = "127.0.0.1", port: Optional[int] = None):
    config = config or load_config()
    port = port or default_port()
    logger.info(f"Mizan Memory API listening on http://{host}:{port} (docs at /docs)")
    uvicorn.run(create_app(config=config), host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    cfg = load_config()
    setup_logging(cfg.log_level)
    serve(cfg)
