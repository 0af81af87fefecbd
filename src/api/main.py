"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routers import catalog, query
from src.core.errors import (
    AuthenticationError,
    PipelineError,
    QueryError,
    RenderSpecError,
    TransportError,
)
from src.core.logging import get_logger

logger = get_logger(__name__)

_STATUS_FOR: dict[type[PipelineError], int] = {
    AuthenticationError: 401,
    QueryError: 400,
    TransportError: 503,
    RenderSpecError: 422,
}

app = FastAPI(
    title="Warehouse Query Pipeline",
    version="0.1.0",
    description="Build, run and visualise BigQuery queries over the EPA PM2.5 dataset",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_FOR.items() if isinstance(exc, cls)), 500)
    logger.warning("%s %s -> %d %s: %s", request.method, request.url.path, status, type(exc).__name__, exc)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


app.include_router(query.router, tags=["Pipeline"])
app.include_router(catalog.router, tags=["Catalog"])


@app.get("/health")
def health():
    return {"status": "ok"}
