"""POST /query, /query/compile, /render, /render/rows -- pipeline endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.core.errors import RenderSpecError
from src.core.logging import get_logger
from src.core.utils import timer
from src.db.connection import WarehouseSession, get_session
from src.pipeline.request import QueryRequest
from src.pipeline.results import ResultSet
from src.pipeline.service import QueryPipeline
from src.pipeline.sql_builder import build_sql
from src.render import marker_map
from src.render.artifact import RenderKind, RenderSpec
from src.render.renderer import render

logger = get_logger(__name__)
router = APIRouter()


def get_pipeline(session: WarehouseSession = Depends(get_session)) -> QueryPipeline:
    return QueryPipeline(session)


class CompileResponse(BaseModel):
    sql: str


class QueryResponse(BaseModel):
    sql: str
    columns: list[str]
    rows: list[dict]
    row_count: int
    latency_ms: int


class RenderBody(BaseModel):
    request: QueryRequest
    kind: RenderKind
    spec: RenderSpec
    include_html: bool = Field(False, description="Also return the interactive map document (maps only)")


class RenderRowsBody(BaseModel):
    rows: list[dict[str, Any]] = Field(..., description="Result rows, all sharing one column set")
    kind: RenderKind
    spec: RenderSpec
    include_html: bool = False


class RenderResponse(BaseModel):
    sql: str | None = None
    artifact: dict
    html: str | None = None


def _render_response(rows: ResultSet, kind: RenderKind, spec: RenderSpec,
                     include_html: bool, sql: str | None = None) -> RenderResponse:
    artifact = render(rows, kind, spec)
    html = None
    if include_html and artifact.kind == RenderKind.MAP_WITH_MARKERS:
        html = marker_map.to_html(artifact)
    return RenderResponse(sql=sql, artifact=artifact.to_dict(), html=html)


@router.post("/query/compile", response_model=CompileResponse)
def compile_endpoint(req: QueryRequest) -> CompileResponse:
    """Dry run: return the query text without contacting the warehouse."""
    return CompileResponse(sql=build_sql(req, max_rows=get_settings().sql_row_limit))


@router.post("/query", response_model=QueryResponse)
def query_endpoint(req: QueryRequest, pipeline: QueryPipeline = Depends(get_pipeline)) -> QueryResponse:
    """Build the query, run it and return every row."""
    with timer() as t:
        sql = pipeline.compile(req)
        rows = pipeline.execute(sql)
    return QueryResponse(
        sql=sql,
        columns=list(rows.columns),
        rows=rows.rows,
        row_count=len(rows),
        latency_ms=t["elapsed_ms"],
    )


@router.post("/render", response_model=RenderResponse)
def render_endpoint(body: RenderBody, pipeline: QueryPipeline = Depends(get_pipeline)) -> RenderResponse:
    """Run the query, then render the rows as a chart or map."""
    sql = pipeline.compile(body.request)
    rows = pipeline.execute(sql)
    logger.info("Rendering %s over %d rows", body.kind.value, len(rows))
    return _render_response(rows, body.kind, body.spec, body.include_html, sql=sql)


@router.post("/render/rows", response_model=RenderResponse)
def render_rows_endpoint(body: RenderRowsBody) -> RenderResponse:
    """Render rows the caller already holds (no warehouse round-trip)."""
    try:
        rows = ResultSet.from_records(body.rows)
    except ValueError as exc:
        raise RenderSpecError(str(exc)) from exc
    return _render_response(rows, body.kind, body.spec, body.include_html)
