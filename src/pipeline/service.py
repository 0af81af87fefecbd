"""
Query pipeline -- orchestrates build -> execute -> render.

Stateless between calls: the only thing a pipeline holds is the session it
was given, which is itself immutable.  Nothing is retried, cached or
computed locally; the warehouse does all filtering and aggregation.
"""
from __future__ import annotations

from src.core.config import get_settings
from src.core.logging import get_logger
from src.db.connection import WarehouseSession
from src.db.executor import execute as execute_sql
from src.pipeline.request import QueryRequest
from src.pipeline.results import ResultSet
from src.pipeline.sql_builder import build_sql
from src.render.artifact import RenderedArtifact, RenderKind, RenderSpec
from src.render.renderer import render as render_rows

logger = get_logger(__name__)


class QueryPipeline:
    """Thin orchestration over an explicitly passed warehouse session.

    Parameters
    ----------
    session : WarehouseSession
        Authenticated session; acquired once at start-up by the caller.
    max_rows : int | None
        Upper bound applied to an explicit ``QueryRequest.limit``.
        Defaults to the configured ``sql_row_limit``.
    """

    def __init__(self, session: WarehouseSession, max_rows: int | None = None):
        self.session = session
        self.max_rows = max_rows if max_rows is not None else get_settings().sql_row_limit

    def compile(self, request: QueryRequest) -> str:
        """Dry run: the query text that ``submit`` would send."""
        return build_sql(request, max_rows=self.max_rows)

    def submit(self, request: QueryRequest) -> ResultSet:
        """Send *request* to the warehouse and return its rows verbatim.

        Raises AuthenticationError, QueryError or TransportError; no partial
        ResultSet is ever returned.
        """
        sql = self.compile(request)
        logger.info("QueryPipeline.submit | source=%s", request.source)
        return self.execute(sql)

    def execute(self, sql: str) -> ResultSet:
        """Send query text already produced by ``compile``."""
        logger.info("QueryPipeline.execute | sql=%s", sql)
        return execute_sql(self.session, sql)

    def render(self, rows: ResultSet, kind: RenderKind, spec: RenderSpec) -> RenderedArtifact:
        return render_rows(rows, kind, spec)

    def run(self, request: QueryRequest, kind: RenderKind, spec: RenderSpec) -> RenderedArtifact:
        """submit + render in one call."""
        return self.render(self.submit(request), kind, spec)
