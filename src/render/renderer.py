"""
render(rows, kind, spec) -> RenderedArtifact

A pure function of its inputs.  Every field named in the spec is checked
against the result columns before anything is built, so a bad spec fails
with RenderSpecError and produces nothing.
"""
from __future__ import annotations

from src.core.errors import RenderSpecError
from src.core.logging import get_logger
from src.pipeline.results import ResultSet
from src.render import line_chart, marker_map
from src.render.artifact import REQUIRED_FIELDS, RenderedArtifact, RenderKind, RenderSpec

logger = get_logger(__name__)


def check_fields(columns: tuple[str, ...] | list[str], kind: RenderKind, spec: RenderSpec) -> dict[str, str]:
    """Return role -> column for *kind*, or raise RenderSpecError."""
    fields = spec.fields_for(kind)

    unset = [role for role in REQUIRED_FIELDS[kind] if role not in fields]
    if unset:
        raise RenderSpecError(f"'{kind.value}' needs field(s) {', '.join(unset)} in the render spec")

    missing = [col for col in fields.values() if col not in columns]
    if missing:
        raise RenderSpecError(
            f"Render field(s) {', '.join(repr(m) for m in dict.fromkeys(missing))} not in result columns. "
            f"Available: {', '.join(columns) or '(none)'}"
        )
    return fields


def render(rows: ResultSet, kind: RenderKind | str, spec: RenderSpec) -> RenderedArtifact:
    kind = RenderKind(kind)
    fields = check_fields(rows.columns, kind, spec)

    if kind == RenderKind.LINE_CHART_BY_GROUP:
        title = spec.title or line_chart.default_title(fields)
        body = line_chart.line_chart_body(rows, fields, title)
    else:
        title = spec.title or marker_map.default_title(fields)
        body = marker_map.marker_map_body(rows, fields, zoom=spec.zoom)

    logger.debug("Rendered %s over %d rows", kind.value, len(rows))
    return RenderedArtifact(kind=kind, title=title, fields=fields, body=body, row_count=len(rows))
