"""
SQL builder -- turns a QueryRequest into a single SELECT statement.

Plain template substitution:

    SELECT <columns | group columns + aggregations>
    FROM <source>
    [WHERE <filters>] [GROUP BY <group_by>] [ORDER BY <order_by>] [LIMIT n]

No column or table is checked here; the warehouse rejects anything unknown.
"""
from __future__ import annotations

from typing import Any

from src.core.logging import get_logger
from src.pipeline.request import AggFunc, Aggregation, Condition, QueryRequest

logger = get_logger(__name__)

_AGG_TEMPLATES: dict[AggFunc, str] = {
    AggFunc.MEAN: "AVG({col})",
    AggFunc.SUM: "SUM({col})",
    AggFunc.COUNT: "COUNT({col})",
    AggFunc.COUNT_DISTINCT: "COUNT(DISTINCT {col})",
    AggFunc.MIN: "MIN({col})",
    AggFunc.MAX: "MAX({col})",
}


# ── Literals & identifiers ───────────────────────────────

def _quote_literal(value: Any) -> str:
    """Render a Python scalar as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _render_source(source: str) -> str:
    # Hyphenated project ids must be back-quoted in BigQuery
    if "-" in source:
        return f"`{source}`"
    return source


def _render_aggregation(name: str, agg: Aggregation) -> str:
    return f"{_AGG_TEMPLATES[agg.func].format(col=agg.column)} AS {name}"


def _render_condition(cond: Condition) -> str:
    if cond.op == "in":
        values = ", ".join(_quote_literal(v) for v in cond.value)
        return f"{cond.column} IN ({values})"
    if cond.value is None:
        return f"{cond.column} IS NULL" if cond.op == "=" else f"{cond.column} IS NOT NULL"
    return f"{cond.column} {cond.op} {_quote_literal(cond.value)}"


# ── Select list ──────────────────────────────────────────

def select_list(request: QueryRequest) -> list[str]:
    """Return the rendered select items, in output order.

    Without aggregations the selected columns are passed through verbatim.
    With aggregations only grouped columns survive (in ``columns`` order,
    then any extra group-by columns), followed by the aggregations.
    """
    if not request.aggregations:
        return list(request.columns) or list(request.group_by)

    items: list[str] = [c for c in request.columns if c in request.group_by]
    items += [g for g in request.group_by if g not in items]
    items += [_render_aggregation(name, agg) for name, agg in request.aggregations.items()]
    return items


# ── SQL builder ──────────────────────────────────────────

def build_sql(request: QueryRequest, max_rows: int | None = None) -> str:
    """Build the query text for *request*.

    ``max_rows`` clamps an explicit ``request.limit``; a request without a
    limit gets no LIMIT clause.
    """
    parts: list[str] = [
        "SELECT " + ", ".join(select_list(request)),
        "FROM " + _render_source(request.source),
    ]

    if request.filters:
        parts.append("WHERE " + " AND ".join(_render_condition(c) for c in request.filters))

    if request.group_by:
        parts.append("GROUP BY " + ", ".join(request.group_by))

    if request.order_by:
        parts.append(
            "ORDER BY "
            + ", ".join(f"{k.column} DESC" if k.descending else k.column for k in request.order_by)
        )

    if request.limit is not None:
        limit = min(request.limit, max_rows) if max_rows else request.limit
        parts.append(f"LIMIT {limit}")

    sql = " ".join(parts)
    logger.debug("Built SQL: %s", sql)
    return sql
