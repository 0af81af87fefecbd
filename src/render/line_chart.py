"""
Faceted line chart as a Vega-Lite v5 spec.

One small-multiple panel per value of the ``group`` field, sharing the
y scale, e.g. daily PM2.5 mean over time with one panel per state.
"""
from __future__ import annotations

from typing import Any

from src.core.utils import is_iso_date, is_number
from src.pipeline.results import ResultSet

VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"

_FACET_COLUMNS = 3
_PANEL_WIDTH = 220
_PANEL_HEIGHT = 160


def _humanise(col: str) -> str:
    return col.replace("_", " ").title()


def _x_type(values: list[Any]) -> str:
    """Vega-Lite field type for the x axis."""
    present = [v for v in values if v is not None]
    if present and all(is_iso_date(v) for v in present):
        return "temporal"
    if present and all(is_number(v) for v in present):
        return "quantitative"
    return "ordinal"


def default_title(fields: dict[str, str]) -> str:
    return f"{_humanise(fields['y'])} over {_humanise(fields['x'])} by {_humanise(fields['group'])}"


def line_chart_body(rows: ResultSet, fields: dict[str, str], title: str) -> dict[str, Any]:
    """Build the Vega-Lite spec; ``fields`` must already be checked against the columns."""
    x, y, group = fields["x"], fields["y"], fields["group"]
    color = fields.get("color")
    used = list(dict.fromkeys(c for c in (x, y, group, color) if c))

    encoding: dict[str, Any] = {
        "x": {"field": x, "type": _x_type(rows.column_values(x)), "title": _humanise(x)},
        "y": {"field": y, "type": "quantitative", "title": _humanise(y)},
    }
    if color:
        encoding["color"] = {"field": color, "type": "nominal", "title": _humanise(color)}

    return {
        "$schema": VEGA_LITE_SCHEMA,
        "title": title,
        "data": {"values": [{c: row[c] for c in used} for row in rows]},
        "facet": {"field": group, "type": "nominal", "title": _humanise(group)},
        "columns": _FACET_COLUMNS,
        "spec": {
            "width": _PANEL_WIDTH,
            "height": _PANEL_HEIGHT,
            "mark": {"type": "line", "tooltip": True},
            "encoding": encoding,
        },
        "resolve": {"scale": {"y": "shared"}},
    }
