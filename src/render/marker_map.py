"""
Marker map: one circle marker per row (e.g. one per monitoring site).

``marker_map_body`` produces a plain, deterministic description; ``to_folium``
and ``to_html`` turn that description into an interactive Leaflet document
for a human viewer.
"""
from __future__ import annotations

import html
from typing import Any

import folium
from branca.colormap import LinearColormap

from src.core.errors import RenderSpecError
from src.core.utils import is_number
from src.pipeline.results import ResultSet
from src.render.artifact import RenderedArtifact, RenderKind

# yellow -> orange -> dark red, as for air-quality readings
LINEAR_COLORS = ["#ffffb2", "#fd8d3c", "#bd0026"]
CATEGORY_PALETTE = [
    "#4e79a7", "#f28e2b", "#e15759", "#76b7b2", "#59a14f",
    "#edc948", "#b07aa1", "#ff9da7", "#9c755f", "#bab0ac",
]
DEFAULT_COLOR = "#3388ff"
MISSING_COLOR = "#9e9e9e"
_MARKER_RADIUS = 6


def _humanise(col: str) -> str:
    return col.replace("_", " ").title()


def default_title(fields: dict[str, str]) -> str:
    if "color" in fields:
        return f"{_humanise(fields['color'])} by location"
    return "Locations"


def _coordinate(value: Any, column: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise RenderSpecError(f"Column '{column}' holds non-numeric coordinate {value!r}") from exc


def _zoom_for(lats: list[float], lngs: list[float]) -> int:
    """Rough zoom level that fits the marker spread."""
    if not lats:
        return 4
    spread = max(max(lats) - min(lats), max(lngs) - min(lngs))
    if spread > 20:
        return 4
    if spread > 5:
        return 6
    if spread > 1:
        return 8
    return 10


def _color_scale(values: list[Any]) -> tuple[dict[str, Any], Any]:
    """Return (legend description, value -> hex colour function)."""
    present = [v for v in values if v is not None]
    if present and all(is_number(v) for v in present):
        vmin, vmax = float(min(present)), float(max(present))
        if vmin == vmax:
            def flat(v: Any) -> str:
                return MISSING_COLOR if v is None else LINEAR_COLORS[-1]
            return {"type": "linear", "min": vmin, "max": vmax, "colors": LINEAR_COLORS}, flat
        cmap = LinearColormap(LINEAR_COLORS, vmin=vmin, vmax=vmax)

        def linear(v: Any) -> str:
            return MISSING_COLOR if v is None else cmap.rgb_hex_str(float(v))
        return {"type": "linear", "min": vmin, "max": vmax, "colors": LINEAR_COLORS}, linear

    categories = sorted({str(v) for v in present})
    mapping = {c: CATEGORY_PALETTE[i % len(CATEGORY_PALETTE)] for i, c in enumerate(categories)}

    def categorical(v: Any) -> str:
        return MISSING_COLOR if v is None else mapping[str(v)]
    return {"type": "categorical", "items": mapping}, categorical


def marker_map_body(rows: ResultSet, fields: dict[str, str], zoom: int | None = None) -> dict[str, Any]:
    """Build the map description; rows with a null coordinate are left off the map."""
    lat_col, lng_col = fields["lat"], fields["lng"]
    color_col, label_col = fields.get("color"), fields.get("label")

    legend: dict[str, Any] | None = None
    color_of = None
    if color_col:
        legend, color_of = _color_scale(rows.column_values(color_col))
        legend["field"] = color_col

    markers: list[dict[str, Any]] = []
    for row in rows:
        lat = _coordinate(row[lat_col], lat_col)
        lng = _coordinate(row[lng_col], lng_col)
        if lat is None or lng is None:
            continue
        marker: dict[str, Any] = {
            "lat": lat,
            "lng": lng,
            "color": color_of(row[color_col]) if color_of else DEFAULT_COLOR,
        }
        if color_col:
            marker["value"] = row[color_col]
        if label_col:
            marker["label"] = None if row[label_col] is None else str(row[label_col])
        markers.append(marker)

    lats = [m["lat"] for m in markers]
    lngs = [m["lng"] for m in markers]
    center = [sum(lats) / len(lats), sum(lngs) / len(lngs)] if markers else [39.8, -98.6]

    return {
        "center": center,
        "zoom": zoom or _zoom_for(lats, lngs),
        "tiles": "OpenStreetMap",
        "markers": markers,
        "legend": legend,
        "skipped": len(rows) - len(markers),
    }


# ── Materialisation ──────────────────────────────────────

def _tooltip(marker: dict[str, Any], legend: dict[str, Any] | None) -> str | None:
    parts = []
    if marker.get("label"):
        parts.append(html.escape(marker["label"]))
    if legend and marker.get("value") is not None:
        parts.append(f"{html.escape(legend['field'])}: {html.escape(str(marker['value']))}")
    return "<br>".join(parts) or None


def to_folium(artifact: RenderedArtifact) -> folium.Map:
    """Build an interactive folium map from a marker-map artifact."""
    if artifact.kind != RenderKind.MAP_WITH_MARKERS:
        raise ValueError(f"Cannot build a map from a '{artifact.kind.value}' artifact")

    body = artifact.body
    legend = body.get("legend")
    fmap = folium.Map(location=body["center"], zoom_start=body["zoom"], tiles=body["tiles"])
    fmap.get_root().html.add_child(
        folium.Element(f"<h3 style='text-align:center'>{html.escape(artifact.title)}</h3>")
    )

    groups: dict[str, folium.FeatureGroup] = {}
    if legend and legend["type"] == "categorical":
        for category in legend["items"]:
            groups[category] = folium.FeatureGroup(name=category).add_to(fmap)

    for marker in body["markers"]:
        target = groups.get(str(marker.get("value")), fmap)
        folium.CircleMarker(
            location=[marker["lat"], marker["lng"]],
            radius=_MARKER_RADIUS,
            color=marker["color"],
            weight=1,
            fill=True,
            fill_color=marker["color"],
            fill_opacity=0.8,
            tooltip=_tooltip(marker, legend),
        ).add_to(target)

    if legend and legend["type"] == "linear" and legend["min"] != legend["max"]:
        LinearColormap(
            legend["colors"], vmin=legend["min"], vmax=legend["max"], caption=_humanise(legend["field"]),
        ).add_to(fmap)
    if groups:
        folium.LayerControl(collapsed=False).add_to(fmap)
    return fmap


def to_html(artifact: RenderedArtifact) -> str:
    """Standalone HTML document for the map."""
    return to_folium(artifact).get_root().render()
