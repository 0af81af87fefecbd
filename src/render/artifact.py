"""
Render kinds, field-mapping specs and the rendered artifact description.

A ``RenderedArtifact`` is plain data (a Vega-Lite spec or a marker-map
description), so two renders of the same rows compare equal.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RenderKind(str, Enum):
    LINE_CHART_BY_GROUP = "line_chart_by_group"
    MAP_WITH_MARKERS = "map_with_markers"


# Fields that must be set for each kind; any other set field is optional
REQUIRED_FIELDS: dict[RenderKind, tuple[str, ...]] = {
    RenderKind.LINE_CHART_BY_GROUP: ("x", "y", "group"),
    RenderKind.MAP_WITH_MARKERS: ("lat", "lng"),
}

FIELD_ROLES: dict[RenderKind, tuple[str, ...]] = {
    RenderKind.LINE_CHART_BY_GROUP: ("x", "y", "group", "color"),
    RenderKind.MAP_WITH_MARKERS: ("lat", "lng", "color", "label"),
}


class RenderSpec(BaseModel):
    """Maps result columns onto visual roles."""

    title: str | None = Field(None, description="Chart/map title; derived from the fields when omitted")
    # line chart
    x: str | None = Field(None, description="x-axis column (time axis for trends)")
    y: str | None = Field(None, description="y-axis numeric column")
    group: str | None = Field(None, description="Column whose values become facets")
    # map
    lat: str | None = Field(None, description="Latitude column")
    lng: str | None = Field(None, description="Longitude column")
    label: str | None = Field(None, description="Marker tooltip column")
    zoom: int | None = Field(None, ge=1, le=18, description="Initial map zoom; derived from the marker spread when omitted")
    # both
    color: str | None = Field(None, description="Colour-encoding column")

    def fields_for(self, kind: RenderKind) -> dict[str, str]:
        """Role -> column for every role of *kind* that is set."""
        return {role: getattr(self, role) for role in FIELD_ROLES[kind] if getattr(self, role)}


@dataclass(frozen=True)
class RenderedArtifact:
    """Description of a rendered chart or map."""

    kind: RenderKind
    title: str
    fields: dict[str, str]
    body: dict[str, Any] = field(default_factory=dict)
    row_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "fields": self.fields,
            "body": self.body,
            "row_count": self.row_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderedArtifact":
        return cls(
            kind=RenderKind(data["kind"]),
            title=data["title"],
            fields=dict(data["fields"]),
            body=data["body"],
            row_count=data.get("row_count", 0),
        )
