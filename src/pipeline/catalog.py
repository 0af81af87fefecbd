"""
Loads and caches the named example requests from ``queries/examples.yml``.

Each example pairs a QueryRequest with the render kind/spec that suits it,
so the API, the UI and the walkthrough script share one set of demos.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from src.pipeline.request import QueryRequest
from src.render.artifact import RenderKind, RenderSpec

_CATALOG_PATH = Path(__file__).resolve().parents[2] / "queries" / "examples.yml"


@dataclass(frozen=True)
class Example:
    name: str
    description: str
    request: QueryRequest
    render_kind: RenderKind | None = None
    render_spec: RenderSpec | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "request": self.request.model_dump(mode="json"),
            "render_kind": self.render_kind.value if self.render_kind else None,
            "render_spec": self.render_spec.model_dump(exclude_none=True) if self.render_spec else None,
        }


@dataclass
class Catalog:
    version: int
    examples: dict[str, Example]  # keyed by name

    def example(self, name: str) -> Example | None:
        return self.examples.get(name)

    def names(self) -> list[str]:
        return list(self.examples.keys())


# ── Parsing ──────────────────────────────────────────────

def _parse_example(raw: dict[str, Any]) -> Example:
    render = raw.get("render") or {}
    return Example(
        name=raw["name"],
        description=raw.get("description", ""),
        request=QueryRequest(**raw["request"]),
        render_kind=RenderKind(render["kind"]) if render.get("kind") else None,
        render_spec=RenderSpec(**render["spec"]) if render.get("spec") else None,
    )


def parse_catalog(raw_yaml: dict[str, Any]) -> Catalog:
    examples = {e["name"]: _parse_example(e) for e in raw_yaml.get("examples", [])}
    return Catalog(version=raw_yaml.get("version", 1), examples=examples)


# ── Public API ───────────────────────────────────────────

@lru_cache
def load_catalog(path: Path | None = None) -> Catalog:
    """Load and cache the example catalog from YAML."""
    with open(path or _CATALOG_PATH) as f:
        raw = yaml.safe_load(f)
    return parse_catalog(raw or {})
