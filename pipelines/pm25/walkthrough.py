"""
PM2.5 walkthrough -- the notebook flow end-to-end against BigQuery.

Steps:
  1. Load settings and the service-account credential (once)
  2. Build requests with QueryBuilder (filter -> group -> aggregate -> order)
  3. Run them on the EPA historical air-quality dataset
  4. Render a per-state line chart (Vega-Lite JSON) and a site map (HTML)

Run:  python -m pipelines.pm25.walkthrough [output_dir]
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

from src.core.errors import PipelineError
from src.core.logging import get_logger
from src.db.connection import open_session
from src.pipeline.catalog import load_catalog
from src.pipeline.request import QueryBuilder
from src.pipeline.service import QueryPipeline
from src.render import marker_map
from src.render.artifact import RenderKind, RenderSpec

logger = get_logger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_OUTPUT = _PROJECT_ROOT / "output"

SOURCE = "pm25_frm_daily_summary"
STATES = ["California", "Oregon", "Washington"]
SEASON_START = "2020-08-01"
SEASON_END = "2020-10-31"


def daily_by_state_request():
    return (
        QueryBuilder(SOURCE)
        .select("state_name", "date_local")
        .filter("state_name", "in", STATES)
        .filter("date_local", ">=", SEASON_START)
        .filter("date_local", "<=", SEASON_END)
        .group_by("state_name", "date_local")
        .aggregate(avg_pm25=("arithmetic_mean", "mean"))
        .order_by("state_name")
        .order_by("date_local")
        .build()
    )


def main(output_dir: Path = DEFAULT_OUTPUT) -> int:
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        session = open_session()
    except PipelineError as exc:
        logger.error("Cannot open warehouse session: %s", exc)
        return 1

    pipeline = QueryPipeline(session)

    try:
        # ── Line chart: daily mean per state ──────────────
        request = daily_by_state_request()
        rows = pipeline.execute(pipeline.compile(request))
        chart = pipeline.render(
            rows,
            RenderKind.LINE_CHART_BY_GROUP,
            RenderSpec(x="date_local", y="avg_pm25", group="state_name"),
        )
        chart_path = output_dir / "pm25_daily_by_state.vl.json"
        chart_path.write_text(json.dumps(chart.body, indent=2))
        logger.info("Wrote %s (%d rows)", chart_path, chart.row_count)

        # ── Map: mean per monitoring site ─────────────────
        example = load_catalog().example("pm25_site_map")
        site_map = pipeline.run(example.request, example.render_kind, example.render_spec)
        map_path = output_dir / "pm25_site_map.html"
        map_path.write_text(marker_map.to_html(site_map))
        logger.info("Wrote %s (%d markers)", map_path, len(site_map.body["markers"]))
    except PipelineError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    finally:
        session.dispose()

    return 0


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_OUTPUT
    sys.exit(main(out))
