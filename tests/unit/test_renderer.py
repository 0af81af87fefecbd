"""
Unit tests -- render(): field checks and the faceted line chart.
"""
import pytest

from src.core.errors import RenderSpecError
from src.pipeline.results import ResultSet
from src.render.artifact import RenderedArtifact, RenderKind, RenderSpec
from src.render.line_chart import VEGA_LITE_SCHEMA
from src.render.renderer import render

LINE = RenderKind.LINE_CHART_BY_GROUP


def _daily_rows() -> ResultSet:
    return ResultSet.from_records([
        {"state": "California", "date": "2020-09-01", "avg_value": 15.0, "site": "Fresno"},
        {"state": "California", "date": "2020-09-02", "avg_value": 30.0, "site": "Fresno"},
        {"state": "Oregon", "date": "2020-09-01", "avg_value": 40.0, "site": "Portland"},
        {"state": "Oregon", "date": "2020-09-02", "avg_value": 60.0, "site": "Portland"},
    ])


def _line_spec(**overrides) -> RenderSpec:
    base = dict(x="date", y="avg_value", group="state")
    base.update(overrides)
    return RenderSpec(**base)


# ── Line chart ──────────────────────────────────────────

def test_line_chart_artifact():
    artifact = render(_daily_rows(), LINE, _line_spec())
    assert isinstance(artifact, RenderedArtifact)
    assert artifact.kind == LINE
    assert artifact.row_count == 4
    assert artifact.fields == {"x": "date", "y": "avg_value", "group": "state"}

    body = artifact.body
    assert body["$schema"] == VEGA_LITE_SCHEMA
    assert body["facet"] == {"field": "state", "type": "nominal", "title": "State"}
    assert body["spec"]["mark"]["type"] == "line"
    assert body["spec"]["encoding"]["x"]["type"] == "temporal"
    assert body["spec"]["encoding"]["y"]["type"] == "quantitative"


def test_line_chart_data_keeps_only_mapped_fields():
    body = render(_daily_rows(), LINE, _line_spec()).body
    assert body["data"]["values"][0] == {"date": "2020-09-01", "avg_value": 15.0, "state": "California"}
    assert len(body["data"]["values"]) == 4


def test_line_chart_optional_color():
    body = render(_daily_rows(), LINE, _line_spec(color="site")).body
    assert body["spec"]["encoding"]["color"]["field"] == "site"
    assert "site" in body["data"]["values"][0]


def test_numeric_x_is_quantitative():
    rows = ResultSet.from_records([{"year": 2019, "v": 1.0, "g": "a"}, {"year": 2020, "v": 2.0, "g": "a"}])
    body = render(rows, LINE, RenderSpec(x="year", y="v", group="g")).body
    assert body["spec"]["encoding"]["x"]["type"] == "quantitative"


def test_text_x_is_ordinal():
    rows = ResultSet.from_records([{"month": "Sep", "v": 1.0, "g": "a"}])
    body = render(rows, LINE, RenderSpec(x="month", y="v", group="g")).body
    assert body["spec"]["encoding"]["x"]["type"] == "ordinal"


def test_default_title():
    assert render(_daily_rows(), LINE, _line_spec()).title == "Avg Value over Date by State"


def test_explicit_title():
    artifact = render(_daily_rows(), LINE, _line_spec(title="PM2.5, West Coast"))
    assert artifact.title == "PM2.5, West Coast"
    assert artifact.body["title"] == "PM2.5, West Coast"


def test_kind_accepts_string():
    assert render(_daily_rows(), "line_chart_by_group", _line_spec()).kind == LINE


def test_empty_result_renders_empty_chart():
    rows = ResultSet(columns=("state", "date", "avg_value"), rows=[])
    artifact = render(rows, LINE, _line_spec())
    assert artifact.body["data"]["values"] == []
    assert artifact.row_count == 0


# ── Referential transparency ────────────────────────────

def test_render_is_deterministic():
    rows = _daily_rows()
    assert render(rows, LINE, _line_spec()) == render(rows, LINE, _line_spec())


def test_artifact_round_trips_through_dict():
    artifact = render(_daily_rows(), LINE, _line_spec())
    assert RenderedArtifact.from_dict(artifact.to_dict()) == artifact


# ── Spec errors ─────────────────────────────────────────

def test_missing_column_raises():
    with pytest.raises(RenderSpecError, match="'pm10'"):
        render(_daily_rows(), LINE, _line_spec(y="pm10"))


def test_missing_optional_column_raises():
    with pytest.raises(RenderSpecError, match="'county'"):
        render(_daily_rows(), LINE, _line_spec(color="county"))


def test_unset_required_field_raises():
    with pytest.raises(RenderSpecError, match="group"):
        render(_daily_rows(), LINE, RenderSpec(x="date", y="avg_value"))


def test_error_lists_available_columns():
    with pytest.raises(RenderSpecError) as info:
        render(_daily_rows(), LINE, _line_spec(x="day"))
    assert "state, date, avg_value, site" in str(info.value)


def test_map_fields_ignored_for_line_chart():
    # lat/lng are not line-chart roles, so they are not checked
    artifact = render(_daily_rows(), LINE, _line_spec(lat="nowhere"))
    assert "lat" not in artifact.fields


def test_result_set_rejects_ragged_rows():
    with pytest.raises(ValueError):
        ResultSet(columns=("a", "b"), rows=[{"a": 1, "b": 2}, {"a": 1}])
