"""
Unit tests -- example catalog: YAML parsing into typed requests.
"""
import pytest

from src.pipeline.catalog import Catalog, load_catalog, parse_catalog
from src.pipeline.request import AggFunc
from src.pipeline.sql_builder import build_sql
from src.render.artifact import RenderKind


@pytest.fixture(scope="module")
def catalog() -> Catalog:
    return load_catalog()


def test_catalog_loads(catalog):
    assert isinstance(catalog, Catalog)
    assert catalog.version == 1
    assert catalog.names() == ["pm25_daily_by_state", "pm25_site_map", "pm25_state_average"]


def test_daily_by_state_example(catalog):
    ex = catalog.example("pm25_daily_by_state")
    assert ex.request.source == "pm25_frm_daily_summary"
    assert ex.request.aggregations["avg_pm25"].func is AggFunc.MEAN
    assert ex.render_kind is RenderKind.LINE_CHART_BY_GROUP
    assert ex.render_spec.group == "state_name"
    sql = build_sql(ex.request)
    assert "state_name IN ('California', 'Oregon', 'Washington')" in sql
    assert "date_local >= '2020-08-01'" in sql
    assert sql.endswith("GROUP BY state_name, date_local ORDER BY state_name, date_local")


def test_site_map_example(catalog):
    ex = catalog.example("pm25_site_map")
    assert ex.render_kind is RenderKind.MAP_WITH_MARKERS
    assert ex.render_spec.lat == "latitude"
    assert ex.render_spec.label == "local_site_name"


def test_state_average_example_sql(catalog):
    sql = build_sql(catalog.example("pm25_state_average").request, max_rows=10_000)
    assert sql == (
        "SELECT state_name, AVG(arithmetic_mean) AS avg_pm25 FROM pm25_frm_daily_summary "
        "GROUP BY state_name ORDER BY avg_pm25 DESC LIMIT 60"
    )


def test_example_without_render(catalog):
    ex = catalog.example("pm25_state_average")
    assert ex.render_kind is None
    assert ex.to_dict()["render_spec"] is None


def test_unknown_example(catalog):
    assert catalog.example("nope") is None


def test_parse_catalog_from_dict():
    cat = parse_catalog({
        "version": 2,
        "examples": [{
            "name": "sites",
            "request": {"source": "t", "columns": ["a"]},
            "render": {"kind": "map_with_markers", "spec": {"lat": "y", "lng": "x"}},
        }],
    })
    assert cat.version == 2
    ex = cat.example("sites")
    assert ex.description == ""
    assert ex.to_dict()["render_spec"] == {"lat": "y", "lng": "x"}


def test_parse_empty_catalog():
    assert parse_catalog({}).examples == {}
