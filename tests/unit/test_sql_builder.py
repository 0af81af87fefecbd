"""
Unit tests -- SQL builder: QueryRequest -> query text.
"""
import re

import pytest

from src.pipeline.request import QueryBuilder, QueryRequest
from src.pipeline.sql_builder import build_sql, select_list


def _req(**overrides) -> QueryRequest:
    defaults = dict(source="pm25_daily", columns=["state", "value", "date"])
    defaults.update(overrides)
    return QueryRequest(**defaults)


# ── Basic structure ──────────────────────────────────────

def test_grouped_average_example():
    req = _req(group_by=["state"], aggregations={"avg_value": ("value", "mean")})
    assert build_sql(req) == "SELECT state, AVG(value) AS avg_value FROM pm25_daily GROUP BY state"


def test_plain_projection():
    assert build_sql(_req()) == "SELECT state, value, date FROM pm25_daily"


def test_no_limit_unless_requested():
    assert "LIMIT" not in build_sql(_req(), max_rows=100)


def test_limit_passed_through():
    assert build_sql(_req(limit=50)).endswith("LIMIT 50")


def test_limit_clamped():
    assert build_sql(_req(limit=999), max_rows=200).endswith("LIMIT 200")


def test_order_by():
    sql = build_sql(_req(order_by=[{"column": "state"}, {"column": "date", "descending": True}]))
    assert sql.endswith("ORDER BY state, date DESC")


def test_clause_order():
    req = (
        QueryBuilder("pm25_daily")
        .select("state")
        .filter("value", ">", 10)
        .group_by("state")
        .aggregate(n=("value", "count"))
        .order_by("n", descending=True)
        .limit(5)
        .build()
    )
    assert build_sql(req) == (
        "SELECT state, COUNT(value) AS n FROM pm25_daily WHERE value > 10 "
        "GROUP BY state ORDER BY n DESC LIMIT 5"
    )


# ── Select list ──────────────────────────────────────────

def test_ungrouped_columns_dropped_with_aggregation():
    req = _req(group_by=["state"], aggregations={"avg_value": ("value", "mean")})
    assert select_list(req) == ["state", "AVG(value) AS avg_value"]


def test_group_columns_not_selected_are_added():
    req = _req(columns=["state"], group_by=["state", "site"], aggregations={"m": ("value", "max")})
    assert select_list(req) == ["state", "site", "MAX(value) AS m"]


def test_aggregation_without_group_by():
    req = _req(aggregations={"avg_value": ("value", "mean")})
    assert build_sql(req) == "SELECT AVG(value) AS avg_value FROM pm25_daily"


def test_group_by_only():
    req = QueryRequest(source="pm25_daily", group_by=["state"])
    assert build_sql(req) == "SELECT state FROM pm25_daily GROUP BY state"


@pytest.mark.parametrize("func, expected", [
    ("mean", "AVG(value)"),
    ("sum", "SUM(value)"),
    ("count", "COUNT(value)"),
    ("count_distinct", "COUNT(DISTINCT value)"),
    ("min", "MIN(value)"),
    ("max", "MAX(value)"),
])
def test_aggregation_functions(func, expected):
    req = _req(columns=["state"], group_by=["state"], aggregations={"out": ("value", func)})
    assert f"{expected} AS out" in build_sql(req)


def test_each_selected_item_appears_once():
    req = _req(
        columns=["state", "site"],
        group_by=["state", "site"],
        aggregations={"avg_value": ("value", "mean"), "n_days": ("date", "count_distinct")},
    )
    select_part = build_sql(req).split(" FROM ")[0]
    for token in ("state", "site", "AVG(value) AS avg_value", "COUNT(DISTINCT date) AS n_days"):
        assert select_part.count(token) == 1
    assert "pm25_daily" in build_sql(req)


# ── Source rendering ─────────────────────────────────────

def test_hyphenated_project_is_backquoted():
    req = _req(source="bigquery-public-data.epa_historical_air_quality.pm25_frm_daily_summary")
    assert "FROM `bigquery-public-data.epa_historical_air_quality.pm25_frm_daily_summary`" in build_sql(req)


def test_dataset_qualified_source_unquoted():
    assert "FROM epa.pm25_daily " in build_sql(_req(source="epa.pm25_daily")) + " "


# ── Filters ──────────────────────────────────────────────

def test_in_filter():
    req = _req(filters=[{"column": "state", "op": "in", "value": ["California", "Oregon"]}])
    assert "WHERE state IN ('California', 'Oregon')" in build_sql(req)


def test_filters_joined_with_and():
    req = (
        QueryBuilder("pm25_daily").select("state")
        .filter("date", ">=", "2020-08-01")
        .filter("date", "<=", "2020-10-31")
        .build()
    )
    assert "WHERE date >= '2020-08-01' AND date <= '2020-10-31'" in build_sql(req)


def test_numeric_and_bool_literals():
    req = (
        QueryBuilder("t").select("a")
        .filter("value", "<", 12.5)
        .filter("flag", "=", True)
        .build()
    )
    sql = build_sql(req)
    assert "value < 12.5" in sql
    assert "flag = TRUE" in sql


def test_null_comparisons():
    req = QueryBuilder("t").select("a").filter("a", "=", None).filter("b", "!=", None).build()
    assert "WHERE a IS NULL AND b IS NOT NULL" in build_sql(req)


def test_quotes_escaped():
    req = QueryBuilder("t").select("site").filter("site", "=", "O'Neill").build()
    sql = build_sql(req)
    assert "site = 'O\\'Neill'" in sql
    assert not re.search(r"[^\\]'Neill", sql)
