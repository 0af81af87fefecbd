"""
GET /examples, GET /tables, GET /tables/{name}/columns -- metadata endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from src.core.config import get_settings
from src.db.connection import WarehouseSession, get_session
from src.db.executor import list_columns, list_tables
from src.pipeline.catalog import load_catalog
from src.pipeline.sql_builder import build_sql

router = APIRouter()



class ExampleItem(BaseModel):
    name: str
    description: str
    request: dict
    render_kind: str | None = None
    render_spec: dict | None = None
    sql: str


class ColumnItem(BaseModel):
    name: str
    type: str



def _example_item(example) -> ExampleItem:
    sql = build_sql(example.request, max_rows=get_settings().sql_row_limit)
    return ExampleItem(**example.to_dict(), sql=sql)


@router.get("/examples", response_model=list[ExampleItem])
def list_examples() -> list[ExampleItem]:
    """Return every named example with its generated SQL."""
    catalog = load_catalog()
    return [_example_item(e) for e in catalog.examples.values()]


@router.get("/examples/{name}", response_model=ExampleItem)
def get_example(name: str) -> ExampleItem:
    example = load_catalog().example(name)
    if example is None:
        raise HTTPException(status_code=404, detail=f"Unknown example '{name}'")
    return _example_item(example)


@router.get("/tables")
def tables(session: WarehouseSession = Depends(get_session)) -> dict:
    """Return table names in the default dataset and the project billed for queries."""
    return {
        "dataset": session.dataset,
        "billing_project": session.billing_project,
        "tables": list_tables(session),
    }


@router.get("/tables/{name}/columns", response_model=list[ColumnItem])
def columns(name: str, session: WarehouseSession = Depends(get_session)) -> list[ColumnItem]:
    return [ColumnItem(**c) for c in list_columns(session, name)]
