"""
QueryRequest -- the logical description of a data pull (table, columns,
grouping, aggregation) before it is turned into query text.

Column existence is not checked here; the warehouse does that.  Only the
*shape* of names is checked so they can be substituted into the query
template safely.
"""
from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# project ids may carry hyphens (e.g. bigquery-public-data)
_SOURCE_RE = re.compile(r"^([A-Za-z][A-Za-z0-9_-]*\.)?([A-Za-z_][A-Za-z0-9_]*\.)?[A-Za-z_][A-Za-z0-9_]*$")

Scalar = Union[bool, int, float, str, None]


class AggFunc(str, Enum):
    MEAN = "mean"
    SUM = "sum"
    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    MIN = "min"
    MAX = "max"


def _check_identifier(name: str) -> str:
    if not _IDENT_RE.match(name):
        raise ValueError(f"'{name}' is not a valid column identifier")
    return name


class Aggregation(BaseModel):
    """One output column computed remotely as ``func(column)``."""

    column: str
    func: AggFunc = AggFunc.MEAN

    @field_validator("column")
    @classmethod
    def _column_is_identifier(cls, v: str) -> str:
        return _check_identifier(v)

    @field_validator("func", mode="before")
    @classmethod
    def _lowercase_func(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class Condition(BaseModel):
    """A single ``column op value`` predicate; predicates are AND-ed."""

    column: str
    op: Literal["=", "!=", "<", "<=", ">", ">=", "in"] = "="
    value: Union[Scalar, list[Scalar]] = None

    @field_validator("column")
    @classmethod
    def _column_is_identifier(cls, v: str) -> str:
        return _check_identifier(v)

    @model_validator(mode="after")
    def _value_matches_op(self) -> "Condition":
        if self.op == "in":
            if not isinstance(self.value, list) or not self.value:
                raise ValueError(f"'in' on '{self.column}' needs a non-empty list of values")
        elif isinstance(self.value, list):
            raise ValueError(f"operator '{self.op}' on '{self.column}' takes a single value")
        elif self.value is None and self.op not in ("=", "!="):
            raise ValueError(f"operator '{self.op}' cannot compare '{self.column}' with NULL")
        values = self.value if isinstance(self.value, list) else [self.value]
        if any(isinstance(v, float) and not math.isfinite(v) for v in values):
            raise ValueError(f"filter on '{self.column}' needs finite numbers, not NaN or infinity")
        return self


class OrderKey(BaseModel):
    column: str
    descending: bool = False

    @field_validator("column")
    @classmethod
    def _column_is_identifier(cls, v: str) -> str:
        return _check_identifier(v)


class QueryRequest(BaseModel):
    """Logical data request submitted through the pipeline."""

    source: str = Field(..., min_length=1, description="Table name, optionally dataset- or project-qualified")
    columns: list[str] = Field(default_factory=list, description="Selected columns, in output order")
    group_by: list[str] = Field(default_factory=list, description="Grouping columns (set semantics)")
    aggregations: dict[str, Aggregation] = Field(
        default_factory=dict,
        description="Output column -> aggregation, e.g. {'avg_value': {'column': 'value', 'func': 'mean'}}",
    )
    filters: list[Condition] = Field(default_factory=list, description="AND-ed WHERE predicates")
    order_by: list[OrderKey] = Field(default_factory=list)
    limit: int | None = Field(None, ge=1, description="Maximum rows to return (clamped to the configured limit)")

    @field_validator("source")
    @classmethod
    def _source_is_table_path(cls, v: str) -> str:
        v = v.strip().strip("`")
        if not _SOURCE_RE.match(v):
            raise ValueError(f"'{v}' is not a valid table reference")
        return v

    @field_validator("columns")
    @classmethod
    def _columns_are_identifiers(cls, v: list[str]) -> list[str]:
        return [_check_identifier(c) for c in v]

    @field_validator("group_by")
    @classmethod
    def _group_by_is_a_set(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for c in v:
            _check_identifier(c)
            if c not in seen:
                seen.append(c)
        return seen

    @field_validator("aggregations", mode="before")
    @classmethod
    def _accept_pairs(cls, v: Any) -> Any:
        # {"avg_value": ("value", "mean")} is accepted as shorthand
        if isinstance(v, dict):
            return {
                name: {"column": spec[0], "func": spec[1]} if isinstance(spec, (tuple, list)) else spec
                for name, spec in v.items()
            }
        return v

    @field_validator("aggregations")
    @classmethod
    def _output_names_are_identifiers(cls, v: dict[str, Aggregation]) -> dict[str, Aggregation]:
        for name in v:
            _check_identifier(name)
        return v

    @model_validator(mode="after")
    def _selects_something(self) -> "QueryRequest":
        if not self.columns and not self.aggregations and not self.group_by:
            raise ValueError("request selects no columns and no aggregations")
        return self


class QueryBuilder:
    """Fluent construction of a :class:`QueryRequest`, one verb per stage.

    >>> (QueryBuilder("pm25_daily")
    ...     .select("state", "value", "date")
    ...     .group_by("state")
    ...     .aggregate(avg_value=("value", "mean"))
    ...     .build())
    """

    def __init__(self, source: str):
        self._source = source
        self._columns: list[str] = []
        self._group_by: list[str] = []
        self._aggregations: dict[str, tuple[str, str]] = {}
        self._filters: list[dict[str, Any]] = []
        self._order_by: list[dict[str, Any]] = []
        self._limit: int | None = None

    def select(self, *columns: str) -> "QueryBuilder":
        self._columns.extend(columns)
        return self

    def group_by(self, *columns: str) -> "QueryBuilder":
        self._group_by.extend(columns)
        return self

    def aggregate(self, **aggregations: tuple[str, str]) -> "QueryBuilder":
        self._aggregations.update(aggregations)
        return self

    def filter(self, column: str, op: str, value: Any) -> "QueryBuilder":
        self._filters.append({"column": column, "op": op, "value": value})
        return self

    def order_by(self, column: str, descending: bool = False) -> "QueryBuilder":
        self._order_by.append({"column": column, "descending": descending})
        return self

    def limit(self, n: int) -> "QueryBuilder":
        self._limit = n
        return self

    def build(self) -> QueryRequest:
        return QueryRequest(
            source=self._source,
            columns=list(self._columns),
            group_by=list(self._group_by),
            aggregations=dict(self._aggregations),
            filters=list(self._filters),
            order_by=list(self._order_by),
            limit=self._limit,
        )
