"""
ResultSet -- rows returned by the warehouse, fully materialised in memory.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

import pandas as pd

ResultRow = dict[str, Any]


@dataclass(frozen=True)
class ResultSet:
    """Ordered rows that all share ``columns``."""

    columns: tuple[str, ...]
    rows: list[ResultRow] = field(default_factory=list)

    def __post_init__(self) -> None:
        expected = list(self.columns)
        for i, row in enumerate(self.rows):
            if list(row.keys()) != expected:
                raise ValueError(
                    f"Row {i} has columns {list(row.keys())}, expected {expected}"
                )

    @classmethod
    def from_records(cls, records: list[ResultRow]) -> "ResultSet":
        """Build from a list of dicts (e.g. an API payload); columns from the first row."""
        columns = tuple(records[0].keys()) if records else ()
        return cls(columns=columns, rows=[dict(r) for r in records])

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[ResultRow]:
        return iter(self.rows)

    def column_values(self, column: str) -> list[Any]:
        return [row[column] for row in self.rows]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.rows, columns=list(self.columns))

    def to_dict(self) -> dict[str, Any]:
        return {"columns": list(self.columns), "rows": self.rows, "row_count": len(self.rows)}
