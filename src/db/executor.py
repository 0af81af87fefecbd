"""
Warehouse executor.

Every pipeline query runs through `execute`, which:
  1. Sends the text as-is through the session's engine (one round-trip, no retry)
  2. Converts Decimal/date/datetime to JSON-safe Python types
  3. Materialises the full result into a ResultSet
  4. Maps warehouse failures onto AuthenticationError / QueryError / TransportError,
     keeping the warehouse's message verbatim
"""
from __future__ import annotations

import base64
import datetime
import decimal
from typing import Any, Iterator

import requests
from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exc
from sqlalchemy import exc as sa_exc
from sqlalchemy import inspect, text

from src.core.errors import AuthenticationError, PipelineError, QueryError, TransportError
from src.core.logging import get_logger
from src.core.utils import timer
from src.db.connection import WarehouseSession
from src.pipeline.results import ResultSet

logger = get_logger(__name__)

_AUTH_ERRORS: tuple[type[BaseException], ...] = (
    auth_exc.RefreshError,
    auth_exc.DefaultCredentialsError,
    gexc.Unauthenticated,
    gexc.Unauthorized,
    gexc.Forbidden,
    gexc.PermissionDenied,
)

_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    auth_exc.TransportError,
    gexc.ServiceUnavailable,
    gexc.GatewayTimeout,
    gexc.BadGateway,
    gexc.InternalServerError,
    gexc.DeadlineExceeded,
    gexc.RetryError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
    ConnectionError,
    TimeoutError,
)


def _serialise_value(val: Any) -> Any:
    """Convert DB types to JSON-serialisable Python types."""
    if isinstance(val, decimal.Decimal):
        return float(val)
    if isinstance(val, (datetime.date, datetime.datetime, datetime.time)):
        return val.isoformat()
    if isinstance(val, datetime.timedelta):
        return str(val)
    if isinstance(val, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(val)).decode("ascii")
    return val


def _statement(sql: str, params: dict | None):
    """Wrap *sql* for execution.

    Without bind values the text is sent as built, so every colon is escaped
    to keep text() from reading `:word` inside a string literal as a bind.
    """
    if params:
        return text(sql)
    return text(sql.replace(":", "\\:"))


# ── Error classification ─────────────────────────────────

def _cause_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and everything it wraps (DBAPI .orig, causes, exception args)."""
    seen: set[int] = set()
    stack = [exc]
    while stack:
        current = stack.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        orig = getattr(current, "orig", None)
        if isinstance(orig, BaseException):
            stack.append(orig)
        stack.extend(a for a in getattr(current, "args", ()) if isinstance(a, BaseException))
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                stack.append(linked)


def classify_error(exc: BaseException) -> PipelineError | None:
    """Map a warehouse/driver exception to the pipeline taxonomy.

    Returns None when *exc* is not a warehouse failure at all, so the caller
    can let it propagate untouched.
    """
    if isinstance(exc, PipelineError):
        return exc

    chain = list(_cause_chain(exc))

    # transport before auth: google.auth.exceptions.TransportError is a GoogleAuthError
    for err in chain:
        if isinstance(err, _TRANSPORT_ERRORS):
            return TransportError(str(err))
    for err in chain:
        if isinstance(err, _AUTH_ERRORS):
            return AuthenticationError(str(err))

    if isinstance(exc, sa_exc.DBAPIError):
        if exc.connection_invalidated:
            return TransportError(str(exc.orig))
        # surface the innermost warehouse error message
        for err in chain:
            if isinstance(err, gexc.GoogleAPICallError):
                return QueryError(str(err))
        return QueryError(str(exc.orig))

    if isinstance(exc, gexc.GoogleAPICallError):
        return QueryError(str(exc))

    return None


def _raise_classified(exc: Exception) -> None:
    classified = classify_error(exc)
    if classified is None:
        raise exc
    if classified is exc:
        raise exc
    raise classified from exc


# ── Execution ────────────────────────────────────────────

def execute(
    session: WarehouseSession,
    sql: str,
    params: dict | None = None,
) -> ResultSet:
    """Execute *sql* and return every row as a serialisable dict.

    Raises
    ------
    AuthenticationError, QueryError, TransportError
        Classified warehouse failures; the original exception is chained.
    """
    logger.info("Executing SQL (%d chars)", len(sql))

    with timer() as t:
        try:
            with session.connect() as conn:
                result = conn.execute(_statement(sql, params), params or {})
                columns = tuple(result.keys())
                rows = [
                    {col: _serialise_value(val) for col, val in zip(columns, row)}
                    for row in result.fetchall()
                ]
        except Exception as exc:
            logger.error("SQL execution failed: %s", exc)
            _raise_classified(exc)

    logger.info("Returned %d rows in %d ms", len(rows), t["elapsed_ms"])
    return ResultSet(columns=columns, rows=rows)


def list_tables(session: WarehouseSession) -> list[str]:
    """Table names in the session's default dataset."""
    try:
        return sorted(inspect(session.engine).get_table_names())
    except Exception as exc:
        _raise_classified(exc)


def list_columns(session: WarehouseSession, table: str) -> list[dict[str, str]]:
    """Column names and types of *table*."""
    try:
        cols = inspect(session.engine).get_columns(table)
    except sa_exc.NoSuchTableError as exc:
        raise QueryError(f"Not found: Table {table}") from exc
    except Exception as exc:
        _raise_classified(exc)
    return [{"name": c["name"], "type": str(c["type"])} for c in cols]
