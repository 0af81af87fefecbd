"""Warehouse session: credential loading and the SQLAlchemy engine.

The credential blob is read once at start-up and never refreshed.  The
resulting ``WarehouseSession`` is passed explicitly to the pipeline;
``get_session`` is only a process-wide convenience for the API and UI.
"""
from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Generator

from google.oauth2 import service_account
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from src.core.config import Settings, get_settings
from src.core.errors import AuthenticationError
from src.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class WarehouseSession:
    """An authenticated handle on the warehouse (immutable for the process lifetime)."""

    engine: Engine
    billing_project: str = ""
    dataset: str = ""

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """Yield a pooled connection; returned to the pool on exit."""
        conn = self.engine.connect()
        try:
            yield conn
        finally:
            conn.close()

    def dispose(self) -> None:
        self.engine.dispose()


def load_credentials(path: str | Path) -> dict[str, Any]:
    """Read and sanity-check a service-account JSON blob.

    Raises
    ------
    AuthenticationError
        If no path is configured, the file is missing, or its contents
        are not a usable service-account key.
    """
    if not path:
        raise AuthenticationError(
            "No credential configured -- set GOOGLE_APPLICATION_CREDENTIALS to a service-account JSON file"
        )
    cred_path = Path(path).expanduser()
    try:
        info = json.loads(cred_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise AuthenticationError(f"Credential file not found: {cred_path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise AuthenticationError(f"Credential file {cred_path} is unreadable: {exc}") from exc

    try:
        service_account.Credentials.from_service_account_info(info)
    except (ValueError, TypeError, KeyError) as exc:
        raise AuthenticationError(f"Credential file {cred_path} is not a valid service-account key: {exc}") from exc

    logger.info("Loaded credential for %s", info.get("client_email", "<unknown>"))
    return info


def open_session(settings: Settings | None = None) -> WarehouseSession:
    """Authenticate and build a session against the configured BigQuery dataset."""
    settings = settings or get_settings()
    info = load_credentials(settings.google_application_credentials)
    billing = settings.gcp_project_id or info.get("project_id", "")

    engine = create_engine(
        settings.warehouse_url,
        credentials_info=info,
        billing_project_id=billing or None,
        location=settings.bq_location or None,
    )
    logger.info("Warehouse session opened  billing=%s  dataset=%s", billing, settings.default_dataset)
    return WarehouseSession(engine=engine, billing_project=billing, dataset=settings.default_dataset)


@lru_cache
def get_session() -> WarehouseSession:
    """Return the process-wide session (created on first use)."""
    return open_session()
