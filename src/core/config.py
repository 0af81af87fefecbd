"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── BigQuery ─────────────────────────────────────────
    gcp_project_id: str = ""  # billing project
    bq_data_project: str = "bigquery-public-data"
    bq_dataset: str = "epa_historical_air_quality"
    bq_location: str = "US"
    google_application_credentials: str = ""  # path to service-account JSON

    # ── App ──────────────────────────────────────────────
    api_port: int = 8000
    streamlit_port: int = 8501
    log_level: str = "INFO"
    sql_row_limit: int = 10_000

    @property
    def default_dataset(self) -> str:
        """Fully qualified dataset that unqualified table names resolve against."""
        return f"{self.bq_data_project or self.gcp_project_id}.{self.bq_dataset}"

    @property
    def warehouse_url(self) -> str:
        # Jobs are billed to gcp_project_id (passed separately to the engine)
        return f"bigquery://{self.bq_data_project or self.gcp_project_id}/{self.bq_dataset}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
