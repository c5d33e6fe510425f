from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DATE_COLUMNS = ("submitdate", "startdate", "datestamp")


def _env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _env_int(key: str, default: int) -> int:
    v = _env_str(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = _env_str(key)
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class Settings:
    # Storage
    db_path: str
    table_prefix: str

    # Report defaults
    default_cutoff: int
    strip_markup: bool
    date_column: str

    # Execution
    max_workers: int

    # Logging
    log_level: str
    log_json: bool

    @staticmethod
    def from_env(dotenv: bool = True) -> "Settings":
        # Read configuration from environment variables (and .env when present).
        if dotenv:
            load_dotenv(override=False)

        db_path = _env_str("SURVEY_REPORT_DB_PATH", "data/surveys.db") or "data/surveys.db"
        if db_path != ":memory:":
            # Create the parent directory only; the DB file is created on first connect.
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        date_column = (_env_str("SURVEY_REPORT_DATE_COLUMN", "submitdate") or "submitdate").lower()
        if date_column not in DATE_COLUMNS:
            date_column = "submitdate"

        return Settings(
            db_path=db_path,
            table_prefix=_env_str("SURVEY_REPORT_TABLE_PREFIX", "lime_") or "lime_",

            default_cutoff=max(_env_int("SURVEY_REPORT_CUTOFF", 0), 0),
            strip_markup=_env_bool("SURVEY_REPORT_STRIP_MARKUP", True),
            date_column=date_column,

            max_workers=max(_env_int("SURVEY_REPORT_MAX_WORKERS", 1), 1),

            log_level=_env_str("SURVEY_REPORT_LOG_LEVEL", "INFO") or "INFO",
            log_json=_env_bool("SURVEY_REPORT_LOG_JSON", True),
        )
