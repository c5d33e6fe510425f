# responses.py
from __future__ import annotations

import re
import sqlite3
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .connection import connect
from .models import CountedAnswer, UploadedFile
from survey_report.app.errors import StorageError


# Response columns are "{sid}X{gid}X{qid}" plus an optional suffix (sub-question title,
# "#0"/"#1" scale marker, "_" cross-tab separator, "other", "comment", rank, "_filecount").
COLUMN_KEY_RE = re.compile(r"^\d+X\d+X\d+[A-Za-z0-9_#]*$")

# Fixed columns of every response table.
BASE_COLUMNS = ("id", "token", "submitdate", "startdate", "datestamp")

# SQLite caps bound parameters per statement; respondent ids are sent in chunks below this.
_MAX_IDS_PER_QUERY = 900


def _chunks(ids: Sequence[int], size: int = _MAX_IDS_PER_QUERY) -> Iterable[Sequence[int]]:
    for i in range(0, len(ids), size):
        yield ids[i:i + size]


class SQLiteResponseStore:
    """
    Row-level responses of one survey table per survey (``{prefix}survey_{sid}``).

    Each reportable field is a TEXT column named after its response column key.
    All reads are restricted to a caller-supplied set of respondent ids; an
    empty set selects nobody.
    """

    def __init__(self, db_path: str, survey_id: int, table_prefix: str = "lime_"):
        self.db_path = db_path
        self.survey_id = int(survey_id)
        self.prefix = table_prefix
        self._columns: Optional[frozenset] = None

    @property
    def table(self) -> str:
        return f'"{self.prefix}survey_{self.survey_id}"'

    def _column(self, key: str, suffix: str = "", must_exist: bool = True) -> str:
        if not isinstance(key, str) or not COLUMN_KEY_RE.match(key):
            raise StorageError(f"Invalid response column reference: {key!r}")
        name = f"{key}{suffix}"
        # SQLite reads an unknown double-quoted identifier as a string literal, so check first.
        if must_exist and name not in self._known_columns():
            raise StorageError(f"Unknown response column {name!r} in {self.table}")
        return f'"{name}"'

    def _known_columns(self) -> frozenset:
        if self._columns is None:
            self._columns = frozenset(self.list_columns())
        return self._columns

    def _execute(self, sql: str, params: Sequence[Any]) -> List[sqlite3.Row]:
        conn = connect(self.db_path)
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Response query failed on {self.table}: {e}") from e
        finally:
            conn.close()

    # -------------------------
    # Table management
    # -------------------------
    def create_table(self, column_keys: Sequence[str]) -> None:
        cols = [f"{self._column(k, must_exist=False)} TEXT" for k in column_keys]
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                  id INTEGER PRIMARY KEY,
                  token TEXT,
                  submitdate TEXT,
                  startdate TEXT,
                  datestamp TEXT
                  {''.join(', ' + c for c in cols)}
                )
                """
            )
            conn.commit()
        finally:
            conn.close()
        self._columns = None

    def add_columns(self, column_keys: Sequence[str]) -> List[str]:
        # Adds missing columns; returns the ones actually created.
        existing = set(self.list_columns())
        added: List[str] = []
        conn = connect(self.db_path)
        try:
            for k in column_keys:
                if k in existing:
                    continue
                conn.execute(f"ALTER TABLE {self.table} ADD COLUMN {self._column(k, must_exist=False)} TEXT")
                added.append(k)
            conn.commit()
        finally:
            conn.close()
        self._columns = None
        return added

    def list_columns(self) -> List[str]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(f"PRAGMA table_info({self.table})").fetchall()
            return [str(r["name"]) for r in rows]
        finally:
            conn.close()

    def insert_rows(self, rows: Iterable[Mapping[str, Any]]) -> int:
        # Unknown columns raise; values are stored as text (None stays NULL).
        inserted = 0
        conn = connect(self.db_path)
        try:
            for row in rows:
                keys = list(row.keys())
                for k in keys:
                    if k not in BASE_COLUMNS:
                        self._column(k, must_exist=False)
                col_sql = ", ".join(f'"{k}"' for k in keys)
                placeholders = ", ".join(["?"] * len(keys))
                values = [None if row[k] is None else (row[k] if k == "id" else str(row[k])) for k in keys]
                conn.execute(f"INSERT INTO {self.table} ({col_sql}) VALUES ({placeholders})", values)
                inserted += 1
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to insert responses into {self.table}: {e}") from e
        finally:
            conn.close()
        return inserted

    def clear(self) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(f"DELETE FROM {self.table}")
            conn.commit()
        finally:
            conn.close()

    # -------------------------
    # Respondent selection
    # -------------------------
    def all_ids(self) -> List[int]:
        rows = self._execute(f"SELECT id FROM {self.table} ORDER BY id", [])
        return [int(r["id"]) for r in rows]

    def ids_by_tokens(self, tokens: Sequence[str]) -> List[int]:
        if not tokens:
            return []
        placeholders = ",".join(["?"] * len(tokens))
        rows = self._execute(
            f"SELECT id FROM {self.table} WHERE token IN ({placeholders}) ORDER BY id",
            list(tokens),
        )
        return [int(r["id"]) for r in rows]

    def ids_by_dates(self, date_from: str, date_to: str, date_column: str = "submitdate") -> List[int]:
        # Inclusive on both ends, compared on the calendar date only.
        if date_column not in ("submitdate", "startdate", "datestamp"):
            raise StorageError(f"Invalid date column: {date_column!r}")
        rows = self._execute(
            f"""
            SELECT id
            FROM {self.table}
            WHERE DATE({date_column}) BETWEEN DATE(?) AND DATE(?)
            ORDER BY id
            """,
            [date_from, date_to],
        )
        return [int(r["id"]) for r in rows]

    # -------------------------
    # Response provider
    # -------------------------
    def count_grouped_values(self, column_key: str, respondent_ids: Sequence[int]) -> List[CountedAnswer]:
        col = self._column(column_key)
        counts: Dict[str, int] = {}
        for chunk in _chunks(list(respondent_ids)):
            placeholders = ",".join(["?"] * len(chunk))
            rows = self._execute(
                f"""
                SELECT {col} AS value, COUNT({col}) AS n
                FROM {self.table}
                WHERE LENGTH({col}) > 0
                  AND id IN ({placeholders})
                GROUP BY {col}
                ORDER BY {col}
                """,
                list(chunk),
            )
            for r in rows:
                value = str(r["value"])
                counts[value] = counts.get(value, 0) + int(r["n"])
        # Chunks are ordered on their own; re-sort the merged counts.
        return [CountedAnswer(value=v, count=n) for v, n in sorted(counts.items())]

    def count_true(self, column_key: str, respondent_ids: Sequence[int]) -> int:
        col = self._column(column_key)
        total = 0
        for chunk in _chunks(list(respondent_ids)):
            placeholders = ",".join(["?"] * len(chunk))
            rows = self._execute(
                f"SELECT COUNT({col}) AS n FROM {self.table} WHERE {col} = 'Y' AND id IN ({placeholders})",
                list(chunk),
            )
            total += int(rows[0]["n"]) if rows else 0
        return total

    def list_raw_values(self, column_key: str, respondent_ids: Sequence[int]) -> List[str]:
        col = self._column(column_key)
        out: List[str] = []
        for chunk in _chunks(list(respondent_ids)):
            placeholders = ",".join(["?"] * len(chunk))
            rows = self._execute(
                f"""
                SELECT {col} AS text
                FROM {self.table}
                WHERE LENGTH({col}) > 0
                  AND id IN ({placeholders})
                ORDER BY id
                """,
                list(chunk),
            )
            out.extend(str(r["text"]) for r in rows)
        return out

    def list_uploaded_files(self, column_key: str, respondent_ids: Sequence[int]) -> List[UploadedFile]:
        col = self._column(column_key)
        count_col = self._column(column_key, "_filecount")
        out: List[UploadedFile] = []
        for chunk in _chunks(list(respondent_ids)):
            placeholders = ",".join(["?"] * len(chunk))
            rows = self._execute(
                f"""
                SELECT {col} AS info, CAST({count_col} AS INTEGER) AS n
                FROM {self.table}
                WHERE CAST({count_col} AS INTEGER) > 0
                  AND id IN ({placeholders})
                ORDER BY id
                """,
                list(chunk),
            )
            out.extend(UploadedFile(description=str(r["info"] or ""), count=int(r["n"])) for r in rows)
        return out

    def has_columns(self, column_keys: Sequence[str]) -> bool:
        existing = set(self.list_columns())
        return all(k in existing for k in column_keys)

    def exists(self) -> bool:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
                (f"{self.prefix}survey_{self.survey_id}",),
            ).fetchone()
            return row is not None
        finally:
            conn.close()
