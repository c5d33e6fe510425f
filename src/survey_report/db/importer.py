# importer.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from .responses import BASE_COLUMNS, COLUMN_KEY_RE, SQLiteResponseStore
from survey_report.app.errors import ImporterError, StorageError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    survey_id: int
    inserted_responses: int
    imported_columns: List[str] = field(default_factory=list)
    skipped_columns: List[str] = field(default_factory=list)
    created_columns: List[str] = field(default_factory=list)


class ResponseImporter:
    """
    Loads a LimeSurvey response export (CSV or Excel) into ``{prefix}survey_{sid}``.

    Headers must already be response column keys (``{sid}X{gid}X{qid}...``) or one
    of the fixed columns (``id``, ``token``, ``submitdate``, ``startdate``,
    ``datestamp``). Other headers are skipped and reported. Every cell is read as
    text so answer codes such as ``"01"`` survive unchanged.
    """

    def __init__(self, db_path: str, table_prefix: str = "lime_", create_missing_columns: bool = True):
        self.db_path = db_path
        self.table_prefix = table_prefix
        self.create_missing_columns = create_missing_columns

    def import_csv(
        self,
        file_path: str,
        survey_id: int,
        encoding: Optional[str] = None,
        replace: bool = False,
    ) -> ImportResult:
        try:
            df = pd.read_csv(file_path, encoding=encoding, dtype=str, keep_default_na=False)
        except Exception as e:
            raise ImporterError(f"Failed to read CSV: {e}") from e

        return self.import_dataframe(df, survey_id=survey_id, replace=replace, source_hint=str(file_path))

    def import_excel(
        self,
        file_path: str,
        survey_id: int,
        sheet_name: Optional[str] = None,
        replace: bool = False,
    ) -> ImportResult:
        try:
            df = pd.read_excel(file_path, sheet_name=sheet_name or 0, dtype=str, keep_default_na=False)
        except Exception as e:
            raise ImporterError(f"Failed to read Excel: {e}") from e

        return self.import_dataframe(
            df,
            survey_id=survey_id,
            replace=replace,
            source_hint=f"{file_path}#{sheet_name or 'default'}",
        )

    def import_dataframe(
        self,
        df: pd.DataFrame,
        survey_id: int,
        replace: bool = False,
        source_hint: str = "<dataframe>",
    ) -> ImportResult:
        if df is None or df.empty:
            raise ImporterError("Input dataset is empty.")

        df = df.copy()
        df.columns = [self._normalize_column_name(c) for c in df.columns]

        if df.columns.duplicated().any():
            dupes = sorted(set(df.columns[df.columns.duplicated()]))
            raise ImporterError(f"Duplicate columns after normalization: {dupes}")

        keep: List[str] = []
        skipped: List[str] = []
        for col in df.columns:
            if col in BASE_COLUMNS or self._belongs_to_survey(col, survey_id):
                keep.append(col)
            else:
                skipped.append(col)

        answer_columns = [c for c in keep if c not in BASE_COLUMNS]
        if not answer_columns:
            raise ImporterError(f"No response columns for survey {survey_id} found in {source_hint}.")

        store = SQLiteResponseStore(self.db_path, survey_id, self.table_prefix)
        created: List[str] = []
        try:
            if not store.exists():
                store.create_table(answer_columns)
                created = list(answer_columns)
            else:
                missing = [c for c in answer_columns if c not in set(store.list_columns())]
                if missing and not self.create_missing_columns:
                    raise ImporterError(f"Response table lacks columns: {missing}")
                created = store.add_columns(missing)

            if replace:
                store.clear()

            records = [self._clean_record(r) for r in df[keep].to_dict(orient="records")]
            inserted = store.insert_rows(records)
        except StorageError as e:
            raise ImporterError(f"Failed to store responses from {source_hint}: {e}") from e

        logger.info(
            "responses imported",
            extra={"source": source_hint, "inserted": inserted, "skipped_columns": len(skipped)},
        )
        return ImportResult(
            survey_id=int(survey_id),
            inserted_responses=inserted,
            imported_columns=keep,
            skipped_columns=skipped,
            created_columns=created,
        )

    def _belongs_to_survey(self, column: str, survey_id: int) -> bool:
        if not COLUMN_KEY_RE.match(column):
            return False
        return column.split("X", 1)[0] == str(survey_id)

    def _clean_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        # Blank cells become NULL; ids must be integers when present.
        out: Dict[str, Any] = {}
        for k, v in record.items():
            s = "" if v is None else str(v).strip()
            if k == "id":
                if s == "":
                    continue
                try:
                    out[k] = int(float(s))
                except ValueError as e:
                    raise ImporterError(f"Non-numeric response id: {s!r}") from e
                continue
            out[k] = s if s != "" else None
        return out

    def _normalize_column_name(self, raw: Any) -> str:
        # Export headers may carry stray whitespace or a BOM.
        s = str(raw).replace("\ufeff", "").strip()
        return s or "col"
