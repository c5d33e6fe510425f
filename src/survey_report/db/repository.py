# repository.py
from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .connection import connect
from .models import (
    ATTRIBUTE_NAMES,
    AnswerCode,
    Question,
    QuestionAttributes,
    QuestionGroup,
    QuestionRecord,
    Survey,
    SubQuestion,
)
from survey_report.app.errors import StorageError


_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]*$")


def _yn(flag: bool) -> str:
    return "Y" if flag else "N"


def _truthy(value: Any) -> bool:
    # Attribute values are stored as text ("1", "0", "Y", ...).
    if value is None:
        return False
    s = str(value).strip().lower()
    return s not in {"", "0", "n", "no", "false", "off"}


def load_schema_sql(table_prefix: str) -> str:
    template = (Path(__file__).parent / "schema.sql").read_text(encoding="utf-8")
    return template.replace("{prefix}", table_prefix)


class SQLiteSurveyRepository:
    """
    Survey definitions stored LimeSurvey-style in SQLite.

    Serves the metadata side of a report (questions, sub-questions, answer
    codes, attributes, languages) and the survey facts used by request
    validation. Every call opens its own connection, so one repository can be
    shared by concurrently running question handlers.
    """

    def __init__(self, db_path: str, table_prefix: str = "lime_"):
        if not _PREFIX_RE.match(table_prefix):
            raise StorageError(f"Invalid table prefix: {table_prefix!r}")
        self.db_path = db_path
        self.prefix = table_prefix

    def _t(self, name: str) -> str:
        return f'"{self.prefix}{name}"'

    def init_schema(self) -> None:
        # Execute schema SQL in a single transaction.
        conn = connect(self.db_path)
        try:
            conn.executescript(load_schema_sql(self.prefix))
            conn.commit()
        finally:
            conn.close()

    # -------------------------
    # Survey structure (writes)
    # -------------------------
    def upsert_survey(self, s: Survey) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"""
                INSERT INTO {self._t('surveys')}(sid, language, active, anonymized, datestamp)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(sid) DO UPDATE SET
                  language=excluded.language,
                  active=excluded.active,
                  anonymized=excluded.anonymized,
                  datestamp=excluded.datestamp
                """,
                (s.survey_id, s.language, _yn(s.active), _yn(s.anonymized), _yn(s.datestamp)),
            )
            conn.execute(
                f"""
                INSERT OR IGNORE INTO {self._t('surveys_languagesettings')}(surveyls_survey_id, surveyls_language)
                VALUES (?, ?)
                """,
                (s.survey_id, s.language),
            )
            conn.commit()
        finally:
            conn.close()

    def add_language(self, survey_id: int, language: str) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"""
                INSERT OR IGNORE INTO {self._t('surveys_languagesettings')}(surveyls_survey_id, surveyls_language)
                VALUES (?, ?)
                """,
                (survey_id, language),
            )
            conn.commit()
        finally:
            conn.close()

    def upsert_group(self, g: QuestionGroup) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"""
                INSERT INTO {self._t('groups')}(gid, sid, group_name, group_order, language)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(gid, language) DO UPDATE SET
                  sid=excluded.sid,
                  group_name=excluded.group_name,
                  group_order=excluded.group_order
                """,
                (g.group_id, g.survey_id, g.name, g.order_index, g.language),
            )
            conn.commit()
        finally:
            conn.close()

    def upsert_question(self, q: QuestionRecord) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"""
                INSERT INTO {self._t('questions')}(
                  qid, parent_qid, sid, gid, type, title, question,
                  other, mandatory, question_order, scale_id, language
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(qid, language) DO UPDATE SET
                  parent_qid=excluded.parent_qid,
                  sid=excluded.sid,
                  gid=excluded.gid,
                  type=excluded.type,
                  title=excluded.title,
                  question=excluded.question,
                  other=excluded.other,
                  mandatory=excluded.mandatory,
                  question_order=excluded.question_order,
                  scale_id=excluded.scale_id
                """,
                (
                    q.question_id,
                    q.parent_id,
                    q.survey_id,
                    q.group_id,
                    q.type,
                    q.title,
                    q.text,
                    _yn(q.other),
                    _yn(q.mandatory),
                    q.order_index,
                    q.scale,
                    q.language,
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def upsert_answers(self, answers: Iterable[AnswerCode], language: str = "en") -> int:
        rows = [(a.question_id, a.code, a.label, a.sort_order, a.scale, language) for a in answers]
        if not rows:
            return 0
        conn = connect(self.db_path)
        try:
            conn.executemany(
                f"""
                INSERT INTO {self._t('answers')}(qid, code, answer, sortorder, scale_id, language)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(qid, code, scale_id, language) DO UPDATE SET
                  answer=excluded.answer,
                  sortorder=excluded.sortorder
                """,
                rows,
            )
            conn.commit()
            return len(rows)
        finally:
            conn.close()

    def set_attribute(self, question_id: int, attribute: str, value: Any) -> None:
        conn = connect(self.db_path)
        try:
            conn.execute(
                f"""
                INSERT INTO {self._t('question_attributes')}(qid, attribute, value)
                VALUES (?, ?, ?)
                ON CONFLICT(qid, attribute) DO UPDATE SET value=excluded.value
                """,
                (question_id, attribute, None if value is None else str(int(value) if isinstance(value, bool) else value)),
            )
            conn.commit()
        finally:
            conn.close()

    # -------------------------
    # Metadata provider
    # -------------------------
    def list_top_level_questions(self, survey_id: int, language: str) -> List[Question]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                f"""
                SELECT q.qid, q.gid, q.type, q.title, q.question, q.other, q.mandatory, g.group_name
                FROM {self._t('questions')} AS q
                JOIN {self._t('groups')} AS g
                  ON q.gid = g.gid
                 AND q.language = g.language
                WHERE q.sid = ?
                  AND q.language = ?
                  AND q.parent_qid = 0
                ORDER BY g.group_order, q.question_order
                """,
                (survey_id, language),
            ).fetchall()
            return [
                Question(
                    question_id=int(r["qid"]),
                    group_id=int(r["gid"]),
                    group_name=r["group_name"],
                    type=r["type"],
                    title=r["title"],
                    text=r["question"] or "",
                    mandatory=r["mandatory"] == "Y",
                    other=r["other"] == "Y",
                )
                for r in rows
            ]
        finally:
            conn.close()

    def _children(self, parent_id: int, language: str, scale: int) -> List[SubQuestion]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                f"""
                SELECT parent_qid, title, question
                FROM {self._t('questions')}
                WHERE parent_qid = ?
                  AND language = ?
                  AND scale_id = ?
                ORDER BY question_order
                """,
                (parent_id, language, scale),
            ).fetchall()
            return [
                SubQuestion(parent_id=int(r["parent_qid"]), title=r["title"], text=r["question"] or "", scale=scale)
                for r in rows
            ]
        finally:
            conn.close()

    def list_sub_questions(self, parent_id: int, language: str) -> List[SubQuestion]:
        return self._children(parent_id, language, scale=0)

    def list_secondary_axis(self, parent_id: int, language: str) -> List[SubQuestion]:
        return self._children(parent_id, language, scale=1)

    def list_answer_codes(self, question_id: int, scale_index: int, language: str) -> List[AnswerCode]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                f"""
                SELECT qid, code, answer, sortorder, scale_id
                FROM {self._t('answers')}
                WHERE qid = ?
                  AND language = ?
                  AND scale_id = ?
                ORDER BY sortorder
                """,
                (question_id, language, scale_index),
            ).fetchall()
            return [
                AnswerCode(
                    question_id=int(r["qid"]),
                    code=str(r["code"]),
                    label=r["answer"] or "",
                    scale=int(r["scale_id"]),
                    sort_order=int(r["sortorder"]),
                )
                for r in rows
            ]
        finally:
            conn.close()

    def list_attributes(self, question_ids: Sequence[int]) -> Dict[int, QuestionAttributes]:
        # Every requested id gets an entry; missing attributes default to False.
        out: Dict[int, QuestionAttributes] = {int(q): QuestionAttributes() for q in question_ids}
        if not question_ids:
            return out

        qid_ph = ",".join(["?"] * len(question_ids))
        attr_ph = ",".join(["?"] * len(ATTRIBUTE_NAMES))
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                f"""
                SELECT qid, attribute, value
                FROM {self._t('question_attributes')}
                WHERE qid IN ({qid_ph})
                  AND attribute IN ({attr_ph})
                """,
                (*question_ids, *ATTRIBUTE_NAMES),
            ).fetchall()
        finally:
            conn.close()

        flags: Dict[int, Dict[str, bool]] = {}
        for r in rows:
            flags.setdefault(int(r["qid"]), {})[r["attribute"]] = _truthy(r["value"])
        for qid, values in flags.items():
            out[qid] = QuestionAttributes(**values)
        return out

    def list_available_languages(self, survey_id: int) -> List[str]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                f"""
                SELECT surveyls_language
                FROM {self._t('surveys_languagesettings')}
                WHERE surveyls_survey_id = ?
                ORDER BY rowid
                """,
                (survey_id,),
            ).fetchall()
            return [str(r["surveyls_language"]) for r in rows]
        finally:
            conn.close()

    # -------------------------
    # Survey facts (validation)
    # -------------------------
    def get_survey(self, survey_id: int) -> Optional[Survey]:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                f"SELECT sid, language, active, anonymized, datestamp FROM {self._t('surveys')} WHERE sid = ?",
                (survey_id,),
            ).fetchone()
        except sqlite3.OperationalError as e:
            raise StorageError(f"Survey table is not readable: {e}") from e
        finally:
            conn.close()

        if row is None:
            return None
        return Survey(
            survey_id=int(row["sid"]),
            language=row["language"],
            active=row["active"] == "Y",
            anonymized=row["anonymized"] == "Y",
            datestamp=row["datestamp"] == "Y",
        )

    def default_language(self, survey_id: int) -> Optional[str]:
        survey = self.get_survey(survey_id)
        return survey.language if survey else None
