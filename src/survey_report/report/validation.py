# validation.py
from __future__ import annotations

import re
from typing import Any, Callable, List, Optional, Sequence

import pandas as pd

from survey_report.app.errors import (
    AnonymousSurvey,
    InvalidLanguage,
    InvalidQuestionList,
    InvalidRespondentSelection,
    MissingDatestamp,
    StorageError,
    SurveyNotFound,
)
from survey_report.db.models import Survey
from survey_report.db.repository import SQLiteSurveyRepository
from survey_report.db.responses import SQLiteResponseStore


LANGUAGE_RE = re.compile(r"^[a-zA-Z-]+$")
TOKEN_RE = re.compile(r"^[0-9a-zA-Z_~]+$")


def question_key_pattern(survey_id: int) -> re.Pattern:
    return re.compile(rf"^{int(survey_id)}X\d{{1,6}}X\d+[A-Za-z0-9]{{0,20}}[#_]?[A-Za-z0-9]*$")


class RequestValidator:
    """
    Checks a report request against the survey it targets before any aggregation.

    Every failure raises a ``SurveyError`` subclass with a short, user-facing message.
    """

    def __init__(
        self,
        repository: SQLiteSurveyRepository,
        response_store: Callable[[int], SQLiteResponseStore],
    ):
        self.repository = repository
        self.response_store = response_store

    def check_survey(self, survey_id: Any) -> Survey:
        if not isinstance(survey_id, int) or isinstance(survey_id, bool):
            raise SurveyNotFound("Survey not found or inactive")
        survey = self.repository.get_survey(survey_id)
        if survey is None or not survey.active:
            raise SurveyNotFound("Survey not found or inactive")
        return survey

    def check_language(self, survey_id: int, language: Optional[str]) -> None:
        if language is None:
            return
        if not isinstance(language, str) or not LANGUAGE_RE.match(language):
            raise InvalidLanguage("Invalid language for this survey")
        if language not in self.repository.list_available_languages(survey_id):
            raise InvalidLanguage("Invalid language for this survey")

    def check_question_list(self, survey_id: int, keys: Optional[Sequence[Any]], purpose: str = "considered") -> None:
        if not keys:
            return
        message = f"Invalid list of questions to be {purpose} for this survey"
        if isinstance(keys, (str, bytes)):
            raise InvalidQuestionList(message)

        pattern = question_key_pattern(survey_id)
        for key in keys:
            if not isinstance(key, str) or not pattern.match(key):
                raise InvalidQuestionList(message)

        store = self.response_store(survey_id)
        try:
            columns = set(store.list_columns()) if store.exists() else set()
        except StorageError as e:
            raise InvalidQuestionList(message) from e
        if any(k not in columns for k in keys):
            raise InvalidQuestionList(message)

    def check_ids(self, ids: Any) -> List[int]:
        if not isinstance(ids, (list, tuple)):
            raise InvalidRespondentSelection("Invalid IDs list")
        out: List[int] = []
        for value in ids:
            if isinstance(value, bool):
                raise InvalidRespondentSelection("Invalid IDs list")
            if isinstance(value, int):
                out.append(value)
                continue
            try:
                number = float(str(value).strip())
            except ValueError as e:
                raise InvalidRespondentSelection("Invalid IDs list") from e
            if not number.is_integer():
                raise InvalidRespondentSelection("Invalid IDs list")
            out.append(int(number))
        return out

    def check_tokens(self, tokens: Any) -> List[str]:
        if not isinstance(tokens, (list, tuple)):
            raise InvalidRespondentSelection("Invalid tokens list")
        for token in tokens:
            if not isinstance(token, str) or not TOKEN_RE.match(token):
                raise InvalidRespondentSelection("Invalid tokens list")
        return list(tokens)

    def check_not_anonymous(self, survey: Survey) -> None:
        if survey.anonymized:
            raise AnonymousSurvey("Tokens cannot be used with an anonymized survey")

    def check_datestamp(self, survey: Survey) -> None:
        if not survey.datestamp:
            raise MissingDatestamp("Survey without datestamp")

    def parse_date(self, value: Any) -> str:
        # Accepts anything pandas can read as a single timestamp; returns "YYYY-MM-DD HH:MM:SS".
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidRespondentSelection("Invalid dates")
        try:
            ts = pd.to_datetime(value)
        except (ValueError, TypeError, OverflowError) as e:
            raise InvalidRespondentSelection("Invalid dates") from e
        if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
            raise InvalidRespondentSelection("Invalid dates")
        return ts.strftime("%Y-%m-%d %H:%M:%S")
