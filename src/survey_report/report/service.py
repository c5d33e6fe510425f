# service.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from survey_report.app.config import DATE_COLUMNS, Settings
from survey_report.app.logging import request_context
from survey_report.db.repository import SQLiteSurveyRepository
from survey_report.db.responses import SQLiteResponseStore
from .builder import ReportBuilder
from .entries import Report
from .handlers.base import TypeHandlerRegistry
from .request import AggregationRequest
from .validation import RequestValidator


logger = logging.getLogger(__name__)


class SurveyReportService:
    """
    Entry point: validate a request, select respondents, build the report.

    ``get_only_questions`` returns definitions without answers; the three
    ``parse_by_*`` methods select respondents by response id, by token or by
    a date range (inclusive, on the configured date column). Requests are
    validated in a fixed order and the first failure is raised.
    """

    def __init__(
        self,
        repository: SQLiteSurveyRepository,
        response_store: Callable[[int], SQLiteResponseStore],
        cutoff: int = 0,
        date_column: str = "submitdate",
        strip_markup: bool = True,
        max_workers: int = 1,
        registry: Optional[TypeHandlerRegistry] = None,
    ):
        self.repository = repository
        self.response_store = response_store
        self.validator = RequestValidator(repository, response_store)
        self.registry = registry
        self.max_workers = max_workers
        self.cutoff = 0
        self.date_column = "submitdate"
        self.strip_markup = True
        self.set_cutoff(cutoff)
        self.set_date_column(date_column)
        self.set_strip_markup(strip_markup)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SurveyReportService":
        repository = SQLiteSurveyRepository(settings.db_path, settings.table_prefix)

        def store(survey_id: int) -> SQLiteResponseStore:
            return SQLiteResponseStore(settings.db_path, survey_id, settings.table_prefix)

        return cls(
            repository,
            store,
            cutoff=settings.default_cutoff,
            date_column=settings.date_column,
            strip_markup=settings.strip_markup,
            max_workers=settings.max_workers,
        )

    # -------------------------
    # Settings
    # -------------------------
    def set_cutoff(self, cutoff: Any = 0) -> None:
        try:
            self.cutoff = max(int(cutoff), 0)
        except (TypeError, ValueError):
            self.cutoff = 0

    def set_date_column(self, date_column: str = "submitdate") -> None:
        # Unknown columns fall back to submitdate.
        self.date_column = date_column if date_column in DATE_COLUMNS else "submitdate"

    def set_strip_markup(self, strip_markup: bool = True) -> None:
        self.strip_markup = bool(strip_markup)

    # -------------------------
    # Entry points
    # -------------------------
    def get_only_questions(
        self,
        survey_id: int,
        language: Optional[str] = None,
        allow: Sequence[str] = (),
        deny: Sequence[str] = (),
    ) -> Report:
        with request_context(survey_id=survey_id):
            self.validator.check_survey(survey_id)
            self._check_common(survey_id, language, allow, deny)
            return self._build(survey_id, (), language, allow, deny, definitions_only=True)

    def parse_by_ids(
        self,
        survey_id: int,
        ids: Sequence[Any],
        language: Optional[str] = None,
        allow: Sequence[str] = (),
        deny: Sequence[str] = (),
    ) -> Report:
        with request_context(survey_id=survey_id):
            self.validator.check_survey(survey_id)
            respondent_ids = self.validator.check_ids(ids)
            self._check_common(survey_id, language, allow, deny)
            logger.info("respondents selected", extra={"method": "ids", "respondents": len(respondent_ids)})
            return self._build(survey_id, respondent_ids, language, allow, deny)

    def parse_by_tokens(
        self,
        survey_id: int,
        tokens: Sequence[str],
        language: Optional[str] = None,
        allow: Sequence[str] = (),
        deny: Sequence[str] = (),
    ) -> Report:
        with request_context(survey_id=survey_id):
            survey = self.validator.check_survey(survey_id)
            tokens = self.validator.check_tokens(tokens)
            self.validator.check_not_anonymous(survey)
            self._check_common(survey_id, language, allow, deny)

            respondent_ids = self.response_store(survey_id).ids_by_tokens(tokens)
            logger.info(
                "respondents selected",
                extra={"method": "tokens", "tokens": len(tokens), "respondents": len(respondent_ids)},
            )
            return self._build(survey_id, respondent_ids, language, allow, deny)

    def parse_by_dates(
        self,
        survey_id: int,
        date_from: Any,
        date_to: Any,
        language: Optional[str] = None,
        allow: Sequence[str] = (),
        deny: Sequence[str] = (),
    ) -> Report:
        with request_context(survey_id=survey_id):
            survey = self.validator.check_survey(survey_id)
            self.validator.check_datestamp(survey)
            start = self.validator.parse_date(date_from)
            end = self.validator.parse_date(date_to)
            self._check_common(survey_id, language, allow, deny)

            respondent_ids = self.response_store(survey_id).ids_by_dates(start, end, self.date_column)
            logger.info(
                "respondents selected",
                extra={
                    "method": "dates",
                    "date_from": start,
                    "date_to": end,
                    "date_column": self.date_column,
                    "respondents": len(respondent_ids),
                },
            )
            return self._build(survey_id, respondent_ids, language, allow, deny)

    def run(self, request: Union[AggregationRequest, Mapping[str, Any]]) -> Report:
        """Build from an explicit request (dict payloads are schema-checked first)."""
        if not isinstance(request, AggregationRequest):
            request = AggregationRequest.from_dict(request)

        with request_context(survey_id=request.survey_id):
            self.validator.check_survey(request.survey_id)
            self._check_common(
                request.survey_id, request.language, request.question_allow_list, request.question_deny_list
            )
            language = request.language or self.repository.default_language(request.survey_id)
            builder = ReportBuilder(self.repository, self.response_store(request.survey_id), self.registry, self.max_workers)
            return builder.build(replace(request, language=language))

    # -------------------------
    # Internals
    # -------------------------
    def _check_common(self, survey_id: int, language: Optional[str], allow: Sequence[str], deny: Sequence[str]) -> None:
        self.validator.check_language(survey_id, language)
        self.validator.check_question_list(survey_id, allow, "considered")
        self.validator.check_question_list(survey_id, deny, "excluded")

    def _build(
        self,
        survey_id: int,
        respondent_ids: Sequence[int],
        language: Optional[str],
        allow: Sequence[str],
        deny: Sequence[str],
        definitions_only: bool = False,
    ) -> Report:
        request = AggregationRequest(
            survey_id=survey_id,
            respondent_ids=tuple(respondent_ids),
            language=language or self.repository.default_language(survey_id),
            question_allow_list=tuple(allow or ()),
            question_deny_list=tuple(deny or ()),
            definitions_only=definitions_only,
            cutoff=self.cutoff,
            strip_markup=self.strip_markup,
        )
        builder = ReportBuilder(self.repository, self.response_store(survey_id), self.registry, self.max_workers)
        return builder.build(request)
