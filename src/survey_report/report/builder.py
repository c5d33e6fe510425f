# builder.py
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from typing import Dict, List, Optional, Sequence

from survey_report.app.errors import InvalidLanguage
from survey_report.db.models import Question, QuestionAttributes
from .context import HandlerContext
from .entries import QuestionReport, Report
from .handlers.base import Entries, TypeHandlerRegistry
from .providers import MetadataProvider, ResponseProvider
from .registry import default_registry
from .request import AggregationRequest


logger = logging.getLogger(__name__)


class ReportBuilder:
    """
    Aggregates every top-level question of a survey into a Report.

    Handlers run sequentially, or on a thread pool when ``max_workers > 1``;
    either way the per-question results are merged in question order, so the
    report layout does not depend on scheduling. A provider failure aborts the
    whole build.
    """

    def __init__(
        self,
        metadata: MetadataProvider,
        responses: ResponseProvider,
        registry: Optional[TypeHandlerRegistry] = None,
        max_workers: int = 1,
    ):
        self.metadata = metadata
        self.responses = responses
        self.registry = registry or default_registry()
        self.max_workers = max(int(max_workers), 1)

    def build(self, request: AggregationRequest) -> Report:
        started = time.perf_counter()
        ctx = self._context(request)

        questions = self.metadata.list_top_level_questions(ctx.survey_id, ctx.language)
        attributes = self.metadata.list_attributes([q.question_id for q in questions]) if questions else {}

        per_question = self._populate_all(questions, attributes, ctx)
        report = self._merge(questions, per_question)

        logger.info(
            "report built",
            extra={
                "language": ctx.language,
                "questions": len(questions),
                "groups": len(report),
                "keys": len(report.keys()),
                "respondents": len(ctx.respondent_ids),
                "definitions_only": ctx.definitions_only,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return report

    def _context(self, request: AggregationRequest) -> HandlerContext:
        language = request.language or self._fallback_language(request.survey_id)
        return HandlerContext(
            survey_id=int(request.survey_id),
            language=language,
            metadata=self.metadata,
            responses=self.responses,
            respondent_ids=tuple(request.respondent_ids),
            allow=frozenset(request.question_allow_list),
            deny=frozenset(request.question_deny_list),
            definitions_only=request.definitions_only,
            cutoff=max(int(request.cutoff), 0),
            strip_markup=request.strip_markup,
        )

    def _fallback_language(self, survey_id: int) -> str:
        languages = self.metadata.list_available_languages(survey_id)
        if not languages:
            raise InvalidLanguage(f"No language configured for survey {survey_id}")
        return languages[0]

    def _populate(self, question: Question, attributes: QuestionAttributes, ctx: HandlerContext) -> Entries:
        handler = self.registry.get(question.type)
        entries = handler.populate(question, ctx, attributes)
        logger.debug(
            "question aggregated",
            extra={"question_id": question.question_id, "type": question.type, "entries": len(entries)},
        )
        return entries

    def _populate_all(
        self,
        questions: Sequence[Question],
        attributes: Dict[int, QuestionAttributes],
        ctx: HandlerContext,
    ) -> List[Entries]:
        def attrs_of(q: Question) -> QuestionAttributes:
            return attributes.get(q.question_id) or QuestionAttributes()

        if self.max_workers == 1 or len(questions) < 2:
            return [self._populate(q, attrs_of(q), ctx) for q in questions]

        # Each task runs in a copy of the caller's context so request-scoped log fields follow it.
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="report") as pool:
            futures = [pool.submit(copy_context().run, self._populate, q, attrs_of(q), ctx) for q in questions]
            try:
                return [f.result() for f in futures]
            except BaseException:
                for f in futures:
                    f.cancel()
                raise

    def _merge(self, questions: Sequence[Question], per_question: Sequence[Entries]) -> Report:
        groups: Dict[str, Dict[str, QuestionReport]] = {}
        for question, entries in zip(questions, per_question):
            if not entries:
                continue
            group = groups.setdefault(question.group_name, {})
            for key, report in entries:
                if key in group:
                    logger.warning(
                        "duplicate response column key skipped",
                        extra={"key": key, "question_id": question.question_id, "group": question.group_name},
                    )
                    continue
                group[key] = report
        return Report.from_groups(groups)
