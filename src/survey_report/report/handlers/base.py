# base.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from survey_report.db.models import Question, QuestionAttributes
from ..context import HandlerContext
from ..entries import Distribution, QuestionReport, RawList, Result, UnknownType
from ..keys import KeySpec
from ..postprocess import apply_cutoff, finish_distribution


logger = logging.getLogger(__name__)

# Handlers return their own ordered (response column key, report) pairs.
Entries = List[Tuple[str, QuestionReport]]

# numeric_only values: True/False, or this marker to read the "numbers_only" attribute.
FROM_ATTRIBUTE = "attribute"


class TypeHandler:
    """
    Turns one top-level question into its report entries.

    Subclasses implement ``populate``. The helpers here cover the steps every
    type shares: base fields, allow/deny filtering, vocabulary folding and the
    percentage/total/cutoff finish.
    """

    tag: str = ""
    name: str = ""
    numeric_only = False

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        raise NotImplementedError

    # -------------------------
    # Base fields
    # -------------------------
    def numeric_flag(self, attributes: QuestionAttributes) -> bool:
        if self.numeric_only == FROM_ATTRIBUTE:
            return attributes.numbers_only
        return bool(self.numeric_only)

    def header(
        self,
        spec: KeySpec,
        question: Question,
        attributes: QuestionAttributes,
        mandatory: Optional[bool] = None,
        numeric_only: Optional[bool] = None,
    ) -> QuestionReport:
        return QuestionReport(
            code=spec.code,
            text=spec.text,
            type=self.tag or question.type,
            mandatory=question.mandatory if mandatory is None else mandatory,
            numeric_only=self.numeric_flag(attributes) if numeric_only is None else numeric_only,
            hidden=attributes.hidden,
        )

    def other_header(self, spec: KeySpec, question: Question, attributes: QuestionAttributes) -> QuestionReport:
        # "other" satellites take their flags from the other_* attributes.
        return self.header(
            spec,
            question,
            attributes,
            mandatory=attributes.other_comment_mandatory,
            numeric_only=attributes.other_numbers_only,
        )

    # -------------------------
    # Answers
    # -------------------------
    def fold_counts(self, dist: Distribution, key: str, ctx: HandlerContext, data_driven: bool = False) -> int:
        """Fold grouped value counts of ``key`` into ``dist``; returns how many rows were read."""
        counted = ctx.responses.count_grouped_values(key, ctx.respondent_ids)
        for answer in counted:
            accepted = dist.fold(answer.value, answer.count, label=answer.value if data_driven else None)
            if not accepted:
                logger.debug(
                    "value outside vocabulary ignored",
                    extra={"key": key, "value": answer.value, "count": answer.count},
                )
        return len(counted)

    def raw_values(self, key: str, ctx: HandlerContext) -> RawList:
        return RawList(tuple(ctx.responses.list_raw_values(key, ctx.respondent_ids)))

    def finish(self, result: Result, ctx: HandlerContext) -> Result:
        if isinstance(result, Distribution) and result.total is not None:
            return finish_distribution(result, ctx.cutoff)
        return apply_cutoff(result, ctx.cutoff)

    def vocabulary_result(self, vocabulary: Sequence[Tuple[str, str]], key: str, ctx: HandlerContext) -> Result:
        # Predefined vocabulary; no vocabulary means no answer field.
        if not vocabulary:
            return self.finish(None, ctx)
        dist = Distribution.with_vocabulary(vocabulary)
        self.fold_counts(dist, key, ctx)
        return self.finish(dist, ctx)

    def raw_result(self, key: str, ctx: HandlerContext) -> Result:
        return self.finish(self.raw_values(key, ctx), ctx)

    def answer_vocabulary(self, question_id: int, ctx: HandlerContext, scale: int = 0) -> List[Tuple[str, str]]:
        codes = ctx.metadata.list_answer_codes(question_id, scale, ctx.language)
        return [(c.code, ctx.clean(c.label)) for c in codes]


class UnknownTypeHandler(TypeHandler):
    # Fallback for tags without a handler: one degraded entry carrying the raw tag.
    name = "Unknown"
    numeric_only = FROM_ATTRIBUTE

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        spec = ctx.keys.plain(question, ctx.clean(question.text))
        if not ctx.is_selected(spec.key):
            return []
        report = self.header(spec, question, attributes)
        if not ctx.definitions_only:
            report = report.with_result(UnknownType(tag=question.type))
        return [(spec.key, report)]


class TypeHandlerRegistry:
    """Type tag -> handler. Unregistered tags resolve to ``UnknownTypeHandler``."""

    def __init__(self, handlers: Iterable[TypeHandler] = (), fallback: Optional[TypeHandler] = None):
        self._handlers: Dict[str, TypeHandler] = {}
        self.fallback = fallback or UnknownTypeHandler()
        for h in handlers:
            self.register(h)

    def register(self, handler: TypeHandler) -> None:
        if not handler.tag:
            raise ValueError(f"handler {type(handler).__name__} has no tag")
        if handler.tag in self._handlers:
            raise ValueError(f"duplicate handler for tag {handler.tag!r}")
        self._handlers[handler.tag] = handler

    def get(self, tag: str) -> TypeHandler:
        return self._handlers.get(tag, self.fallback)

    def __contains__(self, tag: object) -> bool:
        return tag in self._handlers

    def tags(self) -> List[str]:
        return list(self._handlers)
