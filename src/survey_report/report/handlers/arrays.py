# arrays.py
from __future__ import annotations

from typing import List, Sequence, Tuple

from survey_report.db.models import Question, QuestionAttributes
from ..context import HandlerContext
from ..entries import Distribution
from .base import FROM_ATTRIBUTE, Entries, TypeHandler


class FixedScaleArrayHandler(TypeHandler):
    """One key per sub-question, every key sharing a fixed answer scale."""

    def __init__(self, tag: str, name: str, vocabulary: Sequence[Tuple[str, str]], numeric_only: bool = False):
        self.tag = tag
        self.name = name
        self.vocabulary = list(vocabulary)
        self.numeric_only = numeric_only

    def scale_vocabulary(self, question: Question, ctx: HandlerContext) -> List[Tuple[str, str]]:
        return self.vocabulary

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        subs = ctx.metadata.list_sub_questions(question.question_id, ctx.language)
        if not subs:
            return []

        text = ctx.clean(question.text)
        vocabulary = None
        out: Entries = []
        for sq in subs:
            spec = ctx.keys.sub_question(question, text, sq, ctx.clean(sq.text))
            if not ctx.is_selected(spec.key):
                continue
            report = self.header(spec, question, attributes)
            if not ctx.definitions_only:
                if vocabulary is None:
                    vocabulary = self.scale_vocabulary(question, ctx)
                report = report.with_result(self.vocabulary_result(vocabulary, spec.key, ctx))
            out.append((spec.key, report))
        return out


class AnswerCodeArrayHandler(FixedScaleArrayHandler):
    # Array and Array by column: the scale comes from the question's own answer codes.
    def __init__(self, tag: str, name: str):
        super().__init__(tag, name, vocabulary=(), numeric_only=False)

    def scale_vocabulary(self, question: Question, ctx: HandlerContext) -> List[Tuple[str, str]]:
        return self.answer_vocabulary(question.question_id, ctx, scale=0)


class DualScaleArrayHandler(TypeHandler):
    """Two keys per sub-question (``#0`` and ``#1``), each with the answer codes of its scale."""

    tag = "1"
    name = "Array dual scale"

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        subs = ctx.metadata.list_sub_questions(question.question_id, ctx.language)
        if not subs:
            return []

        text = ctx.clean(question.text)
        vocabularies = {}
        out: Entries = []
        for sq in subs:
            for scale in (0, 1):
                spec = ctx.keys.dual_scale(question, text, sq, ctx.clean(sq.text), scale)
                if not ctx.is_selected(spec.key):
                    continue
                report = self.header(spec, question, attributes)
                if not ctx.definitions_only:
                    if scale not in vocabularies:
                        vocabularies[scale] = self.answer_vocabulary(question.question_id, ctx, scale=scale)
                    report = report.with_result(self.vocabulary_result(vocabularies[scale], spec.key, ctx))
                out.append((spec.key, report))
        return out


class CrossTabArrayHandler(TypeHandler):
    """
    Rows x columns arrays (``:`` numbers, ``;`` texts).

    Keys are the Cartesian product of the scale-0 rows and the scale-1
    columns. Number cells get a data-driven distribution; text cells a raw list.
    """

    def __init__(self, tag: str, name: str, raw: bool, numeric_only=True):
        self.tag = tag
        self.name = name
        self.raw = raw
        self.numeric_only = numeric_only

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        rows = ctx.metadata.list_sub_questions(question.question_id, ctx.language)
        if not rows:
            return []
        columns = ctx.metadata.list_secondary_axis(question.question_id, ctx.language)

        text = ctx.clean(question.text)
        out: Entries = []
        for spec in ctx.keys.expand_cross_tab(question, text, rows, columns, ctx.clean):
            if not ctx.is_selected(spec.key):
                continue
            report = self.header(spec, question, attributes)
            if not ctx.definitions_only:
                if self.raw:
                    result = self.raw_result(spec.key, ctx)
                else:
                    result = self._numbers_result(spec.key, ctx)
                report = report.with_result(result)
            out.append((spec.key, report))
        return out

    def _numbers_result(self, key: str, ctx: HandlerContext):
        dist = Distribution()
        dist.add_total()
        if self.fold_counts(dist, key, ctx, data_driven=True) == 0:
            return self.finish(None, ctx)
        return self.finish(dist, ctx)


def array_handlers() -> List[TypeHandler]:
    return [
        AnswerCodeArrayHandler("F", "Array"),
        FixedScaleArrayHandler(
            "A", "Array (5 point choice)", [(str(i), str(i)) for i in range(1, 6)], numeric_only=True
        ),
        FixedScaleArrayHandler(
            "B", "Array (10 point choice)", [(str(i), str(i)) for i in range(1, 11)], numeric_only=True
        ),
        FixedScaleArrayHandler("C", "Array (Yes/Uncertain/No)", [("Y", "Yes"), ("U", "Uncertain"), ("N", "No")]),
        FixedScaleArrayHandler(
            "E", "Array (Increase/Same/Decrease)", [("I", "Increase"), ("S", "Same"), ("D", "Decrease")]
        ),
        AnswerCodeArrayHandler("H", "Array by column"),
        DualScaleArrayHandler(),
        CrossTabArrayHandler(":", "Array (Numbers)", raw=False, numeric_only=True),
        CrossTabArrayHandler(";", "Array (Texts)", raw=True, numeric_only=FROM_ATTRIBUTE),
    ]
