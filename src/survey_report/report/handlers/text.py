# text.py
from __future__ import annotations

from typing import List

from survey_report.db.models import Question, QuestionAttributes
from ..context import HandlerContext
from ..entries import Distribution, RawList
from .base import FROM_ATTRIBUTE, Entries, TypeHandler
from .masks import RawValueHandler


class MultipleShortTextHandler(TypeHandler):
    """
    One raw-text key per sub-question plus a parent key summarizing them.

    The parent distribution counts, per sub-question, the values that survived
    that sub-question's own cutoff (a suppressed sub-question counts 0).
    Sub-questions filtered out by allow/deny do not appear in the parent;
    filtering out the parent drops the sub-question keys as well.
    """

    tag = "Q"
    name = "Multiple short text"
    numeric_only = FROM_ATTRIBUTE

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        text = ctx.clean(question.text)
        subs = ctx.metadata.list_sub_questions(question.question_id, ctx.language)

        parent = ctx.keys.plain(question, text)
        if not ctx.is_selected(parent.key):
            return []
        parent_report = self.header(parent, question, attributes, numeric_only=False)

        children: Entries = []
        summary = Distribution()
        summary.add_total()
        for sq in subs:
            sq_text = ctx.clean(sq.text)
            spec = ctx.keys.sub_question(question, text, sq, sq_text)
            if not ctx.is_selected(spec.key):
                continue
            report = self.header(spec, question, attributes)
            if not ctx.definitions_only:
                result = self.raw_result(spec.key, ctx)
                report = report.with_result(result)
                summary.add(sq.title, sq_text)
                summary.fold(sq.title, len(result) if isinstance(result, RawList) else 0)
            children.append((spec.key, report))

        if not ctx.definitions_only:
            parent_report = parent_report.with_result(self.finish(summary if subs else None, ctx))
        return [(parent.key, parent_report)] + children


def text_handlers() -> List[TypeHandler]:
    return [
        RawValueHandler("S", "Short free text", numeric_only=FROM_ATTRIBUTE),
        RawValueHandler("T", "Long free text"),
        RawValueHandler("U", "Huge free text"),
        MultipleShortTextHandler(),
    ]
