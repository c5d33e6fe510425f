# choice.py
from __future__ import annotations

from typing import List

from survey_report.db.models import Question, QuestionAttributes, SubQuestion
from ..context import HandlerContext
from ..entries import Distribution
from .base import Entries, TypeHandler


OTHER_CODE = "other"
OTHER_OPTION_CODE = "-oth-"
OTHER_LABEL = "Other"


class MultipleChoiceHandler(TypeHandler):
    """
    Checkbox questions collapsed into one distribution on the parent key.

    Each option counts the respondents who ticked it ("Y" in the option's own
    column). With "other" enabled, an ``other`` entry counts respondents who
    wrote something in the other field, and the written texts are reported on
    the ``other`` satellite key. The comment variant adds one raw-text key per
    option comment column.
    """

    def __init__(self, tag: str, name: str, with_comments: bool = False):
        self.tag = tag
        self.name = name
        self.with_comments = with_comments

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        text = ctx.clean(question.text)
        subs = ctx.metadata.list_sub_questions(question.question_id, ctx.language)

        parent = ctx.keys.plain(question, text)
        # Satellites exist only alongside their parent key.
        if not ctx.is_selected(parent.key):
            return []

        report = self.header(parent, question, attributes)
        if not ctx.definitions_only:
            report = report.with_result(self._parent_result(question, subs, ctx))
        out: Entries = [(parent.key, report)]

        if self.with_comments:
            for sq in subs:
                spec = ctx.keys.sub_question_comment(question, text, sq, ctx.clean(sq.text))
                if not ctx.is_selected(spec.key):
                    continue
                report = self.header(spec, question, attributes)
                if not ctx.definitions_only:
                    report = report.with_result(self.raw_result(spec.key, ctx))
                out.append((spec.key, report))

        if question.other:
            other = ctx.keys.other(question, text)
            if ctx.is_selected(other.key):
                report = self.other_header(other, question, attributes)
                if not ctx.definitions_only:
                    report = report.with_result(self.raw_result(other.key, ctx))
                out.append((other.key, report))

        return out

    def _parent_result(self, question: Question, subs: List[SubQuestion], ctx: HandlerContext):
        if not subs:
            return self.finish(None, ctx)

        dist = Distribution()
        dist.add_total()
        for sq in subs:
            n = ctx.responses.count_true(ctx.keys.option_column(question, sq), ctx.respondent_ids)
            dist.add(sq.title, ctx.clean(sq.text))
            dist.fold(sq.title, n)

        if question.other:
            other_key = ctx.keys.other(question, "").key
            written = len(ctx.responses.list_raw_values(other_key, ctx.respondent_ids))
            dist.add(OTHER_CODE, OTHER_LABEL)
            dist.fold(OTHER_CODE, written)

        return self.finish(dist, ctx)


class ListHandler(TypeHandler):
    """
    Single choice over the question's answer codes (radio list, dropdown, list with comment).

    With "other" enabled the vocabulary gains ``-oth-`` and the free text goes
    to the ``other`` satellite; list-with-comment adds a ``comment`` satellite.
    """

    def __init__(self, tag: str, name: str, with_comment: bool = False, allows_other: bool = True):
        self.tag = tag
        self.name = name
        self.with_comment = with_comment
        self.allows_other = allows_other

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        text = ctx.clean(question.text)
        has_other = self.allows_other and question.other
        parent = ctx.keys.plain(question, text)
        if not ctx.is_selected(parent.key):
            return []

        report = self.header(parent, question, attributes)
        if not ctx.definitions_only:
            vocabulary = self.answer_vocabulary(question.question_id, ctx)
            if vocabulary and has_other:
                vocabulary.append((OTHER_OPTION_CODE, OTHER_LABEL))
            report = report.with_result(self.vocabulary_result(vocabulary, parent.key, ctx))
        out: Entries = [(parent.key, report)]

        if has_other:
            other = ctx.keys.other(question, text)
            if ctx.is_selected(other.key):
                report = self.other_header(other, question, attributes)
                if not ctx.definitions_only:
                    report = report.with_result(self.raw_result(other.key, ctx))
                out.append((other.key, report))

        if self.with_comment:
            comment = ctx.keys.comment(question, text)
            if ctx.is_selected(comment.key):
                report = self.header(comment, question, attributes)
                if not ctx.definitions_only:
                    report = report.with_result(self.raw_result(comment.key, ctx))
                out.append((comment.key, report))

        return out


class FivePointChoiceHandler(TypeHandler):
    tag = "5"
    name = "5 point choice"

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        spec = ctx.keys.plain(question, ctx.clean(question.text))
        if not ctx.is_selected(spec.key):
            return []
        report = self.header(spec, question, attributes)
        if not ctx.definitions_only:
            vocabulary = [(str(i), str(i)) for i in range(1, 6)]
            report = report.with_result(self.vocabulary_result(vocabulary, spec.key, ctx))
        return [(spec.key, report)]


def choice_handlers() -> List[TypeHandler]:
    return [
        MultipleChoiceHandler("M", "Multiple choice"),
        MultipleChoiceHandler("P", "Multiple choice with comments", with_comments=True),
        FivePointChoiceHandler(),
        ListHandler("!", "List (dropdown)"),
        ListHandler("L", "List (radio)"),
        ListHandler("O", "List with comment", with_comment=True, allows_other=False),
    ]
