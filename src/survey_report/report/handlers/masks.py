# masks.py
from __future__ import annotations

from typing import List, Sequence, Tuple

from survey_report.db.models import Question, QuestionAttributes
from ..context import HandlerContext
from ..entries import Distribution
from .base import FROM_ATTRIBUTE, Entries, TypeHandler


class SingleKeyHandler(TypeHandler):
    """Mask questions stored in one column: header, then ``answer`` for the result."""

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        spec = ctx.keys.plain(question, ctx.clean(question.text))
        if not ctx.is_selected(spec.key):
            return []
        report = self.header(spec, question, attributes)
        if not ctx.definitions_only:
            report = report.with_result(self.answer(question, spec.key, ctx))
        return [(spec.key, report)]

    def answer(self, question: Question, key: str, ctx: HandlerContext):
        raise NotImplementedError


class RawValueHandler(SingleKeyHandler):
    # Date, numerical input, equation and the free-text types: every non-empty value, in respondent order.
    def __init__(self, tag: str, name: str, numeric_only=False):
        self.tag = tag
        self.name = name
        self.numeric_only = numeric_only

    def answer(self, question: Question, key: str, ctx: HandlerContext):
        return self.raw_result(key, ctx)


class FixedChoiceHandler(SingleKeyHandler):
    def __init__(self, tag: str, name: str, vocabulary: Sequence[Tuple[str, str]], numeric_only: bool = False):
        self.tag = tag
        self.name = name
        self.vocabulary = list(vocabulary)
        self.numeric_only = numeric_only

    def answer(self, question: Question, key: str, ctx: HandlerContext):
        return self.vocabulary_result(self.vocabulary, key, ctx)


class LanguageSwitchHandler(SingleKeyHandler):
    """Survey languages first, then any other language found in the data."""

    tag = "I"
    name = "Language switch"

    def answer(self, question: Question, key: str, ctx: HandlerContext):
        languages = ctx.metadata.list_available_languages(ctx.survey_id)
        if not languages:
            return self.finish(None, ctx)
        dist = Distribution.with_vocabulary([(lang, lang) for lang in dict.fromkeys(languages)])
        self.fold_counts(dist, key, ctx, data_driven=True)
        return self.finish(dist, ctx)


class FileUploadHandler(SingleKeyHandler):
    """One entry per uploading respondent (descriptor text, number of files)."""

    tag = "|"
    name = "File upload"

    def answer(self, question: Question, key: str, ctx: HandlerContext):
        uploads = ctx.responses.list_uploaded_files(key, ctx.respondent_ids)
        if not uploads:
            return self.finish(None, ctx)
        dist = Distribution()
        dist.add_total()
        for i, f in enumerate(uploads):
            dist.add(str(i), f.description)
            dist.fold(str(i), f.count)
        return self.finish(dist, ctx)


class TextDisplayHandler(SingleKeyHandler):
    # Displays text only; never carries answers nor passes through the cutoff.
    tag = "X"
    name = "Text display"

    def answer(self, question: Question, key: str, ctx: HandlerContext):
        return None


class MultipleNumericHandler(TypeHandler):
    tag = "K"
    name = "Multiple numerical input"
    numeric_only = True

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        subs = ctx.metadata.list_sub_questions(question.question_id, ctx.language)
        text = ctx.clean(question.text)
        out: Entries = []
        for sq in subs:
            spec = ctx.keys.sub_question(question, text, sq, ctx.clean(sq.text))
            if not ctx.is_selected(spec.key):
                continue
            report = self.header(spec, question, attributes)
            if not ctx.definitions_only:
                report = report.with_result(self.raw_result(spec.key, ctx))
            out.append((spec.key, report))
        return out


class RankingHandler(TypeHandler):
    """One key per rank position; each rank counts the answer codes placed there."""

    tag = "R"
    name = "Ranking"

    def populate(self, question: Question, ctx: HandlerContext, attributes: QuestionAttributes) -> Entries:
        vocabulary = self.answer_vocabulary(question.question_id, ctx)
        if not vocabulary:
            return []

        text = ctx.clean(question.text)
        out: Entries = []
        for spec in ctx.keys.ranks(question, text, len(vocabulary)):
            if not ctx.is_selected(spec.key):
                continue
            report = self.header(spec, question, attributes)
            if not ctx.definitions_only:
                report = report.with_result(self.vocabulary_result(vocabulary, spec.key, ctx))
            out.append((spec.key, report))
        return out


def mask_handlers() -> List[TypeHandler]:
    return [
        RawValueHandler("D", "Date/Time"),
        FileUploadHandler(),
        FixedChoiceHandler("G", "Gender", [("M", "Male"), ("F", "Female")]),
        LanguageSwitchHandler(),
        RawValueHandler("N", "Numerical input", numeric_only=True),
        MultipleNumericHandler(),
        RankingHandler(),
        TextDisplayHandler(),
        FixedChoiceHandler("Y", "Yes/No", [("N", "No"), ("Y", "Yes")]),
        RawValueHandler("*", "Equation", numeric_only=FROM_ATTRIBUTE),
    ]
