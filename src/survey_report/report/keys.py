# keys.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from survey_report.db.models import Question, SubQuestion


@dataclass(frozen=True)
class KeySpec:
    # One reportable field: response column key plus its display code/text.
    key: str
    code: str
    text: str


class QuestionKeyGenerator:
    """
    Derives response column keys (``{sid}X{gid}X{qid}{suffix}``) with their codes and texts.

    Pure and deterministic. ``text`` arguments are expected to be already cleaned
    (markup stripped) by the caller.
    """

    def __init__(self, survey_id: int):
        self.survey_id = int(survey_id)

    def base(self, question: Question) -> str:
        return f"{self.survey_id}X{question.group_id}X{question.question_id}"

    def plain(self, question: Question, text: str) -> KeySpec:
        return KeySpec(key=self.base(question), code=question.title, text=text)

    def sub_question(self, question: Question, text: str, sq: SubQuestion, sq_text: str) -> KeySpec:
        return KeySpec(
            key=f"{self.base(question)}{sq.title}",
            code=f"{question.title}[{sq.title}]",
            text=f"{text} [{sq_text}]",
        )

    def dual_scale(self, question: Question, text: str, sq: SubQuestion, sq_text: str, scale: int) -> KeySpec:
        return KeySpec(
            key=f"{self.base(question)}{sq.title}#{scale}",
            code=f"{question.title}[{sq.title}][{scale}]",
            text=f"{text} [{sq_text}][Scale {scale + 1}]",
        )

    def cross_tab(
        self,
        question: Question,
        text: str,
        row: SubQuestion,
        row_text: str,
        col: SubQuestion,
        col_text: str,
    ) -> KeySpec:
        label = f"{row_text}][{col_text}" if col_text else row_text
        return KeySpec(
            key=f"{self.base(question)}{row.title}_{col.title}",
            code=f"{question.title}[{row.title}_{col.title}]",
            text=f"{text} [{label}]",
        )

    def ranks(self, question: Question, text: str, n: int) -> List[KeySpec]:
        return [
            KeySpec(
                key=f"{self.base(question)}{i}",
                code=f"{question.title}[{i}]",
                text=f"{text} [Ranking {i}]",
            )
            for i in range(1, n + 1)
        ]

    def other(self, question: Question, text: str) -> KeySpec:
        return KeySpec(key=f"{self.base(question)}other", code=f"{question.title}[other]", text=f"{text} [Other]")

    def comment(self, question: Question, text: str) -> KeySpec:
        return KeySpec(
            key=f"{self.base(question)}comment",
            code=f"{question.title}[comment]",
            text=f"{text} [Comment]",
        )

    def sub_question_comment(self, question: Question, text: str, sq: SubQuestion, sq_text: str) -> KeySpec:
        return KeySpec(
            key=f"{self.base(question)}{sq.title}comment",
            code=f"{question.title}[{sq.title}comment]",
            text=f"{text} [{sq_text}] [Comment]",
        )

    def option_column(self, question: Question, sq: SubQuestion) -> str:
        # Raw per-option column of a multiple-choice question ("Y" when checked).
        return f"{self.base(question)}{sq.title}"

    def expand_cross_tab(
        self,
        question: Question,
        text: str,
        rows: Sequence[SubQuestion],
        columns: Sequence[SubQuestion],
        clean,
    ) -> List[KeySpec]:
        # Rows alone when there is no column axis.
        if not columns:
            return [self.sub_question(question, text, r, clean(r.text)) for r in rows]
        return [
            self.cross_tab(question, text, r, clean(r.text), c, clean(c.text))
            for r in rows
            for c in columns
        ]
