# providers.py
from __future__ import annotations

from typing import Dict, List, Protocol, Sequence

from survey_report.db.models import (
    AnswerCode,
    CountedAnswer,
    Question,
    QuestionAttributes,
    SubQuestion,
    UploadedFile,
)


class MetadataProvider(Protocol):
    """Survey definition lookups. ``SQLiteSurveyRepository`` is the shipped implementation."""

    def list_top_level_questions(self, survey_id: int, language: str) -> List[Question]: ...

    def list_sub_questions(self, parent_id: int, language: str) -> List[SubQuestion]: ...

    def list_secondary_axis(self, parent_id: int, language: str) -> List[SubQuestion]: ...

    def list_answer_codes(self, question_id: int, scale_index: int, language: str) -> List[AnswerCode]: ...

    def list_attributes(self, question_ids: Sequence[int]) -> Dict[int, QuestionAttributes]: ...

    def list_available_languages(self, survey_id: int) -> List[str]: ...


class ResponseProvider(Protocol):
    """
    Row-level response lookups restricted to a fixed respondent set.

    ``SQLiteResponseStore`` is the shipped implementation. Empty values never
    count; an empty respondent set yields empty results.
    """

    def count_grouped_values(self, column_key: str, respondent_ids: Sequence[int]) -> List[CountedAnswer]: ...

    def count_true(self, column_key: str, respondent_ids: Sequence[int]) -> int: ...

    def list_raw_values(self, column_key: str, respondent_ids: Sequence[int]) -> List[str]: ...

    def list_uploaded_files(self, column_key: str, respondent_ids: Sequence[int]) -> List[UploadedFile]: ...
