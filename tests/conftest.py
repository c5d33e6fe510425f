"""
Shared test fixtures.

In-memory providers back the engine tests (handlers, builder); a temporary
SQLite database seeded with a small survey backs the storage, validation,
importer and service tests.
"""

from collections import Counter
from typing import Dict, List, Sequence, Tuple

import pytest

from survey_report.app.errors import StorageError
from survey_report.db.models import (
    AnswerCode,
    CountedAnswer,
    Question,
    QuestionAttributes,
    QuestionGroup,
    QuestionRecord,
    SubQuestion,
    Survey,
    UploadedFile,
)
from survey_report.db.repository import SQLiteSurveyRepository
from survey_report.db.responses import SQLiteResponseStore
from survey_report.report.context import HandlerContext
from survey_report.report.registry import default_registry
from survey_report.report.service import SurveyReportService


SID = 123456


# ============================================================================
# IN-MEMORY PROVIDERS
# ============================================================================

class FakeMetadata:
    """Survey definitions held in dicts; language is ignored except for the language list."""

    def __init__(self):
        self.questions: List[Question] = []
        self.subs: Dict[Tuple[int, int], List[SubQuestion]] = {}
        self.answers: Dict[Tuple[int, int], List[AnswerCode]] = {}
        self.attributes: Dict[int, QuestionAttributes] = {}
        self.languages: List[str] = ["en"]

    def add_question(self, qid, type, title, text="", gid=10, group="Group A", mandatory=False, other=False):
        q = Question(
            question_id=qid,
            group_id=gid,
            group_name=group,
            type=type,
            title=title,
            text=text or f"Question {title}",
            mandatory=mandatory,
            other=other,
        )
        self.questions.append(q)
        return q

    def add_subs(self, qid, *pairs, scale=0):
        self.subs.setdefault((qid, scale), []).extend(
            SubQuestion(parent_id=qid, title=t, text=txt, scale=scale) for t, txt in pairs
        )

    def add_answers(self, qid, *pairs, scale=0):
        self.answers.setdefault((qid, scale), []).extend(
            AnswerCode(question_id=qid, code=c, label=label, scale=scale, sort_order=i)
            for i, (c, label) in enumerate(pairs)
        )

    def set_attributes(self, qid, **flags):
        self.attributes[qid] = QuestionAttributes(**flags)

    def attributes_for(self, qid) -> QuestionAttributes:
        return self.attributes.get(qid, QuestionAttributes())

    # MetadataProvider
    def list_top_level_questions(self, survey_id, language):
        return list(self.questions)

    def list_sub_questions(self, parent_id, language):
        return list(self.subs.get((parent_id, 0), []))

    def list_secondary_axis(self, parent_id, language):
        return list(self.subs.get((parent_id, 1), []))

    def list_answer_codes(self, question_id, scale_index, language):
        return list(self.answers.get((question_id, scale_index), []))

    def list_attributes(self, question_ids):
        return {q: self.attributes_for(q) for q in question_ids}

    def list_available_languages(self, survey_id):
        return list(self.languages)


class FakeResponses:
    """Response columns as {key: {respondent id: value}}; keys in ``fail_on`` raise StorageError."""

    def __init__(self):
        self.columns: Dict[str, Dict[int, str]] = {}
        self.uploads: Dict[str, Dict[int, Tuple[str, int]]] = {}
        self.fail_on = set()

    def set(self, key, values: Dict[int, str]):
        self.columns[key] = dict(values)

    def set_uploads(self, key, uploads: Dict[int, Tuple[str, int]]):
        self.uploads[key] = dict(uploads)

    def _values(self, key, respondent_ids: Sequence[int]) -> List[str]:
        if key in self.fail_on:
            raise StorageError(f"Response query failed on {key}")
        selected = set(respondent_ids)
        column = self.columns.get(key, {})
        return [column[rid] for rid in sorted(column) if rid in selected and column[rid]]

    # ResponseProvider
    def count_grouped_values(self, column_key, respondent_ids):
        counts = Counter(self._values(column_key, respondent_ids))
        return [CountedAnswer(value=v, count=n) for v, n in sorted(counts.items())]

    def count_true(self, column_key, respondent_ids):
        return sum(1 for v in self._values(column_key, respondent_ids) if v == "Y")

    def list_raw_values(self, column_key, respondent_ids):
        return self._values(column_key, respondent_ids)

    def list_uploaded_files(self, column_key, respondent_ids):
        selected = set(respondent_ids)
        rows = self.uploads.get(column_key, {})
        return [
            UploadedFile(description=rows[rid][0], count=rows[rid][1])
            for rid in sorted(rows)
            if rid in selected and rows[rid][1] > 0
        ]


@pytest.fixture
def metadata():
    return FakeMetadata()


@pytest.fixture
def responses():
    return FakeResponses()


@pytest.fixture
def make_ctx(metadata, responses):
    """Factory for a HandlerContext over the fake providers (respondents 1..10 by default)."""

    def _make(**overrides):
        values = dict(
            survey_id=SID,
            language="en",
            metadata=metadata,
            responses=responses,
            respondent_ids=tuple(range(1, 11)),
            cutoff=0,
        )
        for name in ("allow", "deny"):
            if name in overrides:
                overrides[name] = frozenset(overrides[name])
        values.update(overrides)
        return HandlerContext(**values)

    return _make


@pytest.fixture
def populate(metadata, make_ctx):
    """Run the registered handler of a question; returns its entries as an ordered dict."""
    registry = default_registry()

    def _populate(question, **ctx_overrides):
        ctx = make_ctx(**ctx_overrides)
        handler = registry.get(question.type)
        return dict(handler.populate(question, ctx, metadata.attributes_for(question.question_id)))

    return _populate


# ============================================================================
# SQLITE SURVEY
# ============================================================================

def _question(qid, gid, type, title, text, order, parent=0, scale=0, other=False, mandatory=False, language="en"):
    return QuestionRecord(
        question_id=qid,
        survey_id=SID,
        group_id=gid,
        type=type,
        title=title,
        text=text,
        language=language,
        parent_id=parent,
        scale=scale,
        order_index=order,
        mandatory=mandatory,
        other=other,
    )


RESPONSE_COLUMNS = [
    "123456X10X1",
    "123456X10X2SQ1",
    "123456X10X2SQ2",
    "123456X10X2SQ3",
    "123456X10X2other",
    "123456X20X3",
    "123456X20X4R1",
    "123456X20X4R2",
]

RESPONSE_ROWS = [
    {
        "id": 1, "token": "tokA", "submitdate": "2024-01-10 10:00:00",
        "123456X10X1": "A", "123456X10X2SQ2": "Y", "123456X10X2other": "foo",
        "123456X20X3": "great", "123456X20X4R1": "1", "123456X20X4R2": "3",
    },
    {
        "id": 2, "token": "tokB", "submitdate": "2024-01-15 08:30:00",
        "123456X10X1": "A", "123456X10X2SQ1": "Y", "123456X20X3": "", "123456X20X4R1": "2",
    },
    {
        "id": 3, "token": "tokC", "submitdate": "2024-02-01 17:45:00",
        "123456X10X1": "B", "123456X10X2SQ1": "Y", "123456X10X2SQ2": "Y",
        "123456X20X3": "meh", "123456X20X4R1": "1",
    },
]


def seed_survey(db_path: str) -> SQLiteSurveyRepository:
    """
    Survey 123456 (active, datestamped, en + de):

    Group A: Q1 list (A Red / B Blue), Q2 multiple choice SQ1..SQ3 with other.
    Group B: Q3 long text, Q4 array R1/R2 over codes 1..3.
    Also survey 999 (anonymized, no datestamp) and survey 555 (inactive).
    """
    repo = SQLiteSurveyRepository(db_path)
    repo.init_schema()

    repo.upsert_survey(Survey(survey_id=SID, language="en", active=True, anonymized=False, datestamp=True))
    repo.add_language(SID, "de")
    repo.upsert_survey(Survey(survey_id=999, language="en", active=True, anonymized=True, datestamp=False))
    repo.upsert_survey(Survey(survey_id=555, language="en", active=False))

    repo.upsert_group(QuestionGroup(group_id=10, survey_id=SID, name="Group A", order_index=1))
    repo.upsert_group(QuestionGroup(group_id=20, survey_id=SID, name="Group B", order_index=2))

    repo.upsert_question(_question(1, 10, "L", "Q1", "Favourite <b>colour</b>?", 1, mandatory=True))
    repo.upsert_question(_question(2, 10, "M", "Q2", "Which pets?", 2, other=True))
    repo.upsert_question(_question(21, 10, "M", "SQ1", "Cat", 1, parent=2))
    repo.upsert_question(_question(22, 10, "M", "SQ2", "Dog", 2, parent=2))
    repo.upsert_question(_question(23, 10, "M", "SQ3", "Fish", 3, parent=2))
    repo.upsert_question(_question(3, 20, "T", "Q3", "Comments", 1))
    repo.upsert_question(_question(4, 20, "F", "Q4", "Rate us", 2))
    repo.upsert_question(_question(41, 20, "F", "R1", "Speed", 1, parent=4))
    repo.upsert_question(_question(42, 20, "F", "R2", "Price", 2, parent=4))

    repo.upsert_answers([
        AnswerCode(question_id=1, code="A", label="Red", sort_order=1),
        AnswerCode(question_id=1, code="B", label="Blue", sort_order=2),
    ])
    repo.upsert_answers([
        AnswerCode(question_id=4, code=str(i), label=label, sort_order=i)
        for i, label in enumerate(["Bad", "Fair", "Good"], start=1)
    ])
    repo.set_attribute(3, "hidden", True)

    store = SQLiteResponseStore(db_path, SID)
    store.create_table(RESPONSE_COLUMNS)
    store.insert_rows(RESPONSE_ROWS)
    return repo


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "surveys.db")


@pytest.fixture
def repository(db_path):
    return seed_survey(db_path)


@pytest.fixture
def store(repository, db_path):
    return SQLiteResponseStore(db_path, SID)


@pytest.fixture
def service(repository, db_path):
    def response_store(survey_id):
        return SQLiteResponseStore(db_path, survey_id)

    return SurveyReportService(repository, response_store)
