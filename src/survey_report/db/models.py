# models.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Survey:
    survey_id: int
    language: str
    active: bool = True
    anonymized: bool = False
    datestamp: bool = False


@dataclass(frozen=True)
class QuestionGroup:
    group_id: int
    survey_id: int
    name: str
    order_index: int = 0
    language: str = "en"


@dataclass(frozen=True)
class Question:
    question_id: int
    group_id: int
    group_name: str
    type: str
    title: str
    text: str
    mandatory: bool = False
    other: bool = False
    parent_id: int = 0


@dataclass(frozen=True)
class SubQuestion:
    parent_id: int
    title: str
    text: str
    scale: int = 0


@dataclass(frozen=True)
class AnswerCode:
    question_id: int
    code: str
    label: str
    scale: int = 0
    sort_order: int = 0


@dataclass(frozen=True)
class QuestionAttributes:
    hidden: bool = False
    numbers_only: bool = False
    other_numbers_only: bool = False
    other_comment_mandatory: bool = False


ATTRIBUTE_NAMES = ("hidden", "numbers_only", "other_numbers_only", "other_comment_mandatory")


@dataclass(frozen=True)
class CountedAnswer:
    value: str
    count: int


@dataclass(frozen=True)
class UploadedFile:
    description: str
    count: int


@dataclass(frozen=True)
class QuestionRecord:
    # Full definition row used when registering a survey structure.
    question_id: int
    survey_id: int
    group_id: int
    type: str
    title: str
    text: str
    language: str = "en"
    parent_id: int = 0
    scale: int = 0
    order_index: int = 0
    mandatory: bool = False
    other: bool = False
