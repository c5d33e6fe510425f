# context.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Tuple

from .keys import QuestionKeyGenerator
from .providers import MetadataProvider, ResponseProvider


_TAG_RE = re.compile(r"<[^>]*>")


def strip_markup(text: str) -> str:
    return _TAG_RE.sub("", text or "")


@dataclass(frozen=True)
class HandlerContext:
    """Everything a type handler needs for one aggregation request."""

    survey_id: int
    language: str
    metadata: MetadataProvider
    responses: ResponseProvider
    respondent_ids: Tuple[int, ...] = ()
    allow: FrozenSet[str] = field(default_factory=frozenset)
    deny: FrozenSet[str] = field(default_factory=frozenset)
    definitions_only: bool = False
    cutoff: int = 0
    strip_markup: bool = True

    @property
    def keys(self) -> QuestionKeyGenerator:
        return QuestionKeyGenerator(self.survey_id)

    def is_selected(self, key: str) -> bool:
        # Deny wins; an empty allow list admits everything.
        if key in self.deny:
            return False
        return not self.allow or key in self.allow

    def clean(self, text: str) -> str:
        return strip_markup(text) if self.strip_markup else (text or "")
