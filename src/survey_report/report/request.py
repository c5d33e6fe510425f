# request.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import jsonschema

from survey_report.app.errors import InvalidRequest


# Wire shape of a report request. Both camelCase and snake_case names are accepted.
REQUEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "survey_id": {"type": "integer", "minimum": 1},
        "respondent_ids": {"type": "array", "items": {"type": "integer"}},
        "language": {"type": ["string", "null"], "pattern": "^[a-zA-Z-]+$"},
        "question_allow_list": {"type": "array", "items": {"type": "string"}},
        "question_deny_list": {"type": "array", "items": {"type": "string"}},
        "definitions_only": {"type": "boolean"},
        "cutoff": {"type": "integer", "minimum": 0},
        "strip_markup": {"type": "boolean"},
    },
    "required": ["survey_id"],
    "additionalProperties": False,
}

_ALIASES = {
    "surveyId": "survey_id",
    "respondentIds": "respondent_ids",
    "questionAllowList": "question_allow_list",
    "questionDenyList": "question_deny_list",
    "definitionsOnly": "definitions_only",
    "stripMarkup": "strip_markup",
}


@dataclass(frozen=True)
class AggregationRequest:
    """
    One aggregation call.

    ``respondent_ids`` empty means "no respondents" (every count is 0), not
    "everybody". ``language`` None is resolved to the survey's default language.
    Allow/deny lists hold fully expanded response column keys.
    """

    survey_id: int
    respondent_ids: Tuple[int, ...] = ()
    language: Optional[str] = None
    question_allow_list: Tuple[str, ...] = ()
    question_deny_list: Tuple[str, ...] = ()
    definitions_only: bool = False
    cutoff: int = 0
    strip_markup: bool = True

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "AggregationRequest":
        if not isinstance(payload, Mapping):
            raise InvalidRequest("Request must be an object.")

        data = {_ALIASES.get(k, k): v for k, v in payload.items()}
        try:
            jsonschema.validate(instance=data, schema=REQUEST_SCHEMA)
        except jsonschema.ValidationError as e:
            where = "/".join(str(p) for p in e.absolute_path) or "request"
            raise InvalidRequest(f"Invalid {where}: {e.message}") from e

        return AggregationRequest(
            survey_id=data["survey_id"],
            respondent_ids=tuple(data.get("respondent_ids") or ()),
            language=data.get("language"),
            question_allow_list=tuple(data.get("question_allow_list") or ()),
            question_deny_list=tuple(data.get("question_deny_list") or ()),
            definitions_only=data.get("definitions_only", False),
            cutoff=data.get("cutoff", 0),
            strip_markup=data.get("strip_markup", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "survey_id": self.survey_id,
            "respondent_ids": list(self.respondent_ids),
            "language": self.language,
            "question_allow_list": list(self.question_allow_list),
            "question_deny_list": list(self.question_deny_list),
            "definitions_only": self.definitions_only,
            "cutoff": self.cutoff,
            "strip_markup": self.strip_markup,
        }
