import pytest

from survey_report.app.errors import InvalidRequest
from survey_report.report.request import AggregationRequest


class TestFromDict:
    """Request payloads are schema-checked; camelCase and snake_case names both work."""

    def test_defaults(self):
        req = AggregationRequest.from_dict({"survey_id": 1})
        assert req == AggregationRequest(survey_id=1)
        assert req.respondent_ids == ()
        assert req.strip_markup is True

    def test_camel_case(self):
        req = AggregationRequest.from_dict({
            "surveyId": 12,
            "respondentIds": [3, 1],
            "language": "de",
            "questionAllowList": ["12X1X1"],
            "questionDenyList": ["12X1X2"],
            "definitionsOnly": True,
            "cutoff": 4,
            "stripMarkup": False,
        })
        assert req.survey_id == 12
        assert req.respondent_ids == (3, 1)
        assert req.question_allow_list == ("12X1X1",)
        assert req.question_deny_list == ("12X1X2",)
        assert req.definitions_only and not req.strip_markup
        assert req.cutoff == 4

    def test_to_dict_feeds_from_dict(self):
        req = AggregationRequest(survey_id=5, respondent_ids=(1, 2), language="en", cutoff=2)
        assert AggregationRequest.from_dict(req.to_dict()) == req

    @pytest.mark.parametrize(
        "payload, where",
        [
            ({}, "request"),
            ({"survey_id": "1"}, "survey_id"),
            ({"survey_id": 1, "cutoff": -1}, "cutoff"),
            ({"survey_id": 1, "language": "en us"}, "language"),
            ({"survey_id": 1, "respondent_ids": [1, "2"]}, "respondent_ids/1"),
            ({"survey_id": 1, "extra": True}, "request"),
        ],
    )
    def test_invalid(self, payload, where):
        with pytest.raises(InvalidRequest, match=f"Invalid {where}:"):
            AggregationRequest.from_dict(payload)

    def test_not_a_mapping(self):
        with pytest.raises(InvalidRequest):
            AggregationRequest.from_dict(["survey_id", 1])
