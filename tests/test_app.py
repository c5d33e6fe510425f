import json
import logging

from survey_report.app.config import Settings
from survey_report.app.logging import (
    JsonFormatter,
    RequestContextFilter,
    current_request_id,
    request_context,
)


class TestSettings:
    """Environment-driven settings with safe fallbacks."""

    def test_defaults(self, monkeypatch, tmp_path):
        for name in ("CUTOFF", "STRIP_MARKUP", "DATE_COLUMN", "MAX_WORKERS", "LOG_JSON", "TABLE_PREFIX"):
            monkeypatch.delenv(f"SURVEY_REPORT_{name}", raising=False)
        monkeypatch.setenv("SURVEY_REPORT_DB_PATH", str(tmp_path / "data" / "s.db"))

        s = Settings.from_env(dotenv=False)

        assert s.table_prefix == "lime_"
        assert (s.default_cutoff, s.strip_markup, s.date_column, s.max_workers) == (0, True, "submitdate", 1)
        assert (tmp_path / "data").is_dir()

    def test_overrides_and_clamping(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SURVEY_REPORT_DB_PATH", str(tmp_path / "s.db"))
        monkeypatch.setenv("SURVEY_REPORT_CUTOFF", "-3")
        monkeypatch.setenv("SURVEY_REPORT_STRIP_MARKUP", "no")
        monkeypatch.setenv("SURVEY_REPORT_DATE_COLUMN", "Token")
        monkeypatch.setenv("SURVEY_REPORT_MAX_WORKERS", "four")
        monkeypatch.setenv("SURVEY_REPORT_LOG_JSON", "off")

        s = Settings.from_env(dotenv=False)

        assert s.default_cutoff == 0
        assert s.strip_markup is False
        assert s.date_column == "submitdate"
        assert s.max_workers == 1
        assert s.log_json is False

    def test_date_column_case_insensitive(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SURVEY_REPORT_DB_PATH", str(tmp_path / "s.db"))
        monkeypatch.setenv("SURVEY_REPORT_DATE_COLUMN", "StartDate")
        assert Settings.from_env(dotenv=False).date_column == "startdate"


class TestRequestLogging:
    """Request-scoped fields on every log record."""

    def _record(self, **extra):
        record = logging.LogRecord("survey_report.test", logging.INFO, __file__, 1, "report built", None, None)
        for k, v in extra.items():
            setattr(record, k, v)
        RequestContextFilter().filter(record)
        return json.loads(JsonFormatter().format(record))

    def test_context_fields(self):
        with request_context(survey_id=42, request_id="abc") as rid:
            assert rid == "abc"
            assert current_request_id() == "abc"
            payload = self._record(keys=3, when=object())
        assert payload["request_id"] == "abc"
        assert payload["survey_id"] == 42
        assert payload["msg"] == "report built"
        assert payload["keys"] == 3
        assert isinstance(payload["when"], str)

    def test_context_is_reset(self):
        with request_context(survey_id=1):
            assert current_request_id() is not None
        assert current_request_id() is None
        assert self._record()["survey_id"] is None
