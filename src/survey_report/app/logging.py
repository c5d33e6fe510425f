from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional
from uuid import uuid4


# Context variables attached to every log record of the current report request.
_REQUEST_ID: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_SURVEY_ID: ContextVar[Optional[int]] = ContextVar("survey_id", default=None)

_RESERVED = {
    "msg", "args", "levelname", "levelno", "name", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
    "request_id", "survey_id",
}


@contextmanager
def request_context(survey_id: Optional[int] = None, request_id: Optional[str] = None) -> Iterator[str]:
    # Bind a request id (generated when missing) and survey id for the enclosed block.
    rid = request_id or uuid4().hex[:12]
    rid_token = _REQUEST_ID.set(rid)
    sid_token = _SURVEY_ID.set(survey_id)
    try:
        yield rid
    finally:
        _REQUEST_ID.reset(rid_token)
        _SURVEY_ID.reset(sid_token)


def current_request_id() -> Optional[str]:
    return _REQUEST_ID.get()


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _REQUEST_ID.get()
        record.survey_id = _SURVEY_ID.get()
        return True


class JsonFormatter(logging.Formatter):
    # One JSON object per line; extras passed through extra={} are kept when serializable.
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
            "survey_id": getattr(record, "survey_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED or key in payload:
                continue
            try:
                json.dumps(value, ensure_ascii=False)
                payload[key] = value
            except TypeError:
                payload[key] = str(value)

        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    # Configure root logging once.
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())

    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s request_id=%(request_id)s survey_id=%(survey_id)s %(message)s"
        ))

    root.addHandler(handler)
