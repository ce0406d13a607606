"""
test_logging_config.py: JSON log lines and request-id propagation.
"""

import json
import logging

from app.services.logging_config import JSONFormatter, RequestContextFilter, request_id_var


def _record(msg="priced", **extra):
    record = logging.LogRecord("cleanquote-pricing.engine", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """One JSON object per record; extras only when set."""

    def test_core_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "cleanquote-pricing.engine"
        assert entry["message"] == "priced"
        assert "quote_id" not in entry

    def test_extras_included(self):
        entry = json.loads(JSONFormatter().format(_record(quote_id="q-1", duration_ms=3.5)))
        assert entry["quote_id"] == "q-1"
        assert entry["duration_ms"] == 3.5


class TestRequestContextFilter:
    """Records pick up the request id from the logging context."""

    def test_context_id_stamped(self):
        token = request_id_var.set("req-42")
        try:
            record = _record()
            RequestContextFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-42"
        assert json.loads(JSONFormatter().format(record))["request_id"] == "req-42"

    def test_no_context(self):
        record = _record()
        RequestContextFilter().filter(record)
        assert record.request_id == "-"
        assert "request_id" not in json.loads(JSONFormatter().format(record))

    def test_explicit_id_kept(self):
        token = request_id_var.set("req-42")
        try:
            record = _record(request_id="req-7")
            RequestContextFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-7"
