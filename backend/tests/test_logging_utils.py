import json
import logging

from incident_rag.logging_utils import (
    ContextFilter,
    JsonFormatter,
    PIIRedactingFilter,
    bind_request_context,
    bind_search_context,
    clear_context,
    current_context,
)


def make_record(msg, *args, **extra):
    record = logging.LogRecord("incident_rag.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_is_bound_and_cleared():
    clear_context()
    bind_request_context("req-1")
    bind_search_context("hybrid")
    assert current_context() == {"request_id": "req-1", "search_type": "hybrid"}

    clear_context()
    assert current_context() == {"request_id": "-", "search_type": "-"}


def test_context_filter_injects_fields():
    clear_context()
    bind_request_context("req-2")
    record = make_record("hello")

    assert ContextFilter().filter(record) is True
    assert record.request_id == "req-2"
    assert record.search_type == "-"
    assert record.error_code == ""
    clear_context()


def test_pii_is_redacted():
    record = make_record(
        "key sk-abcdefghijklmnop for %s",
        "ops@example.com",
    )
    PIIRedactingFilter().filter(record)
    message = record.getMessage()
    assert "sk-abcdefghijklmnop" not in message
    assert "ops@example.com" not in message
    assert message.count("[REDACTED]") == 2


def test_json_formatter_includes_extra_fields():
    clear_context()
    bind_search_context("vector")
    record = make_record("Search completed", results=3, duration_ms=12.5)
    ContextFilter().filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Search completed"
    assert payload["logger"] == "incident_rag.test"
    assert payload["context"]["search_type"] == "vector"
    assert payload["extra"] == {"results": 3, "duration_ms": 12.5}
    clear_context()
