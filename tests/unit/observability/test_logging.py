"""Tests for structured logging."""

import json
from io import StringIO

import pytest
import structlog

from taskbrain.observability.logging import PIIRedactor, get_logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_json_format(self) -> None:
        """Should configure JSON format for production."""
        setup_logging(level="INFO", format="json", redact_pii=False)
        get_logger("test").info("test_message")

    def test_setup_console_format(self) -> None:
        """Should configure console format for development."""
        setup_logging(level="DEBUG", format="console", redact_pii=True)
        get_logger("test").debug("test_message", api_key="abc")


class TestPIIRedactor:
    """Tests for secret and PII redaction."""

    @pytest.fixture
    def redactor(self) -> PIIRedactor:
        return PIIRedactor()

    def test_redacts_sensitive_keys(self, redactor: PIIRedactor) -> None:
        event_dict = {
            "signature": "abc123",
            "webhook_secret": "s3cret",
            "Authorization": "Bearer xyz",
            "task_id": 7,
        }
        result = redactor(None, None, event_dict)  # type: ignore[arg-type]

        assert result["signature"] == "[REDACTED]"
        assert result["webhook_secret"] == "[REDACTED]"
        assert result["Authorization"] == "[REDACTED]"
        assert result["task_id"] == 7

    def test_masks_email_in_string_values(self, redactor: PIIRedactor) -> None:
        result = redactor(None, None, {"content": "Email jane@example.com the report"})  # type: ignore[arg-type]

        assert "jane@example.com" not in result["content"]
        assert "[EMAIL]" in result["content"]

    def test_handles_nested_dicts_and_lists(self, redactor: PIIRedactor) -> None:
        event_dict = {
            "headers": {"api_key": "k", "accept": "json"},
            "attendees": ["a@example.com", "Team sync"],
        }
        result = redactor(None, None, event_dict)  # type: ignore[arg-type]

        assert result["headers"] == {"api_key": "[REDACTED]", "accept": "json"}
        assert result["attendees"] == ["[EMAIL]", "Team sync"]

    def test_preserves_non_sensitive_data(self, redactor: PIIRedactor) -> None:
        event_dict = {"event": "task_created", "task_id": 3, "source": "manual"}
        assert redactor(None, None, event_dict) == event_dict  # type: ignore[arg-type]


class TestContextBinding:
    """Bound contextvars appear in JSON output."""

    def test_bound_request_id_is_rendered(self) -> None:
        output = StringIO()
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                PIIRedactor(),
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(output),
            cache_logger_on_first_use=False,
        )
        structlog.contextvars.bind_contextvars(request_id="req-1")
        try:
            structlog.get_logger("test").info("webhook_received", signature="deadbeef")
        finally:
            structlog.contextvars.clear_contextvars()

        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "webhook_received"
        assert parsed["request_id"] == "req-1"
        assert parsed["signature"] == "[REDACTED]"
