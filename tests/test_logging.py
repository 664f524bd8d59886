"""Tests for Alert24 structured logging."""

import json
import logging

import pytest
import structlog

from alert24.logging import (
    REDACTED,
    bind_context,
    clear_context,
    configure_logging,
    dispatch_context,
    get_logger,
    redact_secrets,
    redact_text,
    unbind_context,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == "alert24"]:
        root.removeHandler(handler)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_with_defaults(self):
        """Should configure with INFO level and JSON format by default."""
        configure_logging()
        get_logger("test").info("test message")

    def test_configure_with_text_format(self):
        configure_logging(level="DEBUG", format="text")
        get_logger("test").debug("text format message")

    def test_reconfigure_replaces_handler(self):
        """Repeated calls keep a single Alert24 handler on the root logger."""
        configure_logging(level="INFO")
        configure_logging(level="WARNING")

        names = [h.get_name() for h in logging.getLogger().handlers]
        assert names.count("alert24") == 1
        assert logging.getLogger().level == logging.WARNING

    def test_stdlib_records_are_rendered(self, capsys: pytest.CaptureFixture[str]):
        """Module loggers pass through the shared processors."""
        configure_logging(level="INFO", format="json")
        with dispatch_context(organization_id="org_1"):
            logging.getLogger("alert24.webhooks.delivery").info("sent with token=abc123")

        out = capsys.readouterr().out
        assert '"organization_id": "org_1"' in out
        assert "abc123" not in out


class TestRedaction:
    """Tests for credential masking."""

    def test_sensitive_keys(self):
        event = redact_secrets(
            None,
            "info",
            {
                "event": "delivering",
                "secret": "s3cret",
                "headers": {"Authorization": "Bearer abc", "Content-Type": "application/json"},
                "destination_id": "whk_1",
            },
        )
        assert event["secret"] == REDACTED
        assert event["headers"]["Authorization"] == REDACTED
        assert event["headers"]["Content-Type"] == "application/json"
        assert event["destination_id"] == "whk_1"

    @pytest.mark.parametrize(
        "text",
        [
            "failed with Bearer abc.def",
            "retrying url?api_key=xyz",
            "Basic dXNlcjpwYXNz rejected",
        ],
    )
    def test_credentials_in_text(self, text):
        assert REDACTED in redact_text(text)

    def test_plain_text_untouched(self):
        assert redact_text("HTTP 500: Internal Server Error") == "HTTP 500: Internal Server Error"


class TestContextBinding:
    """Tests for context variable binding."""

    def test_bind_and_unbind(self):
        bind_context(organization_id="org_1", event_type="incident.created")
        unbind_context("event_type")
        assert structlog.contextvars.get_contextvars() == {"organization_id": "org_1"}

    def test_dispatch_context_restores_outer_values(self):
        bind_context(event_type="outer")
        with dispatch_context(event_type="incident.created", organization_id=None):
            assert structlog.contextvars.get_contextvars() == {"event_type": "incident.created"}
        assert structlog.contextvars.get_contextvars() == {"event_type": "outer"}

    def test_dispatch_context_rejects_reserved_keys(self):
        """A bound "event" would be shadowed by the log message."""
        with pytest.raises(ValueError, match="event"):
            with dispatch_context(event="incident.created"):
                pass

    def test_bound_context_and_redaction_rendered(self, capsys: pytest.CaptureFixture[str]):
        """Bound keys and masked credentials reach the rendered JSON line."""
        configure_logging(level="INFO", format="json")
        with dispatch_context(organization_id="org_1", event_type="incident.created"):
            logging.getLogger("alert24.webhooks.delivery").warning(
                "Delivery rejected for Bearer xyz"
            )
            get_logger("alert24.test").info("structured", secret="s3cret")

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]
        stdlib_line, structlog_line = lines[-2:]
        assert stdlib_line["event"] == "Delivery rejected for [REDACTED]"
        assert stdlib_line["organization_id"] == "org_1"
        assert stdlib_line["event_type"] == "incident.created"
        assert structlog_line["event_type"] == "incident.created"
        assert structlog_line["secret"] == REDACTED
        assert "xyz" not in str(lines)

    def test_log_levels(self):
        configure_logging(level="DEBUG")
        logger = get_logger("test")
        logger.debug("debug")
        logger.info("info")
        logger.warning("warning")
        logger.error("error")
