"""Tests for Courier structured logging."""

import asyncio
import logging

import pytest
import structlog

from courier.logging import (
    REDACTED,
    configure_logging,
    get_logger,
    log_context,
    redact_secrets,
)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_with_defaults(self):
        """Should configure with INFO level and JSON format by default."""
        configure_logging()
        logger = get_logger("test")
        logger.info("test_message", endpoint_id="whk_1")

    def test_configure_with_text_format(self):
        """Should accept text format for development."""
        configure_logging(level="DEBUG", format="text")
        logger = get_logger("test")
        logger.debug("text_format_message")

    def test_unknown_level_falls_back(self):
        """Unknown level names should not raise."""
        configure_logging(level="NOT_A_LEVEL")
        get_logger("test").info("still_works")

    def test_http_client_loggers_are_quieted(self):
        configure_logging(level="DEBUG", http_level="ERROR")
        assert logging.getLogger("httpx").level == logging.ERROR
        assert logging.getLogger("httpcore").level == logging.ERROR


class TestRedactSecrets:
    """Tests for the redaction processor."""

    def test_masks_top_level_keys(self):
        event_dict = {"event": "endpoint_created", "secret": "s3cr3t", "url": "https://x"}
        redacted = redact_secrets(None, "info", event_dict)
        assert redacted["secret"] == REDACTED
        assert redacted["url"] == "https://x"

    def test_masks_signature_and_auth_headers(self):
        event_dict = {
            "event": "request_sent",
            "headers": {
                "X-Webhook-Signature": "abc123",
                "Authorization": "Bearer token",
                "X-Webhook-Event": "message.sent",
            },
        }
        headers = redact_secrets(None, "info", event_dict)["headers"]
        assert headers["X-Webhook-Signature"] == REDACTED
        assert headers["Authorization"] == REDACTED
        assert headers["X-Webhook-Event"] == "message.sent"


class TestLogContext:
    """Tests for log_context."""

    def test_binds_only_inside_block(self):
        with log_context(endpoint_id="whk_1", attempt=2):
            assert structlog.contextvars.get_contextvars() == {
                "endpoint_id": "whk_1",
                "attempt": 2,
            }
        assert "endpoint_id" not in structlog.contextvars.get_contextvars()

    def test_nested_blocks_restore_outer_values(self):
        with log_context(owner_id="tenant_1"):
            with log_context(owner_id="tenant_2", attempt=1):
                assert structlog.contextvars.get_contextvars()["owner_id"] == "tenant_2"
            assert structlog.contextvars.get_contextvars() == {"owner_id": "tenant_1"}

    @pytest.mark.asyncio
    async def test_concurrent_tasks_are_isolated(self):
        seen: dict[str, object] = {}

        async def attempt(endpoint_id: str) -> None:
            with log_context(endpoint_id=endpoint_id):
                await asyncio.sleep(0)
                seen[endpoint_id] = structlog.contextvars.get_contextvars()["endpoint_id"]

        await asyncio.gather(attempt("whk_a"), attempt("whk_b"))
        assert seen == {"whk_a": "whk_a", "whk_b": "whk_b"}
