"""
Tests for structured logging processors.
"""

import structlog

from app.infrastructure.observability.logging import REDACTED, _add_trace_context, redact_secrets


def test_oauth_secrets_are_redacted():
    event = {
        "event": "Token refreshed",
        "access_token": "ya29.secret",
        "Refresh_Token": "1//secret",
        "user_id": "user-123",
        "token": None,
    }

    result = redact_secrets(None, "info", event)

    assert result["access_token"] == REDACTED
    assert result["Refresh_Token"] == REDACTED
    assert result["user_id"] == "user-123"
    assert result["token"] is None


def test_bound_request_context_is_merged():
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id="req-1", user_id="user-123")
    try:
        result = _add_trace_context(None, "info", {"event": "x", "user_id": "explicit"})
    finally:
        structlog.contextvars.clear_contextvars()

    assert result["request_id"] == "req-1"
    # Explicit fields win over bound context
    assert result["user_id"] == "explicit"
