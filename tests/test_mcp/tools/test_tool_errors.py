"""Tests for error translation into tool results."""

import pytest

from confluence_sync.errors import (
    ConfluenceSyncError,
    ErrorKind,
    RateLimitError,
)
from confluence_sync.mcp.tools.errors import (
    build_error_response,
    corrective_action,
    translate_sync_error,
)


def test_build_error_response():
    result = build_error_response("network", "timed out", "Retry.")
    assert result.isError
    assert result.content[0].text == "Error (network): timed out\n\nAction: Retry."


@pytest.mark.parametrize("kind", list(ErrorKind))
def test_every_kind_has_action(kind):
    error = ConfluenceSyncError("failed")
    error.kind = kind
    action = corrective_action(error)
    assert isinstance(action, str) and action


def test_rate_limit_uses_retry_after():
    assert corrective_action(RateLimitError("slow down", retry_after=30)) == (
        "Wait 30 seconds before retrying."
    )


def test_rate_limit_without_hint():
    assert corrective_action(RateLimitError("slow down")) == (
        "Wait a minute before retrying."
    )


def test_translate():
    result = translate_sync_error(RateLimitError("429", retry_after=2.5))
    assert "Error (rate_limited): 429" in result.content[0].text
    assert "Wait 2.5 seconds" in result.content[0].text
