"""
Unit tests for the AI error taxonomy.
"""

import pytest

from taskpilot.domain.errors import (
    AIDisabledError,
    AIError,
    AIErrorKind,
    AINotFoundError,
    AIParseError,
    AIProviderError,
    AIQuotaExceededError,
    AIRateLimitedError,
    AITimeoutError,
)


class TestAIErrorKind:
    @pytest.mark.parametrize(
        "error_cls, code, status, retryable",
        [
            (AIDisabledError, "AI_DISABLED", 503, False),
            (AIRateLimitedError, "AI_RATE_LIMITED", 429, False),
            (AIQuotaExceededError, "AI_QUOTA_EXCEEDED", 429, False),
            (AITimeoutError, "AI_TIMEOUT", 504, True),
            (AIParseError, "AI_PARSE_ERROR", 500, False),
            (AIProviderError, "AI_API_ERROR", 503, True),
        ],
    )
    def test_status_and_retry_hint(self, error_cls, code, status, retryable):
        error = error_cls("failure")

        assert error.code == code
        assert error.http_status == status
        assert error.retryable is retryable

    def test_only_transient_kinds_are_recoverable(self):
        recoverable = {kind for kind in AIErrorKind if kind.recoverable}

        assert recoverable == {
            AIErrorKind.TIMEOUT,
            AIErrorKind.PROVIDER_ERROR,
            AIErrorKind.PARSE_ERROR,
        }


class TestAIError:
    def test_details_are_read_only(self):
        error = AIParseError("bad output", details={"raw": "xx"})

        with pytest.raises(TypeError):
            error.details["raw"] = "changed"  # type: ignore[index]

    def test_to_dict(self):
        error = AITimeoutError("too slow", details={"timeout_seconds": 60})

        assert error.to_dict() == {
            "code": "AI_TIMEOUT",
            "message": "too slow",
            "retryable": True,
            "details": {"timeout_seconds": 60},
        }

    def test_kind_override(self):
        error = AIError("custom", kind=AIErrorKind.TIMEOUT)

        assert error.code == "AI_TIMEOUT"
        assert isinstance(error, Exception)

    def test_disabled_has_default_message(self):
        assert AIDisabledError().message == "AI features are disabled"

    def test_not_found(self):
        error = AINotFoundError("Task", "t-42")

        assert error.message == "Task t-42 not found"
        assert error.http_status == 404
        assert dict(error.details) == {"entity": "Task", "id": "t-42"}
        assert not error.recoverable
