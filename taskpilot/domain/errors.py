"""
AI error taxonomy.

Every call through the AI layer ends in exactly one of two terminal states:
raw text, or one of the errors below. The kind determines the HTTP status the
API layer answers with, whether a client may retry, and whether a feature
adapter is allowed to substitute a rule-based fallback.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class AIErrorKind(str, Enum):
    """Closed set of failure kinds; values are the stable wire codes."""

    DISABLED = "AI_DISABLED"
    RATE_LIMITED = "AI_RATE_LIMITED"
    QUOTA_EXCEEDED = "AI_QUOTA_EXCEEDED"
    TIMEOUT = "AI_TIMEOUT"
    PARSE_ERROR = "AI_PARSE_ERROR"
    PROVIDER_ERROR = "AI_API_ERROR"
    NOT_FOUND = "NOT_FOUND"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def retryable(self) -> bool:
        """Client may retry the same request as-is."""
        return self in (AIErrorKind.TIMEOUT, AIErrorKind.PROVIDER_ERROR)

    @property
    def recoverable(self) -> bool:
        """Feature adapters replace these with a fallback value."""
        return self in (
            AIErrorKind.TIMEOUT,
            AIErrorKind.PROVIDER_ERROR,
            AIErrorKind.PARSE_ERROR,
        )


_HTTP_STATUS = {
    AIErrorKind.DISABLED: 503,
    AIErrorKind.RATE_LIMITED: 429,
    AIErrorKind.QUOTA_EXCEEDED: 429,
    AIErrorKind.TIMEOUT: 504,
    AIErrorKind.PARSE_ERROR: 500,
    AIErrorKind.PROVIDER_ERROR: 503,
    AIErrorKind.NOT_FOUND: 404,
}


class AIError(Exception):
    """Base class for AI layer failures. Carries no partial result."""

    kind: AIErrorKind = AIErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
        kind: Optional[AIErrorKind] = None,
    ):
        if kind is not None:
            self.kind = kind
        self.message = message
        self.details: Mapping[str, Any] = MappingProxyType(dict(details or {}))
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def http_status(self) -> int:
        return self.kind.http_status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @property
    def recoverable(self) -> bool:
        return self.kind.recoverable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": dict(self.details),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class AIDisabledError(AIError):
    """Raised when the AI capability is administratively turned off."""

    kind = AIErrorKind.DISABLED

    def __init__(self, message: str = "AI features are disabled", **kwargs):
        super().__init__(message, **kwargs)


class AIRateLimitedError(AIError):
    """Raised when a caller exceeds the short-window call rate."""

    kind = AIErrorKind.RATE_LIMITED


class AIQuotaExceededError(AIError):
    """Raised when a caller has used up the daily call budget."""

    kind = AIErrorKind.QUOTA_EXCEEDED


class AITimeoutError(AIError):
    """Raised when a provider call does not finish before the deadline."""

    kind = AIErrorKind.TIMEOUT


class AIParseError(AIError):
    """Raised when model output cannot be turned into the expected structure."""

    kind = AIErrorKind.PARSE_ERROR


class AIProviderError(AIError):
    """Raised on transport, auth or protocol failures of the provider."""

    kind = AIErrorKind.PROVIDER_ERROR


class AINotFoundError(AIError):
    """Raised when a feature adapter cannot find the entity it was asked about."""

    kind = AIErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )
