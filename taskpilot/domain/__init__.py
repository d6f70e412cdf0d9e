"""
Domain layer - Task-management entities and the AI error taxonomy.

This package holds the pure business types the AI layer reasons about,
independent of providers, HTTP or storage concerns.
"""

from .entities import Member, Project, Task, TaskPriority, TaskStatus
from .errors import (
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

__all__ = [
    "Member",
    "Project",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "AIError",
    "AIErrorKind",
    "AIDisabledError",
    "AIRateLimitedError",
    "AIQuotaExceededError",
    "AITimeoutError",
    "AIParseError",
    "AIProviderError",
    "AINotFoundError",
]
