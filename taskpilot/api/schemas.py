"""
Request and response schemas of the AI API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from typing_extensions import Literal

from taskpilot.application.prompts.task_prompts import ChatMessage


# ---------- ERRORS ----------
class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Error type or code")
    detail: str = Field(..., description="Human-readable error description")
    retryable: bool = Field(False, description="Whether the same request may be retried")
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ---------- REQUESTS ----------
class BreakdownRequest(BaseModel):
    """Options for breaking a task into subtasks."""

    max_subtasks: int = Field(8, ge=1, le=20)
    granularity: Literal["fine", "medium", "coarse"] = "medium"
    direction: Optional[str] = Field(
        None, max_length=500, description="Free-text direction for the breakdown"
    )


class PriorityRequest(BaseModel):
    """A task that does not exist yet, to be prioritised."""

    title: str = Field(..., min_length=1, max_length=200)
    project_id: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class TaskChatRequest(BaseModel):
    """A question about a task, with the conversation so far."""

    message: str = Field(..., min_length=1, max_length=2000)
    history: List[ChatMessage] = Field(default_factory=list, max_length=20)


# ---------- RESPONSES ----------
class AIStatusResponse(BaseModel):
    enabled: bool
    provider: str
    features: List[str]
    daily_limit: int
    used_today: int
