"""
Task-management entities consumed by the AI feature adapters.

These are read-only snapshots handed over by the domain data source; the AI
layer never mutates them.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


def days_until(moment: datetime, now: datetime) -> int:
    delta = moment - now
    # ceil on the day boundary: due later today counts as 1 day left
    return delta.days + (1 if delta.seconds or delta.microseconds else 0)


class TaskStatus(str, Enum):
    """Lifecycle states of a task."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    BLOCKED = "blocked"
    DONE = "done"

    def is_open(self) -> bool:
        """Business rule: anything not done still needs work."""
        return self is not TaskStatus.DONE


class TaskPriority(str, Enum):
    """Task priority levels, most urgent first."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def is_pressing(self) -> bool:
        return self in (TaskPriority.URGENT, TaskPriority.HIGH)


@dataclass
class Task:
    id: str
    project_id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def days_until_due(self, now: datetime) -> Optional[int]:
        """Whole days until the due date, negative once overdue."""
        if self.due_date is None:
            return None
        return days_until(self.due_date, now)

    def is_overdue(self, now: datetime) -> bool:
        return (
            self.due_date is not None
            and self.due_date < now
            and self.status.is_open()
        )


@dataclass
class Project:
    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None


@dataclass
class Member:
    id: str
    name: str
    role: str = "member"
