"""
Application ports - abstract interfaces for external dependencies.

These interfaces define the contracts that the AI layer needs from the
outside world (the model provider, the metrics sink, the domain data
source), following the Dependency Inversion Principle.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from taskpilot.domain.entities import Member, Project, Task


@dataclass(frozen=True)
class CallRequest:
    """One model invocation as built by a feature adapter."""

    system_prompt: str
    user_prompt: str
    kind: str
    caller_id: Optional[str] = None
    max_output_tokens: Optional[int] = None


@dataclass(frozen=True)
class CallOutcome:
    """Observability record emitted once per attempted provider call."""

    kind: str
    duration_ms: int
    success: bool
    error_code: Optional[str] = None


class ProviderPort(ABC):
    """Abstract text-completion provider."""

    name: str = "provider"

    @abstractmethod
    def is_enabled(self) -> bool:
        """Whether calls may be attempted at all."""
        pass

    @abstractmethod
    async def complete(self, request: CallRequest) -> str:
        """Return the raw completion text for a request."""
        pass

    def health(self) -> Dict[str, Any]:
        """Provider health consumed by the status endpoint."""
        return {"enabled": self.is_enabled(), "name": self.name}


class MetricsSinkPort(ABC):
    """Fire-and-forget consumer of call outcomes."""

    @abstractmethod
    def record(self, outcome: CallOutcome) -> None:
        """Accept an outcome. Must never block or raise."""
        pass

    def record_fallback(self, kind: str, reason: str) -> None:
        """Count a feature answered by its rule-based fallback."""
        pass


class TaskDataSourcePort(ABC):
    """Read-only access to the task-management entities prompts are built from."""

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        pass

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]:
        """Get project by ID."""
        pass

    @abstractmethod
    def list_project_tasks(self, project_id: str) -> List[Task]:
        """Get all tasks of a project."""
        pass

    @abstractmethod
    def list_workspace_members(self, workspace_id: str) -> List[Member]:
        """Get all members of a workspace."""
        pass

    @abstractmethod
    def get_member(self, member_id: str) -> Optional[Member]:
        """Get a member by user ID."""
        pass

    @abstractmethod
    def list_assigned_tasks(self, member_id: str) -> List[Task]:
        """Get every task assigned to a member, across projects."""
        pass

    def count_open_tasks(self, member_id: str) -> int:
        """Number of assigned tasks still to do or in progress."""
        return sum(
            1
            for task in self.list_assigned_tasks(member_id)
            if task.status.value in ("todo", "in_progress")
        )
