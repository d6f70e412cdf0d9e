"""
Feature adapter base: prompt -> governed model call -> typed result.

Every AI feature follows the same path. Recoverable failures (timeout,
provider error, unparseable output) are replaced by a rule-based value of
the same type; structural failures (disabled, quota, missing entity)
propagate to the caller.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Generic, Literal, Optional, Type, TypeVar

from pydantic import BaseModel

from taskpilot.application.ports import CallRequest, TaskDataSourcePort
from taskpilot.application.services.orchestrator import ModelOrchestrator
from taskpilot.application.services.structured_output import (
    parse_structured,
    truncate,
)
from taskpilot.domain.entities import Project, Task
from taskpilot.domain.errors import AIError, AINotFoundError
from taskpilot.infra.config.logging_config import get_logger

C = TypeVar("C")
T = TypeVar("T", bound=BaseModel)


class FeatureResult(BaseModel, Generic[T]):
    """Typed payload plus where it came from."""

    data: T
    source: Literal["ai", "fallback"] = "ai"
    fallback_reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.source == "fallback"


class FeatureAdapter(ABC, Generic[C, T]):
    """Shared call/parse/fallback flow for one feature kind.

    Subclasses gather their context from the data source, then hand it to
    ``_execute``. They supply the prompts, the result model and the
    fallback rule for that context.
    """

    kind: str = "feature"
    result_model: Type[T]
    max_output_tokens: Optional[int] = None

    def __init__(
        self,
        orchestrator: ModelOrchestrator,
        data_source: TaskDataSourcePort,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.orchestrator = orchestrator
        self.data = data_source
        self.clock = clock
        self._log = get_logger(f"feature.{self.kind}")

    @abstractmethod
    def system_prompt(self, context: C) -> str:
        pass

    @abstractmethod
    def user_prompt(self, context: C) -> str:
        pass

    @abstractmethod
    def fallback(self, context: C) -> T:
        """Deterministic value of the result type built from the context."""
        pass

    def parse(self, text: str) -> T:
        return parse_structured(text, self.result_model, kind=self.kind)

    async def _execute(self, context: C, caller_id: Optional[str]) -> FeatureResult[T]:
        request = CallRequest(
            system_prompt=self.system_prompt(context),
            user_prompt=self.user_prompt(context),
            kind=self.kind,
            caller_id=caller_id,
            max_output_tokens=self.max_output_tokens,
        )
        try:
            text = await self.orchestrator.call_model(request)
            data = self.parse(text)
        except AIError as exc:
            if not exc.recoverable:
                raise
            self._log.warning(
                "feature.fallback",
                kind=self.kind,
                code=exc.code,
                error=exc.message,
                raw=truncate(str(exc.details.get("raw", ""))),
            )
            self.orchestrator.metrics.record_fallback(self.kind, exc.code)
            return FeatureResult[self.result_model](
                data=self.fallback(context),
                source="fallback",
                fallback_reason=exc.code,
            )

        return FeatureResult[self.result_model](data=data, source="ai")

    # ---------- data helpers ----------
    def _require_task(self, task_id: str) -> Task:
        task = self.data.get_task(task_id)
        if task is None:
            raise AINotFoundError("Task", task_id)
        return task

    def _require_project(self, project_id: str) -> Project:
        project = self.data.get_project(project_id)
        if project is None:
            raise AINotFoundError("Project", project_id)
        return project
