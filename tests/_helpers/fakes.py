"""Fakes shared by the unit and API tests."""

import asyncio
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from taskpilot.application.ports import (
    CallOutcome,
    CallRequest,
    MetricsSinkPort,
    ProviderPort,
)
from taskpilot.domain.entities import Member, Project, Task, TaskPriority, TaskStatus
from taskpilot.infra.data.memory_data_source import InMemoryTaskDataSource

NOW = datetime(2024, 3, 15, 10, 0, 0)


class FakeClock:
    """Settable clock for the governor and the feature adapters."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubProvider(ProviderPort):
    """Scriptable provider that also records how many calls overlap."""

    name = "stub"

    def __init__(
        self,
        reply: str = "{}",
        *,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        enabled: bool = True,
    ):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.enabled = enabled
        self.calls: List[CallRequest] = []
        self.active = 0
        self.max_active = 0

    def is_enabled(self) -> bool:
        return self.enabled

    async def complete(self, request: CallRequest) -> str:
        self.calls.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.reply
        finally:
            self.active -= 1


class RecordingSink(MetricsSinkPort):
    def __init__(self):
        self.outcomes: List[CallOutcome] = []
        self.fallbacks: List[Tuple[str, str]] = []

    def record(self, outcome: CallOutcome) -> None:
        self.outcomes.append(outcome)

    def record_fallback(self, kind: str, reason: str) -> None:
        self.fallbacks.append((kind, reason))


def build_sample_data() -> InMemoryTaskDataSource:
    """Website relaunch project plus a few edge-case projects."""
    data = InMemoryTaskDataSource()
    for member in (
        Member(id="u1", name="Alice", role="developer"),
        Member(id="u2", name="Bob"),
        Member(id="u3", name="Carol"),
    ):
        data.add_member(member, workspace_id="w1")

    data.add_project(
        Project(
            id="p1",
            workspace_id="w1",
            name="Website relaunch",
            description="Relaunch the marketing website",
        )
    )
    data.add_project(Project(id="p2", workspace_id="w1", name="Empty project"))
    data.add_project(Project(id="p3", workspace_id="w1", name="Finished project"))
    data.add_project(Project(id="p4", workspace_id="w1", name="Busy project"))

    data.add_task(
        Task(
            id="t1",
            project_id="p1",
            title="Write launch report",
            status=TaskStatus.TODO,
            priority=TaskPriority.HIGH,
            assignee_id="u1",
            due_date=NOW - timedelta(days=3),
        )
    )
    data.add_task(
        Task(
            id="t2",
            project_id="p1",
            title="Fix",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.MEDIUM,
            description="short",
            assignee_id="u1",
            due_date=NOW + timedelta(days=1),
        )
    )
    data.add_task(
        Task(
            id="t3",
            project_id="p1",
            title="Design landing page",
            status=TaskStatus.BLOCKED,
            priority=TaskPriority.URGENT,
            description="Create the new landing page layout in Figma",
            assignee_id="u2",
        )
    )
    data.add_task(
        Task(
            id="t4",
            project_id="p1",
            title="Set up analytics",
            status=TaskStatus.DONE,
            priority=TaskPriority.LOW,
            description="Install analytics and verify events arrive",
            assignee_id="u2",
            updated_at=NOW - timedelta(days=2),
        )
    )
    data.add_task(
        Task(id="t5", project_id="p3", title="Ship it", status=TaskStatus.DONE)
    )
    for index in range(4):
        data.add_task(
            Task(
                id=f"b{index}",
                project_id="p4",
                title=f"Parallel work {index}",
                status=TaskStatus.IN_PROGRESS,
            )
        )
    return data
