"""In-memory task data source."""

from typing import Dict, Iterable, List, Optional, Set

from taskpilot.application.ports import TaskDataSourcePort
from taskpilot.domain.entities import Member, Project, Task


class InMemoryTaskDataSource(TaskDataSourcePort):
    """In-memory implementation of the task data source."""

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        projects: Iterable[Project] = (),
        members: Iterable[Member] = (),
    ):
        self._tasks: Dict[str, Task] = {}
        self._projects: Dict[str, Project] = {}
        self._members: Dict[str, Member] = {}
        self._workspace_members: Dict[str, Set[str]] = {}
        for project in projects:
            self.add_project(project)
        for member in members:
            self.add_member(member)
        for task in tasks:
            self.add_task(task)

    def add_task(self, task: Task) -> None:
        self._tasks[task.id] = task

    def add_project(self, project: Project) -> None:
        self._projects[project.id] = project

    def add_member(self, member: Member, workspace_id: Optional[str] = None) -> None:
        self._members[member.id] = member
        if workspace_id is not None:
            self._workspace_members.setdefault(workspace_id, set()).add(member.id)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def list_project_tasks(self, project_id: str) -> List[Task]:
        return [task for task in self._tasks.values() if task.project_id == project_id]

    def list_workspace_members(self, workspace_id: str) -> List[Member]:
        """Members explicitly added to the workspace, in insertion order."""
        ids = self._workspace_members.get(workspace_id, set())
        return [member for member in self._members.values() if member.id in ids]

    def get_member(self, member_id: str) -> Optional[Member]:
        return self._members.get(member_id)

    def list_assigned_tasks(self, member_id: str) -> List[Task]:
        return [task for task in self._tasks.values() if task.assignee_id == member_id]
