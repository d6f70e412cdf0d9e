"""
Project-level prompts and structured output models.

Progress estimation, project rewrite and staffing, review of the task list,
generation of follow-up tasks and free-text next-step advice.
"""

import json
from dataclasses import dataclass
from functools import partial
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, BeforeValidator, Field
from typing_extensions import Annotated

from taskpilot.application.services.coercion import (
    HealthStatus,
    Hours,
    Level,
    NonNegativeInt,
    Percentage,
    Priority,
    Score,
    Text,
    TextList,
    as_list,
    pick,
)
from taskpilot.domain.entities import Project, Task

SUGGESTION_TYPES = (
    "title",
    "description",
    "priority",
    "deadline",
    "merge",
    "split",
    "dependency",
)
ADJUSTMENT_ACTIONS = ("set_priority", "set_deadline", "update_status")

SuggestionType = Annotated[
    Literal["title", "description", "priority", "deadline", "merge", "split", "dependency"],
    BeforeValidator(partial(pick, allowed=SUGGESTION_TYPES, default="description")),
]
AdjustmentAction = Annotated[
    Literal["set_priority", "set_deadline", "update_status"],
    BeforeValidator(partial(pick, allowed=ADJUSTMENT_ACTIONS, default="set_priority")),
]



def _at_most_three(value) -> list:
    return as_list(value)[:3]


# ---------- STRUCTURED OUTPUT MODELS ----------
class Milestone(BaseModel):
    name: Text = ""
    estimated_date: Text = ""
    confidence: Percentage = 50
    blockers: TextList = Field(default_factory=list)


class ProgressEstimation(BaseModel):
    """Completion forecast for a project."""

    current_progress: Percentage = 0
    estimated_completion_date: Text = Field(default="", description="ISO date")
    confidence: Percentage = 50
    velocity: NonNegativeInt = Field(default=0, description="Tasks completed per week")
    milestones: Annotated[List[Milestone], BeforeValidator(as_list)] = Field(
        default_factory=list
    )
    risks: TextList = Field(default_factory=list)
    recommendations: TextList = Field(default_factory=list)


class LeaderProfile(BaseModel):
    role: Text = ""
    skills: TextList = Field(default_factory=list)
    reason: Text = ""


class TeamRole(BaseModel):
    role: Text = ""
    count: NonNegativeInt = 1
    skills: TextList = Field(default_factory=list)
    responsibilities: Text = ""


class ProjectRewrite(BaseModel):
    """Clearer project title and description plus a staffing proposal."""

    optimized_title: Text
    optimized_description: Text = ""
    suggested_leader: LeaderProfile = Field(default_factory=LeaderProfile)
    suggested_team: Annotated[List[TeamRole], BeforeValidator(as_list)] = Field(
        default_factory=list
    )
    suggestions: TextList = Field(default_factory=list)
    reason: Text = ""


class TaskSuggestion(BaseModel):
    """One improvement that can be applied to an existing task."""

    task_id: Text = ""
    task_title: Text = ""
    type: SuggestionType = "description"
    severity: Level = "medium"
    suggestion: Text = ""
    reason: Text = ""
    new_title: Optional[str] = None
    new_description: Optional[str] = None
    new_priority: Optional[str] = None


class TaskListReview(BaseModel):
    """Health review of every task in a project."""

    summary: Text = ""
    total_issues: NonNegativeInt = 0
    overall_health: Score = 50
    health_status: HealthStatus = "needs_attention"
    suggestions: Annotated[List[TaskSuggestion], BeforeValidator(as_list)] = Field(
        default_factory=list
    )
    recommendations: TextList = Field(default_factory=list)


class SuggestedTask(BaseModel):
    title: Text
    description: Text = ""
    priority: Priority = "medium"
    estimated_hours: Hours = 1.0
    reason: Text = ""


class TaskAdjustment(BaseModel):
    task_id: Text = ""
    task_title: Text = ""
    action: AdjustmentAction = "set_priority"
    value: Text = ""
    reason: Text = ""


class NextTasksPlan(BaseModel):
    """New tasks to create next, plus tweaks to the existing ones."""

    analysis: Text = ""
    suggested_tasks: Annotated[List[SuggestedTask], BeforeValidator(_at_most_three)] = Field(
        default_factory=list
    )
    optimizations: Annotated[List[TaskAdjustment], BeforeValidator(_at_most_three)] = Field(
        default_factory=list
    )


class NextStepAdvice(BaseModel):
    """Free-text advice; the model answers in prose, not JSON."""

    suggestion: str


# ---------- PROMPT INPUTS ----------
@dataclass
class ProjectSnapshot:
    """Status counts of a project's tasks at a point in time."""

    project: Project
    tasks: List[Task]
    total: int
    todo: int
    in_progress: int
    review: int
    blocked: int
    done: int
    done_last_week: int
    overdue: int

    @property
    def completion(self) -> int:
        return round(self.done * 100 / self.total) if self.total else 0


def task_digest(tasks: Sequence[Task]) -> str:
    """One bullet per task: status, title, priority and due date."""
    lines = []
    for task in tasks:
        due = task.due_date.date().isoformat() if task.due_date else "none"
        lines.append(
            f"- [{task.status.value}] {task.title} ({task.id}, "
            f"priority: {task.priority.value}, due: {due})"
        )
    return "\n".join(lines)


# ---------- PROMPT TEMPLATES ----------
class ProjectPrompts:
    """Centralized prompt templates for project-level features."""

    @staticmethod
    def progress_system_prompt() -> str:
        return """
You are a delivery forecaster. Estimate when the project will be done.

Return only JSON:
{"current_progress":45,"estimated_completion_date":"2024-02-15","confidence":75,
"velocity":5,"milestones":[{"name":"","estimated_date":"","confidence":80,"blockers":[]}],
"risks":[],"recommendations":[]}
"""

    @staticmethod
    def progress_user_prompt(snapshot: ProjectSnapshot) -> str:
        return f"""
Forecast the project: {snapshot.project.name}
Total tasks: {snapshot.total}, done: {snapshot.done}, in progress: {snapshot.in_progress}, in review: {snapshot.review}, blocked: {snapshot.blocked}
Completed in the last 7 days: {snapshot.done_last_week}
"""

    @staticmethod
    def rewrite_system_prompt() -> str:
        return """
You are a project-management consultant. Improve the project's framing and
propose who should run it.

Return only JSON (no markdown fences):
{"optimized_title":"short, professional, states the core value",
"optimized_description":"background, goals, expected outcome, key milestones",
"suggested_leader":{"role":"","skills":[],"reason":""},
"suggested_team":[{"role":"","count":2,"skills":[],"responsibilities":""}],
"suggestions":[],"reason":""}

Rules:
1. Infer the team composition from the project's tasks
2. Staffing suggestions must be concrete and actionable
"""

    @staticmethod
    def rewrite_user_prompt(project: Project, tasks: Sequence[Task]) -> str:
        return f"""
Improve this project.

Name: {project.name}
Description: {project.description or "(none)"}
Current tasks ({len(tasks)}):
{task_digest(tasks) or "(no tasks yet)"}
"""

    @staticmethod
    def review_system_prompt() -> str:
        return """
You are a project-planning reviewer. Inspect the task list and point out
what should change. Every suggestion must reference a task_id from the list
so it can be applied directly.

Return only JSON:
{"summary":"one sentence on the health of the plan","total_issues":3,
"overall_health":75,"health_status":"healthy|needs_attention|at_risk|critical",
"suggestions":[{"task_id":"","task_title":"",
"type":"title|description|priority|deadline|merge|split|dependency",
"severity":"high|medium|low","suggestion":"","reason":"",
"new_title":null,"new_description":null,"new_priority":null}],
"recommendations":[]}
"""

    @staticmethod
    def review_user_prompt(project: Project, tasks: Sequence[Task]) -> str:
        listing = [
            {
                "id": task.id,
                "title": task.title,
                "description": task.description or "",
                "status": task.status.value,
                "priority": task.priority.value,
                "due_date": task.due_date.date().isoformat() if task.due_date else None,
                "assignee_id": task.assignee_id,
            }
            for task in tasks
        ]
        return f"""
Review the tasks of this project.

Project: {project.name}
Description: {project.description or "none"}
Task count: {len(tasks)}

Tasks:
{json.dumps(listing, indent=2, ensure_ascii=False)}

Check priorities, missing due dates, tasks that could be merged or split,
unclear descriptions and hidden dependencies.
"""

    @staticmethod
    def next_tasks_system_prompt() -> str:
        return """
You are a project-management expert. Look at the existing tasks and propose
the next concrete tasks to create.

Return only JSON (no markdown fences):
{"analysis":"current state and direction",
"suggested_tasks":[{"title":"","description":"goal, steps, acceptance criteria",
"priority":"urgent|high|medium|low","estimated_hours":8,"reason":""}],
"optimizations":[{"task_id":"","task_title":"",
"action":"set_priority|set_deadline|update_status","value":"","reason":""}]}

Suggest at most 3 new tasks and at most 3 optimizations.
"""

    @staticmethod
    def next_tasks_user_prompt(project: Project, tasks: Sequence[Task]) -> str:
        return f"""
Project: {project.name}
Description: {project.description or "none"}

Existing tasks ({len(tasks)}):
{task_digest(tasks) or "no tasks yet"}

What concrete task should be created next, and what should change in the
existing ones?
"""

    @staticmethod
    def next_step_system_prompt() -> str:
        return """
You are a project-management advisor. Read the project's task status and
give concrete next steps: which tasks to focus on and why, the recommended
order of work, and any risks worth flagging.

Be friendly and practical. Answer in plain text, not JSON.
"""

    @staticmethod
    def next_step_user_prompt(snapshot: ProjectSnapshot) -> str:
        urgent = sum(1 for t in snapshot.tasks if t.priority.value == "urgent")
        high = sum(1 for t in snapshot.tasks if t.priority.value == "high")
        return f"""
Advise on the next steps for the project: {snapshot.project.name}

Totals: {snapshot.total} tasks, {snapshot.todo} to do, {snapshot.in_progress} in progress, {snapshot.review} in review, {snapshot.overdue} overdue
Urgent: {urgent}, high priority: {high}

Tasks:
{task_digest(snapshot.tasks) or "no tasks yet"}
"""
