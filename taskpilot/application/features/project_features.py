"""
Project-level AI features.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from taskpilot.application.features.base import FeatureAdapter, FeatureResult
from taskpilot.application.prompts.project_prompts import (
    LeaderProfile,
    NextStepAdvice,
    NextTasksPlan,
    ProgressEstimation,
    ProjectPrompts,
    ProjectRewrite,
    ProjectSnapshot,
    SuggestedTask,
    TaskListReview,
    TaskSuggestion,
    TeamRole,
)
from taskpilot.application.services.structured_output import strip_code_fences
from taskpilot.domain.entities import Project, Task, TaskStatus
from taskpilot.domain.errors import AIParseError

PROJECT_DESCRIPTION_TEMPLATE = (
    "## Background\n\n## Goals\n\n## Expected outcome\n\n## Key milestones\n"
)


def health_status(score: int) -> str:
    if score >= 80:
        return "healthy"
    if score >= 60:
        return "needs_attention"
    if score >= 40:
        return "at_risk"
    return "critical"


class ProjectFeature(FeatureAdapter):
    """Adapter whose context is a status snapshot of one project."""

    def _snapshot(self, project: Project) -> ProjectSnapshot:
        now = self.clock()
        tasks = self.data.list_project_tasks(project.id)
        week_ago = now - timedelta(days=7)

        def count(status: TaskStatus) -> int:
            return sum(1 for task in tasks if task.status is status)

        return ProjectSnapshot(
            project=project,
            tasks=tasks,
            total=len(tasks),
            todo=count(TaskStatus.TODO),
            in_progress=count(TaskStatus.IN_PROGRESS),
            review=count(TaskStatus.REVIEW),
            blocked=count(TaskStatus.BLOCKED),
            done=count(TaskStatus.DONE),
            done_last_week=sum(
                1
                for task in tasks
                if task.status is TaskStatus.DONE
                and task.updated_at is not None
                and task.updated_at >= week_ago
            ),
            overdue=sum(1 for task in tasks if task.is_overdue(now)),
        )

    async def _run_for_project(
        self, project_id: str, caller_id: Optional[str]
    ) -> FeatureResult:
        project = self._require_project(project_id)
        return await self._execute(self._snapshot(project), caller_id)


# ---------- progress ----------
class ProgressEstimationFeature(ProjectFeature):
    kind = "progress_estimation"
    result_model = ProgressEstimation

    async def estimate(
        self, project_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[ProgressEstimation]:
        return await self._run_for_project(project_id, caller_id)

    def system_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.progress_system_prompt()

    def user_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.progress_user_prompt(context)

    def fallback(self, context: ProjectSnapshot) -> ProgressEstimation:
        remaining = context.total - context.done
        velocity = context.done_last_week
        completion_date = ""
        if remaining == 0:
            completion_date = self.clock().date().isoformat()
        elif velocity:
            weeks = math.ceil(remaining / velocity)
            completion_date = (self.clock() + timedelta(weeks=weeks)).date().isoformat()

        risks = []
        if context.blocked:
            risks.append(f"{context.blocked} blocked tasks")
        if context.overdue:
            risks.append(f"{context.overdue} overdue tasks")
        if remaining and not velocity:
            risks.append("Nothing was completed in the last 7 days")

        recommendations = []
        if context.blocked:
            recommendations.append("Clear the blocked tasks first")
        if context.in_progress > 3:
            recommendations.append("Limit work in progress and finish started tasks")
        return ProgressEstimation(
            current_progress=context.completion,
            estimated_completion_date=completion_date,
            confidence=40 if velocity else 20,
            velocity=velocity,
            risks=risks,
            recommendations=recommendations,
        )


# ---------- project rewrite ----------
class ProjectOptimizationFeature(ProjectFeature):
    kind = "project_optimization"
    result_model = ProjectRewrite
    max_output_tokens = 3000

    async def optimize(
        self, project_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[ProjectRewrite]:
        return await self._run_for_project(project_id, caller_id)

    def system_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.rewrite_system_prompt()

    def user_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.rewrite_user_prompt(context.project, context.tasks)

    def fallback(self, context: ProjectSnapshot) -> ProjectRewrite:
        project = context.project
        return ProjectRewrite(
            optimized_title=project.name,
            optimized_description=project.description or PROJECT_DESCRIPTION_TEMPLATE,
            suggested_leader=LeaderProfile(
                role="Project manager",
                skills=["project management", "communication", "risk control"],
                reason="An experienced project manager should coordinate the work",
            ),
            suggested_team=[
                TeamRole(
                    role="Software engineer",
                    count=2,
                    skills=["programming", "implementation"],
                    responsibilities="Build the core functionality",
                )
            ],
            suggestions=["A basic staffing proposal was generated"],
            reason="AI analysis is unavailable, a rule-based proposal was produced",
        )


# ---------- task list review ----------
class ProjectTaskReviewFeature(ProjectFeature):
    kind = "task_optimization"
    result_model = TaskListReview
    max_output_tokens = 2000

    async def review(
        self, project_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[TaskListReview]:
        return await self._run_for_project(project_id, caller_id)

    def system_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.review_system_prompt()

    def user_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.review_user_prompt(context.project, context.tasks)

    def fallback(self, context: ProjectSnapshot) -> TaskListReview:
        now = self.clock()
        suggestions: List[TaskSuggestion] = []
        health = 100
        for task in context.tasks:
            if task.due_date is None and task.priority.is_pressing():
                suggestions.append(
                    TaskSuggestion(
                        task_id=task.id,
                        task_title=task.title,
                        type="deadline",
                        severity="high",
                        suggestion="Set a due date for this high-priority task",
                        reason="High-priority work without a deadline is hard to track",
                    )
                )
                health -= 5
            if len(task.description or "") < 10:
                suggestions.append(
                    TaskSuggestion(
                        task_id=task.id,
                        task_title=task.title,
                        type="description",
                        severity="low",
                        suggestion="Add a more detailed description",
                        reason="A clear description helps the team understand the work",
                    )
                )
                health -= 2
            if task.is_overdue(now):
                suggestions.append(
                    TaskSuggestion(
                        task_id=task.id,
                        task_title=task.title,
                        type="deadline",
                        severity="high",
                        suggestion="Overdue: re-plan the due date or finish it first",
                        reason="Overdue open tasks need immediate attention",
                    )
                )
                health -= 10

        health = max(0, health)
        return TaskListReview(
            summary=(
                f"Found {len(suggestions)} items worth improving"
                if suggestions
                else "The task list looks healthy"
            ),
            total_issues=len(suggestions),
            overall_health=health,
            health_status=health_status(health),
            suggestions=suggestions,
            recommendations=[
                "Review task progress regularly",
                "Give every task a clear description and a due date",
                "Handle urgent and high-priority tasks first",
            ],
        )


# ---------- next tasks ----------
class NextTasksFeature(ProjectFeature):
    kind = "next_task_generation"
    result_model = NextTasksPlan
    max_output_tokens = 1500

    async def generate(
        self, project_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[NextTasksPlan]:
        return await self._run_for_project(project_id, caller_id)

    def system_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.next_tasks_system_prompt()

    def user_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.next_tasks_user_prompt(context.project, context.tasks)

    def fallback(self, context: ProjectSnapshot) -> NextTasksPlan:
        suggested: List[SuggestedTask] = []
        if context.total == 0:
            suggested.append(
                SuggestedTask(
                    title="Project kickoff and requirements analysis",
                    description=(
                        "1. Define goals and scope\n2. Collect requirements\n"
                        "3. Draft an initial plan"
                    ),
                    priority="high",
                    estimated_hours=4,
                    reason="The project has just started and needs planning",
                )
            )
        elif context.done == context.total:
            suggested.append(
                SuggestedTask(
                    title="Project retrospective",
                    description=(
                        "1. Summarise the results\n2. Record lessons learned\n"
                        "3. Archive the documentation"
                    ),
                    priority="medium",
                    estimated_hours=2,
                    reason="Every task is done, time to wrap up",
                )
            )
        if context.in_progress > 3:
            suggested.append(
                SuggestedTask(
                    title="Re-evaluate task priorities",
                    description=(
                        "Several tasks are running in parallel:\n"
                        "1. Rank them by priority\n2. Focus on the most important\n"
                        "3. Pause the non-urgent ones"
                    ),
                    priority="high",
                    estimated_hours=1,
                    reason="Too much work in progress hurts throughput",
                )
            )

        if context.total == 0:
            analysis = "The project has just started; plan and analyse requirements first."
        else:
            analysis = (
                f"The project has {context.total} tasks, "
                f"{context.in_progress} in progress."
            )
        return NextTasksPlan(analysis=analysis, suggested_tasks=suggested)


# ---------- next-step advice ----------
class NextStepAdviceFeature(ProjectFeature):
    kind = "next_task_suggestion"
    result_model = NextStepAdvice
    max_output_tokens = 1500

    async def advise(
        self, project_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[NextStepAdvice]:
        return await self._run_for_project(project_id, caller_id)

    def system_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.next_step_system_prompt()

    def user_prompt(self, context: ProjectSnapshot) -> str:
        return ProjectPrompts.next_step_user_prompt(context)

    def parse(self, text: str) -> NextStepAdvice:
        advice = strip_code_fences(text or "")
        if not advice:
            raise AIParseError(
                "AI response was empty", details={"kind": self.kind, "raw": text or ""}
            )
        return NextStepAdvice(suggestion=advice)

    def fallback(self, context: ProjectSnapshot) -> NextStepAdvice:
        now = self.clock()
        open_tasks = [task for task in context.tasks if task.status.is_open()]
        if not open_tasks:
            return NextStepAdvice(
                suggestion="No open tasks. Plan the next milestone or run a retrospective."
            )

        lines = []
        overdue = [task for task in open_tasks if task.is_overdue(now)]
        if overdue:
            lines.append(
                "Overdue first: " + ", ".join(task.title for task in overdue[:3]) + "."
            )
        blocked = [task for task in open_tasks if task.status is TaskStatus.BLOCKED]
        if blocked:
            lines.append(
                "Unblock: " + ", ".join(task.title for task in blocked[:3]) + "."
            )
        if context.in_progress > 3:
            lines.append(
                f"{context.in_progress} tasks are in progress; finish them before starting new work."
            )
        ranked = sorted(open_tasks, key=_urgency_key(now))
        lines.append(f"Next up: {ranked[0].title}.")
        return NextStepAdvice(suggestion="\n".join(lines))


_PRIORITY_RANK = {"urgent": 0, "high": 1, "medium": 2, "low": 3}


def _urgency_key(now):
    def key(task: Task):
        days = task.days_until_due(now)
        return (
            _PRIORITY_RANK[task.priority.value],
            days if days is not None else 10_000,
            task.title,
        )

    return key
