"""
Personal daily briefing.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from taskpilot.application.features.base import FeatureAdapter, FeatureResult
from taskpilot.application.prompts.daily_prompts import (
    DailyPrompts,
    DailySuggestions,
    FocusTask,
    Insight,
    Productivity,
    time_of_day,
)
from taskpilot.domain.entities import Task, TaskStatus


@dataclass
class DailyContext:
    name: str
    hour: int
    due_today: List[Task]
    overdue: List[Task]
    done_last_week: int


class DailySuggestionsFeature(FeatureAdapter[DailyContext, DailySuggestions]):
    kind = "daily_suggestions"
    result_model = DailySuggestions

    async def suggest(self, user_id: str) -> FeatureResult[DailySuggestions]:
        now = self.clock()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        week_ago = now - timedelta(days=7)
        tasks = self.data.list_assigned_tasks(user_id)
        member = self.data.get_member(user_id)

        context = DailyContext(
            name=member.name if member else "there",
            hour=now.hour,
            due_today=[
                task
                for task in tasks
                if task.status.is_open()
                and task.due_date is not None
                and today <= task.due_date < tomorrow
            ][:5],
            overdue=[
                task
                for task in tasks
                if task.status.is_open()
                and task.due_date is not None
                and task.due_date < today
            ],
            done_last_week=sum(
                1
                for task in tasks
                if task.status is TaskStatus.DONE
                and task.updated_at is not None
                and task.updated_at >= week_ago
            ),
        )
        return await self._execute(context, user_id)

    def system_prompt(self, context: DailyContext) -> str:
        return DailyPrompts.system_prompt()

    def user_prompt(self, context: DailyContext) -> str:
        return DailyPrompts.user_prompt(
            context.name,
            context.hour,
            context.due_today,
            len(context.overdue),
            context.done_last_week,
        )

    def fallback(self, context: DailyContext) -> DailySuggestions:
        focus = None
        candidates = context.overdue or context.due_today
        if candidates:
            task = candidates[0]
            focus = FocusTask(
                task_id=task.id,
                task_title=task.title,
                reason="Overdue" if context.overdue else "Due today",
            )

        insights = []
        if context.overdue:
            insights.append(
                Insight(
                    type="warning",
                    title="Overdue tasks",
                    description=f"{len(context.overdue)} tasks are past their due date",
                )
            )
        if context.due_today:
            insights.append(
                Insight(
                    type="tip",
                    title="Due today",
                    description=f"{len(context.due_today)} tasks are due today",
                )
            )

        score = max(0, min(100, 50 + context.done_last_week * 5 - len(context.overdue) * 10))
        return DailySuggestions(
            greeting=f"Good {time_of_day(context.hour)}, {context.name}!",
            focus_task=focus,
            insights=insights,
            productivity=Productivity(
                score=score,
                trend="stable",
                comparison=f"{context.done_last_week} tasks completed in the last 7 days",
            ),
        )
