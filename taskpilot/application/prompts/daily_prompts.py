"""
Daily-suggestion prompt and structured output model.
"""

from functools import partial
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, BeforeValidator, Field
from typing_extensions import Annotated

from taskpilot.application.services.coercion import Score, Text, as_list, pick
from taskpilot.domain.entities import Task

TRENDS = ("up", "down", "stable")

Trend = Annotated[
    Literal["up", "down", "stable"],
    BeforeValidator(partial(pick, allowed=TRENDS, default="stable")),
]


# ---------- STRUCTURED OUTPUT MODELS ----------
class FocusTask(BaseModel):
    task_id: Text = ""
    task_title: Text = ""
    reason: Text = ""


class Insight(BaseModel):
    type: Text = "tip"
    title: Text = ""
    description: Text = ""


class Productivity(BaseModel):
    score: Score = 50
    trend: Trend = "stable"
    comparison: Text = ""


class DailySuggestions(BaseModel):
    """Personal start-of-day briefing."""

    greeting: Text = ""
    focus_task: Optional[FocusTask] = None
    insights: Annotated[List[Insight], BeforeValidator(as_list)] = Field(
        default_factory=list
    )
    productivity: Productivity = Field(default_factory=Productivity)


def time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


# ---------- PROMPT TEMPLATES ----------
class DailyPrompts:
    @staticmethod
    def system_prompt() -> str:
        return """
You are a friendly work assistant preparing a short daily briefing.

Return only JSON:
{"greeting":"","focus_task":{"task_id":"","task_title":"","reason":""},
"insights":[{"type":"tip","title":"","description":""}],
"productivity":{"score":75,"trend":"up|down|stable","comparison":""}}
"""

    @staticmethod
    def user_prompt(
        name: str,
        hour: int,
        due_today: Sequence[Task],
        overdue: int,
        done_last_week: int,
    ) -> str:
        prompt = f"""
Prepare suggestions.
Name: {name}, time: {time_of_day(hour)}
Due today: {len(due_today)}, overdue: {overdue}, completed this week: {done_last_week}
"""
        if due_today:
            titles = ", ".join(f"{t.title} ({t.id})" for t in due_today)
            prompt += f"Today's tasks: {titles}\n"
        return prompt
