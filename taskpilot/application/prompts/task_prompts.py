"""
Task-level prompts and structured output models.

Covers risk prediction, breakdown into subtasks, priority and assignee
recommendation, and rewriting a single task's title and description.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, BeforeValidator, Field
from typing_extensions import Annotated

from taskpilot.application.services.coercion import (
    Hours,
    IndexList,
    Level,
    NonNegativeInt,
    Percentage,
    Priority,
    Score,
    Text,
    TextList,
    Weight,
    as_list,
)
from taskpilot.domain.entities import Member, Task

CHAT_SUGGESTIONS_MARKER = "[Suggested questions]"


# ---------- STRUCTURED OUTPUT MODELS ----------
class RiskFactor(BaseModel):
    type: Text = Field(default="general", description="Risk category, e.g. deadline")
    severity: Level = Field(default="medium")
    description: Text = ""
    mitigation: Text = ""


class RiskPrediction(BaseModel):
    """Delivery risk assessment for one task."""

    overall_risk: Level = Field(default="medium", description="high, medium or low")
    risk_score: Score = Field(default=50, description="0-100, higher is riskier")
    delay_probability: Percentage = Field(default=0, description="0-100")
    estimated_delay_days: NonNegativeInt = 0
    risk_factors: Annotated[List[RiskFactor], BeforeValidator(as_list)] = Field(
        default_factory=list
    )
    recommendations: TextList = Field(default_factory=list)


class SubTask(BaseModel):
    title: Text
    description: Text = ""
    estimated_hours: Hours = 1.0
    priority: Priority = "medium"
    skills: TextList = Field(default_factory=list)
    dependencies: IndexList = Field(
        default_factory=list, description="Indexes of subtasks this one waits on"
    )


class TaskBreakdown(BaseModel):
    """Decomposition of a task into executable subtasks."""

    subtasks: Annotated[List[SubTask], BeforeValidator(as_list)] = Field(
        default_factory=list
    )
    total_estimated_hours: Hours = 0.0
    suggested_order: IndexList = Field(default_factory=list)
    reasoning: Text = ""


class PriorityFactor(BaseModel):
    factor: Text = ""
    impact: Text = Field(default="neutral", description="positive or negative")
    weight: Weight = 0.0


class PriorityRecommendation(BaseModel):
    recommended_priority: Priority = "medium"
    confidence: Percentage = 50
    reasoning: Text = ""
    factors: Annotated[List[PriorityFactor], BeforeValidator(as_list)] = Field(
        default_factory=list
    )


class AssigneeAlternative(BaseModel):
    member_id: Text = ""
    member_name: Text = ""
    score: Score = 50
    reason: Text = ""


class AssignmentRecommendation(BaseModel):
    recommended_assignee_id: Text = ""
    recommended_assignee_name: Text = ""
    confidence: Percentage = 50
    reasoning: Text = ""
    alternatives: Annotated[List[AssigneeAlternative], BeforeValidator(as_list)] = (
        Field(default_factory=list)
    )


class TaskRewrite(BaseModel):
    """Clearer title and description for a single task."""

    optimized_title: Text
    optimized_description: Text = ""
    suggestions: TextList = Field(default_factory=list)
    reason: Text = ""


class ChatMessage(BaseModel):
    """One earlier turn of a task conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=4000)


class TaskChatReply(BaseModel):
    """Answer to a question about a task, plus follow-up questions."""

    reply: Text = ""
    suggestions: TextList = Field(default_factory=list)


# ---------- PROMPT INPUTS ----------
@dataclass
class MemberLoad:
    """Open-task count of a workspace member, used for assignment."""

    member: Member
    open_tasks: int

    @property
    def availability(self) -> int:
        return max(0, 100 - self.open_tasks * 15)


# ---------- PROMPT TEMPLATES ----------
class TaskPrompts:
    """Centralized prompt templates for task-level features."""

    @staticmethod
    def risk_system_prompt() -> str:
        return """
You are a delivery-risk analyst for software projects.
Assess how likely the task is to slip and why.

Return only JSON:
{"overall_risk":"high|medium|low","risk_score":0,"delay_probability":0,
"estimated_delay_days":0,
"risk_factors":[{"type":"deadline","severity":"high","description":"","mitigation":""}],
"recommendations":[]}
"""

    @staticmethod
    def risk_user_prompt(
        task: Task, days_until_due: Optional[int], assignee_open_tasks: int
    ) -> str:
        due = f"{days_until_due} days" if days_until_due is not None else "not set"
        return f"""
Assess the risk of this task: {task.title}
Status: {task.status.value}, priority: {task.priority.value}
Time until due date: {due}
Open tasks held by the assignee: {assignee_open_tasks}
"""

    @staticmethod
    def breakdown_system_prompt(
        max_subtasks: int, direction: Optional[str] = None
    ) -> str:
        prompt = f"""
You are a project-management assistant. Break the task into at most
{max_subtasks} subtasks.

Requirements:
1. Every subtask is concrete and executable
2. Subtasks have a clear order or dependency between them
3. Size each subtask according to the requested granularity
4. Produce between 3 and {max_subtasks} subtasks
"""
        if direction:
            prompt += "5. Strictly follow the breakdown direction given by the user\n"
        prompt += """
Return only JSON:
{"subtasks":[{"title":"","description":"","estimated_hours":2,"priority":"high",
"skills":[],"dependencies":[]}],"total_estimated_hours":0,"suggested_order":[0,1],
"reasoning":""}
"""
        return prompt

    @staticmethod
    def breakdown_user_prompt(
        task: Task, granularity: str, direction: Optional[str] = None
    ) -> str:
        prompt = f"""
Break down the task: {task.title}
Description: {task.description or "none"}
Priority: {task.priority.value}
Granularity: {granularity}
"""
        if direction:
            prompt += f"\nBreakdown direction: {direction}\n"
        return prompt

    @staticmethod
    def priority_system_prompt() -> str:
        return """
You are a prioritisation expert. Recommend a priority for a new task.

Return only JSON:
{"recommended_priority":"urgent|high|medium|low","confidence":85,"reasoning":"",
"factors":[{"factor":"","impact":"positive|negative","weight":0.3}]}
"""

    @staticmethod
    def priority_user_prompt(
        title: str,
        description: Optional[str],
        due_date: Optional[datetime],
        open_by_priority: dict,
    ) -> str:
        counts = ", ".join(f"{name} {count}" for name, count in open_by_priority.items())
        return f"""
Recommend a priority for: {title}
Description: {description or "none"}
Due: {due_date.date().isoformat() if due_date else "not set"}
Open tasks in the project by priority: {counts}
"""

    @staticmethod
    def assignment_system_prompt() -> str:
        return """
You are a resource-allocation expert. Pick the best assignee for the task
from the listed members, weighing their current load.

Return only JSON:
{"recommended_assignee_id":"id","recommended_assignee_name":"name","confidence":80,
"reasoning":"","alternatives":[{"member_id":"","member_name":"","score":75,"reason":""}]}
"""

    @staticmethod
    def assignment_user_prompt(task: Task, loads: Sequence[MemberLoad]) -> str:
        lines = "\n".join(
            f"- {load.member.name} ({load.member.id}): {load.open_tasks} open tasks, "
            f"{load.availability}% available"
            for load in loads
        )
        return f"""
Recommend an assignee for the task: {task.title}
Priority: {task.priority.value}
Member workload:
{lines or "no members"}
"""

    @staticmethod
    def rewrite_system_prompt() -> str:
        return """
You are a project-management expert. Rewrite the task's title and description
so they are clear, specific and actionable.

Return only JSON (no markdown fences):
{"optimized_title":"short imperative title, at most 50 characters",
"optimized_description":"goal, steps, acceptance criteria, caveats",
"suggestions":["other suggestion"],"reason":"why the rewrite helps"}

Rules:
1. Start the title with a verb
2. The description must contain concrete steps and acceptance criteria
3. Replace vague words with numbers and measurable targets
4. If the original is already good, keep it and explain why
"""

    @staticmethod
    def rewrite_user_prompt(task: Task, project_name: str) -> str:
        return f"""
Improve the title and description of this task.

Project: {project_name}
Current title: {task.title}
Current description: {task.description or "(none)"}
Priority: {task.priority.value}
Status: {task.status.value}
"""

    @staticmethod
    def chat_system_prompt(
        task: Task, project_name: str, assignee_name: Optional[str]
    ) -> str:
        due = task.due_date.date().isoformat() if task.due_date else "not set"
        return f"""
You are a project-management assistant helping the user with one task.

## Task context
Title: {task.title}
Description: {task.description or "none"}
Status: {task.status.value}
Priority: {task.priority.value}
Assignee: {assignee_name or "unassigned"}
Due date: {due}
Project: {project_name}

## Your job
1. Answer the user's question using the task context
2. Give concrete, actionable advice
3. Help plan the execution steps
4. Point out risks and open problems
5. Optionally end with 2-3 follow-up questions

## Reply format
Answer in plain language. To add follow-up questions, end the reply with:
{CHAT_SUGGESTIONS_MARKER}
- question 1
- question 2
"""

    @staticmethod
    def chat_user_prompt(message: str, history: Sequence[ChatMessage]) -> str:
        prompt = ""
        if history:
            turns = "\n".join(
                f"{'User' if turn.role == 'user' else 'AI'}: {turn.content}"
                for turn in history
            )
            prompt += f"## Conversation so far\n{turns}\n\n"
        prompt += f"User's question: {message}"
        return prompt
