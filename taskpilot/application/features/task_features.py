"""
Task-level AI features.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from taskpilot.application.features.base import FeatureAdapter, FeatureResult
from taskpilot.application.prompts.task_prompts import (
    CHAT_SUGGESTIONS_MARKER,
    AssigneeAlternative,
    AssignmentRecommendation,
    ChatMessage,
    MemberLoad,
    PriorityFactor,
    PriorityRecommendation,
    RiskFactor,
    RiskPrediction,
    SubTask,
    TaskBreakdown,
    TaskChatReply,
    TaskPrompts,
    TaskRewrite,
)
from taskpilot.domain.entities import (
    Project,
    Task,
    TaskPriority,
    TaskStatus,
    days_until,
)
from taskpilot.domain.errors import AIParseError

DESCRIPTION_TEMPLATE = (
    "## Goal\n{title}\n\n## Steps\n1. \n2. \n3. \n\n"
    "## Acceptance criteria\n- \n\n## Notes\n- "
)

# keyword -> generic plan used when the model is unavailable
_BREAKDOWN_TEMPLATES = (
    (
        ("report", "summary"),
        [
            "Collect this period's work data",
            "Summarise the main achievements",
            "Analyse the problems encountered",
            "Plan the next period",
            "Format and submit",
        ],
    ),
    (
        ("meeting", "workshop", "sync"),
        [
            "Confirm topic and agenda",
            "Notify participants",
            "Prepare the material",
            "Book the room or set up the call",
            "Take and share minutes",
        ],
    ),
    (
        ("proposal", "plan", "design"),
        [
            "Clarify goals and requirements",
            "Research reference cases",
            "Draft a first version",
            "Review internally and refine",
            "Publish the final document",
        ],
    ),
)
_GENERIC_STEPS = [
    "Clarify the task goal",
    "Identify the resources needed",
    "Plan the execution steps",
    "Carry out the work",
    "Review and wrap up",
]
_HOURS_BY_GRANULARITY = {"fine": 1.0, "medium": 2.0, "coarse": 4.0}


def _level_for(score: int) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


# ---------- risk ----------
@dataclass
class RiskContext:
    task: Task
    days_until_due: Optional[int]
    assignee_open_tasks: int


class RiskPredictionFeature(FeatureAdapter[RiskContext, RiskPrediction]):
    kind = "risk_prediction"
    result_model = RiskPrediction

    async def predict(
        self, task_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[RiskPrediction]:
        task = self._require_task(task_id)
        workload = self.data.count_open_tasks(task.assignee_id) if task.assignee_id else 0
        context = RiskContext(
            task=task,
            days_until_due=task.days_until_due(self.clock()),
            assignee_open_tasks=workload,
        )
        return await self._execute(context, caller_id)

    def system_prompt(self, context: RiskContext) -> str:
        return TaskPrompts.risk_system_prompt()

    def user_prompt(self, context: RiskContext) -> str:
        return TaskPrompts.risk_user_prompt(
            context.task, context.days_until_due, context.assignee_open_tasks
        )

    def fallback(self, context: RiskContext) -> RiskPrediction:
        task, days = context.task, context.days_until_due
        if task.status is TaskStatus.DONE:
            return RiskPrediction(
                overall_risk="low",
                risk_score=0,
                delay_probability=0,
                recommendations=["Task is already done"],
            )

        score = 20
        factors: List[RiskFactor] = []
        delay_days = 0
        if days is None:
            score += 10
            factors.append(
                RiskFactor(
                    type="deadline",
                    severity="low",
                    description="No due date set",
                    mitigation="Agree on a due date",
                )
            )
        elif days < 0:
            score += 50
            delay_days = -days
            factors.append(
                RiskFactor(
                    type="deadline",
                    severity="high",
                    description=f"Overdue by {-days} days",
                    mitigation="Re-plan the due date or escalate",
                )
            )
        elif days <= 2:
            score += 30
            factors.append(
                RiskFactor(
                    type="deadline",
                    severity="high",
                    description=f"Due in {days} days",
                    mitigation="Focus on this task first",
                )
            )
        elif days <= 7:
            score += 15
            factors.append(
                RiskFactor(
                    type="deadline",
                    severity="medium",
                    description=f"Due in {days} days",
                    mitigation="Check progress mid-week",
                )
            )

        if task.status is TaskStatus.BLOCKED:
            score += 25
            factors.append(
                RiskFactor(
                    type="blocker",
                    severity="high",
                    description="Task is blocked",
                    mitigation="Resolve the blocking dependency",
                )
            )
        if context.assignee_open_tasks > 5:
            score += 15
            factors.append(
                RiskFactor(
                    type="workload",
                    severity="medium",
                    description=f"Assignee holds {context.assignee_open_tasks} open tasks",
                    mitigation="Rebalance work across the team",
                )
            )
        elif task.assignee_id is None:
            score += 10
            factors.append(
                RiskFactor(
                    type="ownership",
                    severity="medium",
                    description="Nobody is assigned",
                    mitigation="Assign an owner",
                )
            )

        score = min(100, score)
        level = _level_for(score)
        if delay_days == 0 and level == "high":
            delay_days = 2
        return RiskPrediction(
            overall_risk=level,
            risk_score=score,
            delay_probability=score,
            estimated_delay_days=delay_days,
            risk_factors=factors,
            recommendations=[f.mitigation for f in factors],
        )


# ---------- breakdown ----------
@dataclass
class BreakdownContext:
    task: Task
    max_subtasks: int = 8
    granularity: str = "medium"
    direction: Optional[str] = None


class TaskBreakdownFeature(FeatureAdapter[BreakdownContext, TaskBreakdown]):
    kind = "task_breakdown"
    result_model = TaskBreakdown

    async def breakdown(
        self,
        task_id: str,
        caller_id: Optional[str] = None,
        *,
        max_subtasks: int = 8,
        granularity: str = "medium",
        direction: Optional[str] = None,
    ) -> FeatureResult[TaskBreakdown]:
        task = self._require_task(task_id)
        context = BreakdownContext(
            task=task,
            max_subtasks=max(1, max_subtasks),
            granularity=granularity if granularity in _HOURS_BY_GRANULARITY else "medium",
            direction=direction,
        )
        return await self._execute(context, caller_id)

    def system_prompt(self, context: BreakdownContext) -> str:
        return TaskPrompts.breakdown_system_prompt(context.max_subtasks, context.direction)

    def user_prompt(self, context: BreakdownContext) -> str:
        return TaskPrompts.breakdown_user_prompt(
            context.task, context.granularity, context.direction
        )

    def fallback(self, context: BreakdownContext) -> TaskBreakdown:
        title = context.task.title.lower()
        steps = _GENERIC_STEPS
        for keywords, template in _BREAKDOWN_TEMPLATES:
            if any(word in title for word in keywords):
                steps = template
                break
        steps = steps[: context.max_subtasks]
        hours = _HOURS_BY_GRANULARITY[context.granularity]

        subtasks = [
            SubTask(
                title=step,
                estimated_hours=hours,
                priority=context.task.priority.value,
                dependencies=[index - 1] if index else [],
            )
            for index, step in enumerate(steps)
        ]
        return TaskBreakdown(
            subtasks=subtasks,
            total_estimated_hours=hours * len(subtasks),
            suggested_order=list(range(len(subtasks))),
            reasoning="Generic plan derived from the task title",
        )


# ---------- priority ----------
@dataclass
class PriorityContext:
    project: Project
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    open_by_priority: Dict[str, int]
    days_until_due: Optional[int]


class PriorityRecommendationFeature(
    FeatureAdapter[PriorityContext, PriorityRecommendation]
):
    kind = "priority_recommendation"
    result_model = PriorityRecommendation

    async def recommend(
        self,
        title: str,
        project_id: str,
        caller_id: Optional[str] = None,
        *,
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> FeatureResult[PriorityRecommendation]:
        project = self._require_project(project_id)
        counts = {priority.value: 0 for priority in TaskPriority}
        for task in self.data.list_project_tasks(project_id):
            if task.status.is_open():
                counts[task.priority.value] += 1

        days = days_until(due_date, self.clock()) if due_date else None
        context = PriorityContext(
            project=project,
            title=title,
            description=description,
            due_date=due_date,
            open_by_priority=counts,
            days_until_due=days,
        )
        return await self._execute(context, caller_id)

    def system_prompt(self, context: PriorityContext) -> str:
        return TaskPrompts.priority_system_prompt()

    def user_prompt(self, context: PriorityContext) -> str:
        return TaskPrompts.priority_user_prompt(
            context.title, context.description, context.due_date, context.open_by_priority
        )

    def fallback(self, context: PriorityContext) -> PriorityRecommendation:
        days = context.days_until_due
        if days is None:
            priority, reason = "medium", "No due date, default priority"
        elif days <= 1:
            priority, reason = "urgent", "Due within a day"
        elif days <= 3:
            priority, reason = "high", "Due within three days"
        elif days <= 14:
            priority, reason = "medium", "Due within two weeks"
        else:
            priority, reason = "low", "Due date is far away"

        factors = [PriorityFactor(factor="due date", impact="positive", weight=0.7)]
        pressing = context.open_by_priority["urgent"] + context.open_by_priority["high"]
        if pressing >= 5 and priority in ("high", "medium"):
            factors.append(
                PriorityFactor(factor="competing high-priority work", impact="negative", weight=0.3)
            )
        return PriorityRecommendation(
            recommended_priority=priority,
            confidence=60 if days is not None else 40,
            reasoning=reason,
            factors=factors,
        )


# ---------- assignment ----------
@dataclass
class AssignmentContext:
    task: Task
    loads: List[MemberLoad]


class AssignmentRecommendationFeature(
    FeatureAdapter[AssignmentContext, AssignmentRecommendation]
):
    kind = "assignment_recommendation"
    result_model = AssignmentRecommendation

    async def recommend(
        self, task_id: str, workspace_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[AssignmentRecommendation]:
        task = self._require_task(task_id)
        loads = [
            MemberLoad(member=member, open_tasks=self.data.count_open_tasks(member.id))
            for member in self.data.list_workspace_members(workspace_id)
        ]
        return await self._execute(AssignmentContext(task=task, loads=loads), caller_id)

    def system_prompt(self, context: AssignmentContext) -> str:
        return TaskPrompts.assignment_system_prompt()

    def user_prompt(self, context: AssignmentContext) -> str:
        return TaskPrompts.assignment_user_prompt(context.task, context.loads)

    def fallback(self, context: AssignmentContext) -> AssignmentRecommendation:
        if not context.loads:
            return AssignmentRecommendation(
                confidence=0, reasoning="No members in this workspace"
            )
        ranked = sorted(context.loads, key=lambda load: (load.open_tasks, load.member.name))
        best = ranked[0]
        return AssignmentRecommendation(
            recommended_assignee_id=best.member.id,
            recommended_assignee_name=best.member.name,
            confidence=60,
            reasoning=f"Lightest current workload ({best.open_tasks} open tasks)",
            alternatives=[
                AssigneeAlternative(
                    member_id=load.member.id,
                    member_name=load.member.name,
                    score=load.availability,
                    reason=f"{load.open_tasks} open tasks",
                )
                for load in ranked[1:3]
            ],
        )


# ---------- single task rewrite ----------
@dataclass
class RewriteContext:
    task: Task
    project_name: str


class TaskOptimizationFeature(FeatureAdapter[RewriteContext, TaskRewrite]):
    kind = "single_task_optimization"
    result_model = TaskRewrite
    max_output_tokens = 1000

    async def optimize(
        self, task_id: str, caller_id: Optional[str] = None
    ) -> FeatureResult[TaskRewrite]:
        task = self._require_task(task_id)
        project = self.data.get_project(task.project_id)
        context = RewriteContext(
            task=task, project_name=project.name if project else task.project_id
        )
        return await self._execute(context, caller_id)

    def system_prompt(self, context: RewriteContext) -> str:
        return TaskPrompts.rewrite_system_prompt()

    def user_prompt(self, context: RewriteContext) -> str:
        return TaskPrompts.rewrite_user_prompt(context.task, context.project_name)

    def fallback(self, context: RewriteContext) -> TaskRewrite:
        task = context.task
        description = task.description or ""
        suggestions = []
        if len(task.title) < 10:
            suggestions.append("Make the title more specific about what has to be done")
        if len(description) < 20:
            description = DESCRIPTION_TEMPLATE.format(title=task.title)
            suggestions.append("A description template was generated, fill in the details")
        return TaskRewrite(
            optimized_title=task.title,
            optimized_description=description,
            suggestions=suggestions,
            reason="AI analysis is unavailable, a basic template was produced",
        )


# ---------- task chat ----------
_SUGGESTIONS_BLOCK = re.compile(re.escape(CHAT_SUGGESTIONS_MARKER), re.IGNORECASE)

FALLBACK_CHAT_QUESTIONS = [
    "How should I break this task down?",
    "What are the main risks for this task?",
    "What should I do first?",
]


def split_suggestions(text: str) -> Tuple[str, List[str]]:
    """Separate the trailing follow-up question block from a chat answer."""
    match = _SUGGESTIONS_BLOCK.search(text)
    if match is None:
        return text.strip(), []
    questions = []
    for line in text[match.end() :].splitlines():
        line = line.strip()
        if line.startswith("-") and line[1:].strip():
            questions.append(line[1:].strip())
    return text[: match.start()].strip(), questions


@dataclass
class ChatContext:
    task: Task
    project_name: str
    assignee_name: Optional[str]
    message: str
    history: List[ChatMessage] = field(default_factory=list)


class TaskChatFeature(FeatureAdapter[ChatContext, TaskChatReply]):
    kind = "task_chat"
    result_model = TaskChatReply
    max_output_tokens = 1000

    async def chat(
        self,
        task_id: str,
        message: str,
        caller_id: Optional[str] = None,
        history: Sequence[ChatMessage] = (),
    ) -> FeatureResult[TaskChatReply]:
        task = self._require_task(task_id)
        project = self.data.get_project(task.project_id)
        assignee = self.data.get_member(task.assignee_id) if task.assignee_id else None
        context = ChatContext(
            task=task,
            project_name=project.name if project else task.project_id,
            assignee_name=assignee.name if assignee else None,
            message=message,
            history=list(history),
        )
        return await self._execute(context, caller_id)

    def system_prompt(self, context: ChatContext) -> str:
        return TaskPrompts.chat_system_prompt(
            context.task, context.project_name, context.assignee_name
        )

    def user_prompt(self, context: ChatContext) -> str:
        return TaskPrompts.chat_user_prompt(context.message, context.history)

    def parse(self, text: str) -> TaskChatReply:
        reply, suggestions = split_suggestions(text or "")
        if not reply:
            raise AIParseError(
                "AI response was empty", details={"kind": self.kind, "raw": text or ""}
            )
        return TaskChatReply(reply=reply, suggestions=suggestions)

    def fallback(self, context: ChatContext) -> TaskChatReply:
        task = context.task
        days = task.days_until_due(self.clock())
        if task.status is TaskStatus.DONE:
            timing = "it is already done"
        elif days is None:
            timing = "it has no due date yet"
        elif days < 0:
            timing = f"it is overdue by {-days} days"
        else:
            timing = f"it is due in {days} days"
        status = task.status.value.replace("_", " ")
        lines = [
            "The AI assistant is unavailable right now.",
            f'"{task.title}" is {status} with {task.priority.value} priority, '
            f"and {timing}.",
        ]
        if task.status is TaskStatus.BLOCKED:
            lines.append("Start by resolving whatever is blocking it.")
        return TaskChatReply(
            reply=" ".join(lines), suggestions=list(FALLBACK_CHAT_QUESTIONS)
        )
