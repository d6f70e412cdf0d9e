"""
Deterministic provider for development and tests.

Returns canned answers keyed by feature kind, fenced the way real models
often fence JSON, so the whole parse path is exercised without a network.
"""

import asyncio
import json
from typing import Any, Dict, Optional

from taskpilot.application.ports import CallRequest, ProviderPort
from taskpilot.infra.config.logging_config import get_logger

CANNED_RESPONSES: Dict[str, Any] = {
    "risk_prediction": {
        "overall_risk": "medium",
        "risk_score": 45,
        "delay_probability": 30,
        "estimated_delay_days": 1,
        "risk_factors": [
            {
                "type": "deadline",
                "severity": "medium",
                "description": "Due date is close",
                "mitigation": "Check progress daily",
            }
        ],
        "recommendations": ["Confirm scope with the stakeholder"],
    },
    "task_breakdown": {
        "subtasks": [
            {
                "title": "Clarify requirements",
                "description": "Agree on scope and acceptance criteria",
                "estimated_hours": 2,
                "priority": "high",
                "skills": ["analysis"],
                "dependencies": [],
            },
            {
                "title": "Implement",
                "description": "Build the change",
                "estimated_hours": 6,
                "priority": "high",
                "skills": ["programming"],
                "dependencies": [0],
            },
            {
                "title": "Verify",
                "description": "Test and review",
                "estimated_hours": 2,
                "priority": "medium",
                "skills": ["testing"],
                "dependencies": [1],
            },
        ],
        "total_estimated_hours": 10,
        "suggested_order": [0, 1, 2],
        "reasoning": "Classic clarify, build, verify sequence",
    },
    "priority_recommendation": {
        "recommended_priority": "high",
        "confidence": 80,
        "reasoning": "Close due date and visible impact",
        "factors": [{"factor": "due date", "impact": "positive", "weight": 0.6}],
    },
    "assignment_recommendation": {
        "recommended_assignee_id": "",
        "recommended_assignee_name": "",
        "confidence": 70,
        "reasoning": "Lowest workload with matching skills",
        "alternatives": [],
    },
    "progress_estimation": {
        "current_progress": 50,
        "estimated_completion_date": "",
        "confidence": 70,
        "velocity": 3,
        "milestones": [
            {"name": "Beta", "estimated_date": "", "confidence": 70, "blockers": []}
        ],
        "risks": ["Scope creep"],
        "recommendations": ["Freeze scope for the next two weeks"],
    },
    "daily_suggestions": {
        "greeting": "Good morning!",
        "focus_task": None,
        "insights": [
            {"type": "tip", "title": "Batch reviews", "description": "Group code reviews"}
        ],
        "productivity": {"score": 75, "trend": "up", "comparison": "Better than last week"},
    },
    "single_task_optimization": {
        "optimized_title": "Implement the requested change",
        "optimized_description": "## Goal\n\n## Steps\n1. \n\n## Acceptance criteria\n- ",
        "suggestions": ["Add acceptance criteria"],
        "reason": "Clearer scope",
    },
    "project_optimization": {
        "optimized_title": "Project",
        "optimized_description": "## Background\n\n## Goals\n",
        "suggested_leader": {
            "role": "Tech lead",
            "skills": ["architecture", "mentoring"],
            "reason": "Mostly engineering work",
        },
        "suggested_team": [
            {
                "role": "Backend engineer",
                "count": 2,
                "skills": ["python"],
                "responsibilities": "Services and APIs",
            }
        ],
        "suggestions": ["Define milestones"],
        "reason": "Sharper framing",
    },
    "task_optimization": {
        "summary": "Plan is mostly healthy",
        "total_issues": 1,
        "overall_health": 85,
        "health_status": "healthy",
        "suggestions": [],
        "recommendations": ["Review due dates weekly"],
    },
    "next_task_generation": {
        "analysis": "Work is progressing; testing is not yet planned.",
        "suggested_tasks": [
            {
                "title": "Write integration tests",
                "description": "Cover the main user flows",
                "priority": "medium",
                "estimated_hours": 6,
                "reason": "No test task exists yet",
            }
        ],
        "optimizations": [],
    },
}

TEXT_RESPONSES: Dict[str, str] = {
    "next_task_suggestion": (
        "Focus on the overdue and blocked tasks first, then finish what is "
        "already in progress before starting anything new."
    ),
    "task_chat": (
        "Start with the part that unblocks everyone else, then check the "
        "remaining work against the due date.\n\n"
        "[Suggested questions]\n"
        "- What is the riskiest part of this task?\n"
        "- Can this be split into smaller tasks?\n"
        "- Who could help with this?"
    ),
}


class DeterministicProvider(ProviderPort):
    """Mock provider that returns fixed responses."""

    name = "mock"

    def __init__(
        self,
        latency_seconds: float = 0.0,
        responses: Optional[Dict[str, str]] = None,
    ):
        self.latency_seconds = latency_seconds
        self._overrides = dict(responses or {})
        self._log = get_logger("infra.ai.mock")

    def is_enabled(self) -> bool:
        return True

    async def complete(self, request: CallRequest) -> str:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        self._log.debug("ai.mock.complete", kind=request.kind)

        if request.kind in self._overrides:
            return self._overrides[request.kind]
        if request.kind in TEXT_RESPONSES:
            return TEXT_RESPONSES[request.kind]
        payload = CANNED_RESPONSES.get(
            request.kind, {"kind": request.kind, "result": "ok"}
        )
        return "```json\n" + json.dumps(payload, indent=2) + "\n```"
