"""
FastAPI router for the AI features.

One route per feature adapter. Handlers only resolve the caller and hand
over to the adapter; AI errors are mapped to HTTP by the error handlers.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from taskpilot.api.dependencies import get_container, get_current_user_id
from taskpilot.api.schemas import (
    AIStatusResponse,
    BreakdownRequest,
    PriorityRequest,
    TaskChatRequest,
)
from taskpilot.application.features import (
    AssignmentRecommendationFeature,
    DailySuggestionsFeature,
    FeatureResult,
    NextStepAdviceFeature,
    NextTasksFeature,
    PriorityRecommendationFeature,
    ProgressEstimationFeature,
    ProjectOptimizationFeature,
    ProjectTaskReviewFeature,
    RiskPredictionFeature,
    TaskBreakdownFeature,
    TaskChatFeature,
    TaskOptimizationFeature,
)
from taskpilot.application.prompts.daily_prompts import DailySuggestions
from taskpilot.application.prompts.project_prompts import (
    NextStepAdvice,
    NextTasksPlan,
    ProgressEstimation,
    ProjectRewrite,
    TaskListReview,
)
from taskpilot.application.prompts.task_prompts import (
    AssignmentRecommendation,
    PriorityRecommendation,
    RiskPrediction,
    TaskBreakdown,
    TaskChatReply,
    TaskRewrite,
)
from taskpilot.infra.config.logging_config import get_logger
from taskpilot.infra.container import Container

router = APIRouter(prefix="/ai", tags=["ai"])
log = get_logger("api.ai")

FEATURES = (
    RiskPredictionFeature,
    TaskBreakdownFeature,
    PriorityRecommendationFeature,
    AssignmentRecommendationFeature,
    TaskOptimizationFeature,
    TaskChatFeature,
    ProgressEstimationFeature,
    ProjectOptimizationFeature,
    ProjectTaskReviewFeature,
    NextTasksFeature,
    NextStepAdviceFeature,
    DailySuggestionsFeature,
)


def _naive_local(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


@router.get("/status", response_model=AIStatusResponse)
async def ai_status(
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
) -> AIStatusResponse:
    """Provider health plus the caller's quota usage."""
    orchestrator = container.orchestrator()
    health = orchestrator.health()
    return AIStatusResponse(
        enabled=health["enabled"],
        provider=health["name"],
        features=[feature.kind for feature in FEATURES],
        daily_limit=container.governor().daily_limit,
        used_today=container.governor().usage(user_id),
    )


# ---------- tasks ----------
@router.get("/tasks/{task_id}/risk", response_model=FeatureResult[RiskPrediction])
async def predict_task_risk(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(RiskPredictionFeature).predict(task_id, user_id)


@router.post("/tasks/{task_id}/breakdown", response_model=FeatureResult[TaskBreakdown])
async def breakdown_task(
    task_id: str,
    options: Optional[BreakdownRequest] = Body(default=None),
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    options = options or BreakdownRequest()
    log.info("ai.breakdown.request", task_id=task_id, granularity=options.granularity)
    return await container.feature(TaskBreakdownFeature).breakdown(
        task_id,
        user_id,
        max_subtasks=options.max_subtasks,
        granularity=options.granularity,
        direction=options.direction,
    )


@router.post(
    "/tasks/recommend-priority", response_model=FeatureResult[PriorityRecommendation]
)
async def recommend_priority(
    payload: PriorityRequest,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(PriorityRecommendationFeature).recommend(
        payload.title,
        payload.project_id,
        user_id,
        description=payload.description,
        due_date=_naive_local(payload.due_date),
    )


@router.get(
    "/tasks/{task_id}/assignment", response_model=FeatureResult[AssignmentRecommendation]
)
async def recommend_assignment(
    task_id: str,
    workspace_id: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(AssignmentRecommendationFeature).recommend(
        task_id, workspace_id, user_id
    )


@router.get("/tasks/{task_id}/optimize", response_model=FeatureResult[TaskRewrite])
async def optimize_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(TaskOptimizationFeature).optimize(task_id, user_id)


@router.post(
    "/tasks/{task_id}/chat", response_model=FeatureResult[TaskChatReply]
)
async def chat_with_task(
    task_id: str,
    payload: TaskChatRequest,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    log.info("ai.chat.request", task_id=task_id, history_turns=len(payload.history))
    return await container.feature(TaskChatFeature).chat(
        task_id, payload.message, user_id, history=payload.history
    )


# ---------- projects ----------
@router.get(
    "/projects/{project_id}/progress", response_model=FeatureResult[ProgressEstimation]
)
async def estimate_progress(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(ProgressEstimationFeature).estimate(project_id, user_id)


@router.get(
    "/projects/{project_id}/optimize", response_model=FeatureResult[ProjectRewrite]
)
async def optimize_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(ProjectOptimizationFeature).optimize(project_id, user_id)


@router.get(
    "/projects/{project_id}/task-review", response_model=FeatureResult[TaskListReview]
)
async def review_project_tasks(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(ProjectTaskReviewFeature).review(project_id, user_id)


@router.post(
    "/projects/{project_id}/next-tasks", response_model=FeatureResult[NextTasksPlan]
)
async def generate_next_tasks(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(NextTasksFeature).generate(project_id, user_id)


@router.get(
    "/projects/{project_id}/next-step", response_model=FeatureResult[NextStepAdvice]
)
async def next_step_advice(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(NextStepAdviceFeature).advise(project_id, user_id)


# ---------- personal ----------
@router.get("/daily-suggestions", response_model=FeatureResult[DailySuggestions])
async def daily_suggestions(
    user_id: str = Depends(get_current_user_id),
    container: Container = Depends(get_container),
):
    return await container.feature(DailySuggestionsFeature).suggest(user_id)
