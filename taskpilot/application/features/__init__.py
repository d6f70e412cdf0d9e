"""
AI feature adapters. Each one returns a typed result, from the model when it
answers and from a rule-based fallback when it cannot.
"""

from .base import FeatureAdapter, FeatureResult
from .daily_features import DailySuggestionsFeature
from .project_features import (
    NextStepAdviceFeature,
    NextTasksFeature,
    ProgressEstimationFeature,
    ProjectOptimizationFeature,
    ProjectTaskReviewFeature,
)
from .task_features import (
    AssignmentRecommendationFeature,
    PriorityRecommendationFeature,
    RiskPredictionFeature,
    TaskBreakdownFeature,
    TaskChatFeature,
    TaskOptimizationFeature,
)

__all__ = [
    "FeatureAdapter",
    "FeatureResult",
    "AssignmentRecommendationFeature",
    "DailySuggestionsFeature",
    "NextStepAdviceFeature",
    "NextTasksFeature",
    "PriorityRecommendationFeature",
    "ProgressEstimationFeature",
    "ProjectOptimizationFeature",
    "ProjectTaskReviewFeature",
    "RiskPredictionFeature",
    "TaskBreakdownFeature",
    "TaskChatFeature",
    "TaskOptimizationFeature",
]
