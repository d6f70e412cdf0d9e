"""
Unit tests for the feature adapters and their rule-based fallbacks.
"""

import asyncio
from datetime import timedelta

import pytest

from taskpilot.application.features import (
    AssignmentRecommendationFeature,
    DailySuggestionsFeature,
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
from taskpilot.application.features.task_features import split_suggestions
from taskpilot.application.prompts.task_prompts import ChatMessage, MemberLoad
from taskpilot.domain.entities import Member, Task, TaskStatus
from taskpilot.domain.errors import (
    AIDisabledError,
    AINotFoundError,
    AIProviderError,
    AIQuotaExceededError,
)
from taskpilot.infra.ai.providers.deterministic import DeterministicProvider
from tests._helpers.fakes import NOW, StubProvider

# (adapter class, how to invoke it against the sample data)
FEATURE_CALLS = [
    (RiskPredictionFeature, lambda f: f.predict("t1", "u1")),
    (TaskBreakdownFeature, lambda f: f.breakdown("t1", "u1")),
    (
        PriorityRecommendationFeature,
        lambda f: f.recommend("Prepare demo", "p1", "u1", due_date=NOW + timedelta(days=1)),
    ),
    (AssignmentRecommendationFeature, lambda f: f.recommend("t1", "w1", "u1")),
    (TaskOptimizationFeature, lambda f: f.optimize("t2", "u1")),
    (ProgressEstimationFeature, lambda f: f.estimate("p1", "u1")),
    (ProjectOptimizationFeature, lambda f: f.optimize("p1", "u1")),
    (ProjectTaskReviewFeature, lambda f: f.review("p1", "u1")),
    (NextTasksFeature, lambda f: f.generate("p1", "u1")),
    (NextStepAdviceFeature, lambda f: f.advise("p1", "u1")),
    (DailySuggestionsFeature, lambda f: f.suggest("u1")),
    (TaskChatFeature, lambda f: f.chat("t1", "What should I do first?", "u1")),
]
FEATURE_IDS = [cls.__name__ for cls, _ in FEATURE_CALLS]


@pytest.fixture
def make_feature(make_orchestrator, data_source, clock):
    def _make(feature_cls, provider, **orchestrator_kwargs):
        orchestrator = make_orchestrator(provider, **orchestrator_kwargs)
        return feature_cls(orchestrator, data_source, clock=clock)

    return _make


@pytest.fixture
def failing_provider():
    return StubProvider(error=AIProviderError("upstream down"))


class TestFallbackGuarantee:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("feature_cls,invoke", FEATURE_CALLS, ids=FEATURE_IDS)
    async def test_provider_failure_yields_fallback_of_same_type(
        self, make_feature, failing_provider, sink, feature_cls, invoke
    ):
        feature = make_feature(feature_cls, failing_provider)

        result = await invoke(feature)

        assert result.source == "fallback"
        assert result.degraded is True
        assert result.fallback_reason == "AI_API_ERROR"
        assert isinstance(result.data, feature_cls.result_model)
        assert sink.fallbacks == [(feature_cls.kind, "AI_API_ERROR")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("feature_cls,invoke", FEATURE_CALLS, ids=FEATURE_IDS)
    async def test_model_answer_is_used(self, make_feature, sink, feature_cls, invoke):
        feature = make_feature(feature_cls, DeterministicProvider())

        result = await invoke(feature)

        assert result.source == "ai"
        assert result.fallback_reason is None
        assert isinstance(result.data, feature_cls.result_model)
        assert sink.fallbacks == []

    @pytest.mark.asyncio
    async def test_unparseable_answer_falls_back(self, make_feature):
        feature = make_feature(RiskPredictionFeature, StubProvider(reply="no idea"))

        result = await feature.predict("t1", "u1")

        assert result.source == "fallback"
        assert result.fallback_reason == "AI_PARSE_ERROR"

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, make_feature):
        feature = make_feature(
            RiskPredictionFeature, StubProvider(delay=0.2), timeout_seconds=0.02
        )

        result = await feature.predict("t1", "u1")

        assert result.source == "fallback"
        assert result.fallback_reason == "AI_TIMEOUT"
        await asyncio.sleep(0.3)

    @pytest.mark.asyncio
    async def test_unexpected_exception_falls_back(self, make_feature):
        feature = make_feature(
            RiskPredictionFeature, StubProvider(error=ConnectionError("reset"))
        )

        result = await feature.predict("t1", "u1")

        assert result.fallback_reason == "AI_API_ERROR"

    @pytest.mark.asyncio
    async def test_max_output_tokens_forwarded(self, make_feature):
        provider = StubProvider()
        feature = make_feature(ProjectOptimizationFeature, provider)

        await feature.optimize("p1", "u1")

        assert provider.calls[0].max_output_tokens == 3000
        assert provider.calls[0].kind == "project_optimization"


class TestPropagation:
    @pytest.mark.asyncio
    async def test_disabled_propagates(self, make_feature, sink):
        feature = make_feature(RiskPredictionFeature, StubProvider(), enabled=False)

        with pytest.raises(AIDisabledError):
            await feature.predict("t1", "u1")

        assert sink.fallbacks == []

    @pytest.mark.asyncio
    async def test_quota_propagates(self, make_feature):
        feature = make_feature(RiskPredictionFeature, StubProvider(), daily_limit=1)

        await feature.predict("t1", "u1")
        with pytest.raises(AIQuotaExceededError):
            await feature.predict("t1", "u1")

    @pytest.mark.asyncio
    async def test_missing_task_never_calls_provider(self, make_feature):
        provider = StubProvider()
        feature = make_feature(RiskPredictionFeature, provider)

        with pytest.raises(AINotFoundError) as exc_info:
            await feature.predict("missing", "u1")

        assert exc_info.value.http_status == 404
        assert dict(exc_info.value.details) == {"entity": "Task", "id": "missing"}
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_project(self, make_feature):
        feature = make_feature(ProgressEstimationFeature, StubProvider())

        with pytest.raises(AINotFoundError):
            await feature.estimate("missing", "u1")


class TestRiskFallback:
    @pytest.mark.asyncio
    async def test_overdue_task_is_high_risk(self, make_feature, failing_provider):
        feature = make_feature(RiskPredictionFeature, failing_provider)

        prediction = (await feature.predict("t1", "u1")).data

        assert prediction.risk_score == 70
        assert prediction.overall_risk == "high"
        assert prediction.estimated_delay_days == 3
        assert prediction.delay_probability == 70

    @pytest.mark.asyncio
    async def test_blocked_task_without_due_date(self, make_feature, failing_provider):
        feature = make_feature(RiskPredictionFeature, failing_provider)

        prediction = (await feature.predict("t3", "u1")).data

        assert prediction.risk_score == 55
        assert prediction.overall_risk == "medium"
        assert prediction.estimated_delay_days == 0
        assert {factor.type for factor in prediction.risk_factors} == {
            "deadline",
            "blocker",
        }

    @pytest.mark.asyncio
    async def test_done_task_has_no_risk(self, make_feature, failing_provider):
        feature = make_feature(RiskPredictionFeature, failing_provider)

        prediction = (await feature.predict("t4", "u1")).data

        assert prediction.risk_score == 0
        assert prediction.overall_risk == "low"


class TestTaskFallbacks:
    @pytest.mark.asyncio
    async def test_breakdown_uses_keyword_template(self, make_feature, failing_provider):
        feature = make_feature(TaskBreakdownFeature, failing_provider)

        breakdown = (await feature.breakdown("t1", "u1", max_subtasks=3)).data

        assert len(breakdown.subtasks) == 3
        assert breakdown.subtasks[0].title == "Collect this period's work data"
        assert breakdown.total_estimated_hours == 6
        assert breakdown.suggested_order == [0, 1, 2]
        assert breakdown.subtasks[2].dependencies == [1]

    @pytest.mark.asyncio
    async def test_breakdown_granularity_sets_hours(self, make_feature, failing_provider):
        feature = make_feature(TaskBreakdownFeature, failing_provider)

        breakdown = (await feature.breakdown("t2", "u1", granularity="coarse")).data

        assert len(breakdown.subtasks) == 5
        assert all(subtask.estimated_hours == 4 for subtask in breakdown.subtasks)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "due_in_days,expected",
        [(None, "medium"), (1, "urgent"), (3, "high"), (10, "medium"), (30, "low")],
    )
    async def test_priority_follows_due_date(
        self, make_feature, failing_provider, due_in_days, expected
    ):
        feature = make_feature(PriorityRecommendationFeature, failing_provider)
        due = NOW + timedelta(days=due_in_days) if due_in_days is not None else None

        recommendation = (
            await feature.recommend("Prepare demo", "p1", "u1", due_date=due)
        ).data

        assert recommendation.recommended_priority == expected
        assert recommendation.confidence == (40 if due is None else 60)

    @pytest.mark.asyncio
    async def test_assignment_prefers_lightest_workload(
        self, make_feature, failing_provider
    ):
        feature = make_feature(AssignmentRecommendationFeature, failing_provider)

        recommendation = (await feature.recommend("t1", "w1", "u1")).data

        assert recommendation.recommended_assignee_id == "u2"
        assert recommendation.recommended_assignee_name == "Bob"
        assert recommendation.confidence == 60
        assert [alt.member_name for alt in recommendation.alternatives] == [
            "Carol",
            "Alice",
        ]
        assert recommendation.alternatives[1].score == 70

    @pytest.mark.asyncio
    async def test_assignment_without_members(self, make_feature, failing_provider):
        feature = make_feature(AssignmentRecommendationFeature, failing_provider)

        recommendation = (await feature.recommend("t1", "nobody", "u1")).data

        assert recommendation.confidence == 0
        assert recommendation.alternatives == []

    @pytest.mark.asyncio
    async def test_rewrite_generates_description_template(
        self, make_feature, failing_provider
    ):
        feature = make_feature(TaskOptimizationFeature, failing_provider)

        rewrite = (await feature.optimize("t2", "u1")).data

        assert rewrite.optimized_title == "Fix"
        assert rewrite.optimized_description.startswith("## Goal\nFix")
        assert len(rewrite.suggestions) == 2

    def test_member_availability(self):
        member = Member(id="m", name="M")

        assert MemberLoad(member, open_tasks=0).availability == 100
        assert MemberLoad(member, open_tasks=2).availability == 70
        assert MemberLoad(member, open_tasks=9).availability == 0


class TestProjectFallbacks:
    @pytest.mark.asyncio
    async def test_progress_projects_completion_from_velocity(
        self, make_feature, failing_provider
    ):
        feature = make_feature(ProgressEstimationFeature, failing_provider)

        progress = (await feature.estimate("p1", "u1")).data

        assert progress.current_progress == 25
        assert progress.velocity == 1
        assert progress.estimated_completion_date == "2024-04-05"
        assert progress.confidence == 40
        assert progress.risks == ["1 blocked tasks", "1 overdue tasks"]

    @pytest.mark.asyncio
    async def test_progress_of_finished_project(self, make_feature, failing_provider):
        feature = make_feature(ProgressEstimationFeature, failing_provider)

        progress = (await feature.estimate("p3", "u1")).data

        assert progress.current_progress == 100
        assert progress.estimated_completion_date == "2024-03-15"

    @pytest.mark.asyncio
    async def test_project_rewrite_keeps_name(self, make_feature, failing_provider):
        feature = make_feature(ProjectOptimizationFeature, failing_provider)

        rewrite = (await feature.optimize("p1", "u1")).data

        assert rewrite.optimized_title == "Website relaunch"
        assert rewrite.suggested_leader.role == "Project manager"
        assert rewrite.suggested_team[0].count == 2

    @pytest.mark.asyncio
    async def test_task_review_scores_health(self, make_feature, failing_provider):
        feature = make_feature(ProjectTaskReviewFeature, failing_provider)

        review = (await feature.review("p1", "u1")).data

        assert review.overall_health == 81
        assert review.health_status == "healthy"
        assert review.total_issues == 4
        assert len(review.recommendations) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "project_id,title",
        [
            ("p2", "Project kickoff and requirements analysis"),
            ("p3", "Project retrospective"),
            ("p4", "Re-evaluate task priorities"),
        ],
    )
    async def test_next_tasks(self, make_feature, failing_provider, project_id, title):
        feature = make_feature(NextTasksFeature, failing_provider)

        plan = (await feature.generate(project_id, "u1")).data

        assert [task.title for task in plan.suggested_tasks] == [title]

    @pytest.mark.asyncio
    async def test_next_step_fallback(self, make_feature, failing_provider):
        feature = make_feature(NextStepAdviceFeature, failing_provider)

        advice = (await feature.advise("p1", "u1")).data

        assert advice.suggestion.splitlines() == [
            "Overdue first: Write launch report.",
            "Unblock: Design landing page.",
            "Next up: Design landing page.",
        ]

    @pytest.mark.asyncio
    async def test_next_step_uses_plain_text(self, make_feature):
        feature = make_feature(NextStepAdviceFeature, StubProvider(reply="Ship it.\n"))

        result = await feature.advise("p1", "u1")

        assert result.source == "ai"
        assert result.data.suggestion == "Ship it."

    @pytest.mark.asyncio
    async def test_next_step_empty_answer_falls_back(self, make_feature):
        feature = make_feature(NextStepAdviceFeature, StubProvider(reply="  "))

        result = await feature.advise("p1", "u1")

        assert result.fallback_reason == "AI_PARSE_ERROR"


class TestTaskChat:
    def test_split_suggestions(self):
        reply, questions = split_suggestions(
            "Draft the outline today.\n\n[Suggested questions]\n"
            "- Who reviews it?\n-   What is missing?\n-\nnot a question"
        )

        assert reply == "Draft the outline today."
        assert questions == ["Who reviews it?", "What is missing?"]

    def test_reply_without_suggestions(self):
        assert split_suggestions("  Just do it.  ") == ("Just do it.", [])

    @pytest.mark.asyncio
    async def test_model_reply_is_split(self, make_feature):
        feature = make_feature(TaskChatFeature, DeterministicProvider())

        result = await feature.chat("t1", "Where do I start?", "u1")

        assert result.source == "ai"
        assert result.data.reply.startswith("Start with the part")
        assert "[Suggested questions]" not in result.data.reply
        assert result.data.suggestions == [
            "What is the riskiest part of this task?",
            "Can this be split into smaller tasks?",
            "Who could help with this?",
        ]

    @pytest.mark.asyncio
    async def test_history_and_task_reach_the_prompt(self, make_feature):
        provider = StubProvider(reply="Sure.")
        feature = make_feature(TaskChatFeature, provider)
        history = [
            ChatMessage(role="user", content="Is this late?"),
            ChatMessage(role="assistant", content="Yes, by three days."),
        ]

        await feature.chat("t1", "What now?", "u1", history=history)

        call = provider.calls[0]
        assert call.kind == "task_chat"
        assert call.max_output_tokens == 1000
        assert "Write launch report" in call.system_prompt
        assert "User: Is this late?" in call.user_prompt
        assert "AI: Yes, by three days." in call.user_prompt
        assert call.user_prompt.endswith("What now?")

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self, make_feature):
        feature = make_feature(
            TaskChatFeature, StubProvider(reply="\n[Suggested questions]\n- Why?")
        )

        result = await feature.chat("t1", "Hello?", "u1")

        assert result.fallback_reason == "AI_PARSE_ERROR"
        assert result.data.suggestions

    @pytest.mark.asyncio
    async def test_fallback_describes_the_task(self, make_feature, failing_provider):
        feature = make_feature(TaskChatFeature, failing_provider)

        chat = (await feature.chat("t1", "Status?", "u1")).data

        assert '"Write launch report" is todo with high priority' in chat.reply
        assert "overdue by 3 days" in chat.reply
        assert len(chat.suggestions) == 3

    @pytest.mark.asyncio
    async def test_fallback_for_blocked_task(self, make_feature, failing_provider):
        feature = make_feature(TaskChatFeature, failing_provider)

        chat = (await feature.chat("t3", "Status?", "u1")).data

        assert "no due date yet" in chat.reply
        assert "blocking" in chat.reply

    @pytest.mark.asyncio
    async def test_missing_task(self, make_feature):
        provider = StubProvider()
        feature = make_feature(TaskChatFeature, provider)

        with pytest.raises(AINotFoundError):
            await feature.chat("nope", "Hi", "u1")
        assert provider.calls == []


class TestDailyFallback:
    @pytest.mark.asyncio
    async def test_overdue_task_becomes_focus(self, make_feature, failing_provider):
        feature = make_feature(DailySuggestionsFeature, failing_provider)

        daily = (await feature.suggest("u1")).data

        assert daily.greeting == "Good morning, Alice!"
        assert daily.focus_task.task_id == "t1"
        assert daily.focus_task.reason == "Overdue"
        assert daily.productivity.score == 40

    @pytest.mark.asyncio
    async def test_task_due_today(
        self, make_feature, failing_provider, data_source, clock
    ):
        data_source.add_task(
            Task(
                id="t9",
                project_id="p1",
                title="Call supplier",
                status=TaskStatus.TODO,
                assignee_id="u3",
                due_date=NOW + timedelta(hours=5),
            )
        )
        clock.advance(hours=4)
        feature = make_feature(DailySuggestionsFeature, failing_provider)

        daily = (await feature.suggest("u3")).data

        assert daily.greeting == "Good afternoon, Carol!"
        assert daily.focus_task.task_id == "t9"
        assert daily.focus_task.reason == "Due today"
        assert daily.productivity.score == 50

    @pytest.mark.asyncio
    async def test_unknown_user(self, make_feature, failing_provider):
        feature = make_feature(DailySuggestionsFeature, failing_provider)

        daily = (await feature.suggest("ghost")).data

        assert daily.focus_task is None
        assert daily.greeting == "Good morning, there!"
