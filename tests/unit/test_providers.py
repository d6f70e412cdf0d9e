"""
Unit tests for the provider variants.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from taskpilot.application.ports import CallRequest
from taskpilot.application.services.structured_output import extract_json
from taskpilot.domain.errors import AIDisabledError, AIProviderError
from taskpilot.infra.ai.providers import (
    DeterministicProvider,
    LangChainProvider,
    build_provider,
)
from taskpilot.infra.ai.providers.deterministic import CANNED_RESPONSES
from taskpilot.infra.ai.providers.langchain_provider import first_text
from taskpilot.infra.config.settings import Settings

CHAT_OPENAI = "taskpilot.infra.ai.providers.langchain_provider.ChatOpenAI"


def make_request(**kwargs) -> CallRequest:
    defaults = dict(system_prompt="be brief", user_prompt="hello", kind="risk_prediction")
    defaults.update(kwargs)
    return CallRequest(**defaults)


@pytest.fixture
def chat_model():
    with patch(CHAT_OPENAI) as chat_cls:
        instance = chat_cls.return_value
        instance.bind.return_value = instance
        instance.ainvoke = AsyncMock(return_value=AIMessage(content="answer"))
        yield chat_cls


class TestLangChainProvider:
    def test_without_api_key_is_disabled(self, chat_model):
        provider = LangChainProvider(api_key="  ")

        assert provider.is_enabled() is False
        assert provider.llm is None
        chat_model.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_complete_raises(self, chat_model):
        provider = LangChainProvider(api_key=None)

        with pytest.raises(AIDisabledError):
            await provider.complete(make_request())

    def test_client_is_built_without_retries(self, chat_model):
        LangChainProvider(
            api_key="sk-test",
            model_name="gpt-test",
            temperature=0.1,
            base_url="http://localhost:8000/v1",
        )

        kwargs = chat_model.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["max_retries"] == 0
        assert kwargs["max_tokens"] == 4096
        assert kwargs["base_url"] == "http://localhost:8000/v1"

    def test_base_url_omitted_when_empty(self, chat_model):
        LangChainProvider(api_key="sk-test")

        assert "base_url" not in chat_model.call_args.kwargs

    @pytest.mark.asyncio
    async def test_complete_returns_text(self, chat_model):
        provider = LangChainProvider(api_key="sk-test")

        text = await provider.complete(make_request())

        assert text == "answer"
        messages = chat_model.return_value.ainvoke.await_args.args[0]
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert messages[1].content == "hello"

    @pytest.mark.asyncio
    async def test_output_budget_is_bound_per_call(self, chat_model):
        provider = LangChainProvider(api_key="sk-test")

        await provider.complete(make_request(max_output_tokens=1000))

        chat_model.return_value.bind.assert_called_once_with(max_tokens=1000)

    @pytest.mark.asyncio
    async def test_sdk_failure_becomes_provider_error(self, chat_model):
        chat_model.return_value.ainvoke.side_effect = ConnectionError("reset")
        provider = LangChainProvider(api_key="sk-test")

        with pytest.raises(AIProviderError) as exc_info:
            await provider.complete(make_request())

        assert exc_info.value.details["cause"] == "ConnectionError"

    @pytest.mark.asyncio
    async def test_empty_answer_is_provider_error(self, chat_model):
        chat_model.return_value.ainvoke.return_value = AIMessage(content="")
        provider = LangChainProvider(api_key="sk-test")

        with pytest.raises(AIProviderError):
            await provider.complete(make_request())


class TestFirstText:
    def test_plain_string(self):
        assert first_text("hi") == "hi"

    def test_first_text_block(self):
        content = [{"type": "image_url"}, {"type": "text", "text": "hi"}]
        assert first_text(content) == "hi"

    def test_unknown_content(self):
        assert first_text(None) == ""
        assert first_text([{"type": "image_url"}]) == ""


class TestDeterministicProvider:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", sorted(CANNED_RESPONSES))
    async def test_canned_answers_are_fenced_json(self, kind):
        text = await DeterministicProvider().complete(make_request(kind=kind))

        assert text.startswith("```json")
        assert extract_json(text) == CANNED_RESPONSES[kind]

    @pytest.mark.asyncio
    async def test_unknown_kind(self):
        text = await DeterministicProvider().complete(make_request(kind="haiku"))

        assert extract_json(text) == {"kind": "haiku", "result": "ok"}

    @pytest.mark.asyncio
    async def test_overrides(self):
        provider = DeterministicProvider(
            responses={"risk_prediction": json.dumps({"risk_score": 99})}
        )

        text = await provider.complete(make_request())

        assert json.loads(text) == {"risk_score": 99}

    def test_always_enabled(self):
        assert DeterministicProvider().health() == {"enabled": True, "name": "mock"}


class TestBuildProvider:
    def test_mock(self):
        settings = Settings(_env_file=None, AI_PROVIDER="mock")

        assert isinstance(build_provider(settings), DeterministicProvider)

    def test_openai(self, chat_model):
        settings = Settings(
            _env_file=None,
            AI_PROVIDER="OpenAI",
            OPENAI_API_KEY="sk-test",
            AI_MODEL="gpt-test",
        )

        provider = build_provider(settings)

        assert isinstance(provider, LangChainProvider)
        assert provider.is_enabled()
        assert chat_model.call_args.kwargs["model"] == "gpt-test"

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_provider(Settings(_env_file=None, AI_PROVIDER="carrier-pigeon"))
