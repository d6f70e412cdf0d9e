"""
LangChain-backed remote provider.

One ``ainvoke`` per call and no client-side retries: deadlines and retries
are the orchestrator's business, not the SDK's.
"""

from typing import Any, List, Optional

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from taskpilot.application.ports import CallRequest, ProviderPort
from taskpilot.domain.errors import AIDisabledError, AIError, AIProviderError
from taskpilot.infra.config.logging_config import get_logger


def first_text(content: Any) -> str:
    """Text of a chat response: a plain string or the first text block."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for block in content:
            if isinstance(block, str) and block:
                return block
            if isinstance(block, dict) and block.get("type") == "text":
                return block.get("text") or ""
    return ""


class LangChainProvider(ProviderPort):
    """OpenAI-compatible chat model behind LangChain."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 4096,
        base_url: Optional[str] = None,
        **kwargs,
    ):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self._log = get_logger("infra.ai.langchain")
        self.llm: Optional[ChatOpenAI] = None

        if not (api_key and api_key.strip()):
            self._log.warning("ai.provider.no_api_key", model=model_name)
            return

        llm_kwargs = {
            "model": model_name,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "api_key": api_key,
            "max_retries": 0,
            **kwargs,
        }
        # Add base_url if provided (for OpenAI-compatible servers)
        if base_url:
            llm_kwargs["base_url"] = base_url

        self.llm = ChatOpenAI(**llm_kwargs)

    def is_enabled(self) -> bool:
        return self.llm is not None

    def create_messages(self, request: CallRequest) -> List[BaseMessage]:
        messages: List[BaseMessage] = []
        if request.system_prompt:
            messages.append(SystemMessage(content=request.system_prompt))
        messages.append(HumanMessage(content=request.user_prompt))
        return messages

    async def complete(self, request: CallRequest) -> str:
        if self.llm is None:
            raise AIDisabledError(details={"provider": self.name})

        llm = self.llm
        if request.max_output_tokens and request.max_output_tokens != self.max_tokens:
            llm = llm.bind(max_tokens=request.max_output_tokens)

        try:
            response = await llm.ainvoke(self.create_messages(request))
        except AIError:
            raise
        except Exception as exc:
            self._log.error("llm.invoke.failed", kind=request.kind, error=str(exc))
            raise AIProviderError(
                "AI service is temporarily unavailable, please retry later",
                details={"kind": request.kind, "cause": type(exc).__name__},
            ) from exc

        text = first_text(getattr(response, "content", None))
        if not text.strip():
            raise AIProviderError(
                "AI service returned an empty response",
                details={"kind": request.kind},
            )
        self._log.info("llm.invoke.text", kind=request.kind, model=self.model_name)
        return text
