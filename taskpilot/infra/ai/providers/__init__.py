"""
Provider variants and the factory that picks one from settings.
"""

from taskpilot.application.ports import ProviderPort
from taskpilot.infra.config.settings import Settings

from .deterministic import DeterministicProvider
from .langchain_provider import LangChainProvider


def build_provider(settings: Settings) -> ProviderPort:
    """Select the provider named by ``AI_PROVIDER``."""
    provider = settings.ai_provider.strip().lower()
    if provider == "mock":
        return DeterministicProvider(latency_seconds=settings.ai_mock_latency_seconds)
    if provider == "openai":
        return LangChainProvider(
            api_key=settings.openai_api_key,
            model_name=settings.ai_model,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_default_max_tokens,
            base_url=settings.openai_base_url or None,
        )
    raise ValueError(f"Unknown AI provider: {settings.ai_provider}")


__all__ = ["DeterministicProvider", "LangChainProvider", "build_provider"]
