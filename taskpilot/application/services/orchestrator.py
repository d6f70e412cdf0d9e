"""
Model orchestrator - the single entry point from business logic to the LLM.

Order of checks for every request:
1. capability disabled -> AIDisabledError (nothing else touched)
2. rate window and daily quota -> AIRateLimitedError / AIQuotaExceededError
3. concurrency slot -> deadline race -> provider call
4. outcome handed to the metrics sink

Errors from lower layers propagate with their original kind. There are no
retries here: retrying would defeat the governor.
"""

import time
from dataclasses import replace
from typing import Any, Dict

from taskpilot.application.ports import (
    CallOutcome,
    CallRequest,
    MetricsSinkPort,
    ProviderPort,
)
from taskpilot.application.services.governor import CallGovernor
from taskpilot.application.services.timeout import with_timeout
from taskpilot.domain.errors import AIDisabledError, AIError, AIProviderError
from taskpilot.infra.config.logging_config import get_logger


class ModelOrchestrator:
    def __init__(
        self,
        provider: ProviderPort,
        governor: CallGovernor,
        metrics: MetricsSinkPort,
        *,
        enabled: bool = True,
        timeout_seconds: float = 60.0,
        default_max_tokens: int = 4096,
    ):
        self.provider = provider
        self.governor = governor
        self.metrics = metrics
        self.enabled = enabled
        self.timeout_seconds = timeout_seconds
        self.default_max_tokens = default_max_tokens
        self._log = get_logger("ai.orchestrator")

    def is_enabled(self) -> bool:
        return self.enabled and self.provider.is_enabled()

    def health(self) -> Dict[str, Any]:
        """Provider health: ``{"enabled": bool, "name": str}``."""
        return {"enabled": self.is_enabled(), "name": self.provider.name}

    async def call_model(self, request: CallRequest) -> str:
        """Run one governed provider call and return the raw text.

        Raises:
            AIError: exactly one kind per failed call.
        """
        if not self.is_enabled():
            raise AIDisabledError(
                "AI features are disabled; configure an API key to enable them",
                details={"provider": self.provider.name},
            )

        self.governor.check_rate(request.caller_id)
        self.governor.check_quota(request.caller_id)

        if request.max_output_tokens is None:
            request = replace(request, max_output_tokens=self.default_max_tokens)

        self._log.info("ai.call.start", kind=request.kind, caller_id=request.caller_id)
        started = time.monotonic()
        error_code = None
        succeeded = False
        try:
            text = await self.governor.with_slot(
                lambda: with_timeout(
                    lambda: self.provider.complete(request),
                    self.timeout_seconds,
                    label=request.kind,
                )
            )
            succeeded = True
        except AIError as exc:
            error_code = exc.code
            self._log.warning(
                "ai.call.failed", kind=request.kind, code=exc.code, error=exc.message
            )
            raise
        except Exception as exc:
            error_code = AIProviderError.kind.value
            self._log.error("ai.call.failed", kind=request.kind, error=str(exc))
            raise AIProviderError(
                "AI service is temporarily unavailable, please retry later",
                details={"kind": request.kind, "cause": type(exc).__name__},
            ) from exc
        finally:
            duration_ms = int((time.monotonic() - started) * 1000)
            self.metrics.record(
                CallOutcome(
                    kind=request.kind,
                    duration_ms=duration_ms,
                    success=succeeded,
                    error_code=error_code,
                )
            )

        self._log.info("ai.call.success", kind=request.kind, duration_ms=duration_ms)
        return text
