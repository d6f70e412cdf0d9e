"""Dependency injection container."""

from typing import Dict, Optional, Type, TypeVar

from taskpilot.application.features.base import FeatureAdapter
from taskpilot.application.ports import ProviderPort, TaskDataSourcePort
from taskpilot.application.services.governor import CallGovernor
from taskpilot.application.services.orchestrator import ModelOrchestrator
from taskpilot.infra.ai.metrics import PrometheusRecorder, QueuedMetricsSink
from taskpilot.infra.ai.providers import build_provider
from taskpilot.infra.config.settings import Settings, get_settings
from taskpilot.infra.data.memory_data_source import InMemoryTaskDataSource

F = TypeVar("F", bound=FeatureAdapter)


class Container:
    """Builds and caches the process-wide AI components.

    One governor and one metrics sink per process: every request handler
    shares the same quota records and concurrency permits.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        provider: Optional[ProviderPort] = None,
        data_source: Optional[TaskDataSourcePort] = None,
    ):
        self.settings = settings or get_settings()
        self._provider = provider
        self._data_source = data_source
        self._governor: Optional[CallGovernor] = None
        self._metrics_sink: Optional[QueuedMetricsSink] = None
        self._orchestrator: Optional[ModelOrchestrator] = None
        self._features: Dict[type, FeatureAdapter] = {}

    def provider(self) -> ProviderPort:
        if self._provider is None:
            self._provider = build_provider(self.settings)
        return self._provider

    def data_source(self) -> TaskDataSourcePort:
        if self._data_source is None:
            self._data_source = InMemoryTaskDataSource()
        return self._data_source

    def governor(self) -> CallGovernor:
        if self._governor is None:
            self._governor = CallGovernor(
                daily_limit=self.settings.ai_max_per_day_per_user,
                max_concurrent=self.settings.ai_max_concurrent,
                per_minute_limit=self.settings.ai_max_per_minute,
            )
        return self._governor

    def metrics_sink(self) -> QueuedMetricsSink:
        if self._metrics_sink is None:
            self._metrics_sink = QueuedMetricsSink(
                PrometheusRecorder(), maxsize=self.settings.metrics_queue_size
            )
        return self._metrics_sink

    def orchestrator(self) -> ModelOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = ModelOrchestrator(
                provider=self.provider(),
                governor=self.governor(),
                metrics=self.metrics_sink(),
                enabled=self.settings.ai_enabled,
                timeout_seconds=self.settings.ai_timeout_seconds,
                default_max_tokens=self.settings.ai_default_max_tokens,
            )
        return self._orchestrator

    def feature(self, feature_cls: Type[F]) -> F:
        """Feature adapter of the given class, built on first use."""
        if feature_cls not in self._features:
            self._features[feature_cls] = feature_cls(
                self.orchestrator(), self.data_source()
            )
        return self._features[feature_cls]  # type: ignore[return-value]
