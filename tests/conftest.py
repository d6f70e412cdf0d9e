"""
Pytest configuration and fixtures.
"""

import pytest

from taskpilot.application.ports import ProviderPort
from taskpilot.application.services.governor import CallGovernor
from taskpilot.application.services.orchestrator import ModelOrchestrator
from tests._helpers.fakes import FakeClock, RecordingSink, StubProvider, build_sample_data


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def stub_provider():
    return StubProvider()


@pytest.fixture
def make_orchestrator(sink, clock):
    """Factory: orchestrator around a provider with a fresh governor."""

    def _make(
        provider: ProviderPort,
        *,
        enabled: bool = True,
        daily_limit: int = 100,
        max_concurrent: int = 5,
        per_minute_limit: int = 0,
        timeout_seconds: float = 5.0,
    ) -> ModelOrchestrator:
        governor = CallGovernor(
            daily_limit=daily_limit,
            max_concurrent=max_concurrent,
            per_minute_limit=per_minute_limit,
            clock=clock,
        )
        return ModelOrchestrator(
            provider,
            governor,
            sink,
            enabled=enabled,
            timeout_seconds=timeout_seconds,
        )

    return _make


@pytest.fixture
def data_source():
    return build_sample_data()
