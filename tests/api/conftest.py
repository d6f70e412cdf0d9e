"""
Fixtures for the HTTP API tests.
"""

import pytest
from fastapi.testclient import TestClient

from taskpilot.infra.ai.providers import DeterministicProvider
from taskpilot.infra.config.settings import Settings
from taskpilot.infra.container import Container
from taskpilot.main import create_app
from tests._helpers.fakes import build_sample_data


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "u1"}


@pytest.fixture
def make_client():
    """Factory: started TestClient around a container built from overrides."""
    clients = []

    def _make(provider=None, **settings_overrides) -> TestClient:
        settings = Settings(_env_file=None, **settings_overrides)
        container = Container(
            settings,
            provider=provider or DeterministicProvider(),
            data_source=build_sample_data(),
        )
        client = TestClient(create_app(container))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
