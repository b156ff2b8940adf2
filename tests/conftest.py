from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from api.config.settings import Settings, get_settings
from api.infra.database import get_session
from api.main import create_app
from api.v1.core.registries import JobRegistry
from api.v1.infra.jobs.registry_init import register_job_handlers
from api.v1.infra.jobs.routes import get_job_worker
from api.v1.infra.jobs.worker import JobWorker
from api.v1.keeper_tests.routes import get_slack
from tests.factories import (
    NOW,
    TEST_KEY,
    FakeMessaging,
    FakeSession,
    InMemoryJobStore,
)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        sync_endpoint_key=TEST_KEY,
        slack_token="xoxb-test",
        slack_api_base_url="https://slack.test/api",
        environment="development",
    )


@pytest.fixture
def messaging() -> FakeMessaging:
    return FakeMessaging()


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def registry(test_settings, messaging) -> JobRegistry:
    """Registry with both keeper test handlers wired to fake messaging."""
    registry = JobRegistry()
    register_job_handlers(test_settings, messaging, registry=registry)
    for queue_name in registry.list():
        registry.get(queue_name).clock = lambda: NOW
    return registry


@pytest.fixture
def worker(test_settings, store, registry) -> JobWorker:
    return JobWorker(test_settings, store, registry, clock=lambda: NOW)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def app(test_settings, worker, fake_session, messaging):
    """Application with settings, worker, session and Slack overridden."""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_job_worker] = lambda: worker
    app.dependency_overrides[get_session] = lambda: fake_session
    app.dependency_overrides[get_slack] = lambda: messaging
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_KEY}"}
