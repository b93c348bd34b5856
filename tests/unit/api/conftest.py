"""Fixtures for API route tests.

Every test starts from fresh bootstrap singletons and metrics, so records
seeded through the bootstrap repository are the ones the routes see.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from bmm_engine.api.main import create_app
from bmm_engine.bootstrap.metrics import reset_metrics
from bmm_engine.bootstrap.registration import (
    get_registration_repository,
    reset_registration_dependencies,
    set_time_authority,
)
from bmm_engine.domain.models.registration import MemberRegistration
from tests.helpers import FakeTimeAuthority


@pytest.fixture(autouse=True)
def fresh_dependencies(monkeypatch):
    """Reset singletons and keep the notifier in-memory with no backoff."""
    monkeypatch.delenv("BMM_NOTIFIER_GATEWAY_URL", raising=False)
    monkeypatch.setenv("BMM_DISPATCH_BACKOFF_SECONDS", "0")
    reset_registration_dependencies()
    reset_metrics()
    yield
    reset_registration_dependencies()
    reset_metrics()


@pytest.fixture
def api_time() -> FakeTimeAuthority:
    fake = FakeTimeAuthority(frozen_at=datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc))
    set_time_authority(fake)
    return fake


@pytest.fixture
def client(api_time) -> TestClient:
    return TestClient(create_app(), raise_server_exceptions=False)


@pytest.fixture
def seed():
    """Add registrations to the bootstrap repository."""

    def _seed(record: MemberRegistration) -> MemberRegistration:
        return asyncio.run(get_registration_repository().add(record))

    return _seed
