"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- isolated_settings: test environment with cached singletons cleared (autouse)
- settings: Settings built from that environment
- memory_db: seeded in-memory database adapter
- client: FastAPI TestClient wired to memory_db
- registered_business / auth_headers: a freshly registered business and its token
"""

import pytest
from fastapi.testclient import TestClient

from klarolink.config.settings import get_settings
from klarolink.database import reset_database, set_database
from klarolink.database.memory import MemoryDatabaseAdapter
from klarolink.services.ai_insights import reset_insights_generator

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
TEST_PASSWORD = "secret123"


def _reset_singletons() -> None:
    get_settings.cache_clear()
    reset_database()
    reset_insights_generator()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Predictable environment for every test."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("DEBUG", "true")
    for name in ("SUPABASE_URL", "SUPABASE_KEY", "ANTHROPIC_API_KEY", "DATABASE_FALLBACK_TO_MOCK"):
        monkeypatch.delenv(name, raising=False)

    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture
def settings():
    """Settings loaded from the test environment."""
    return get_settings()


@pytest.fixture
def memory_db():
    """Seeded mock store (demo-business and acme-restaurant)."""
    return MemoryDatabaseAdapter()


@pytest.fixture
def client(memory_db):
    """Test client whose requests hit memory_db."""
    from klarolink.api.main import create_app

    set_database(memory_db)
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def registered_business(client) -> dict:
    """Register a business through the API and return the response body."""
    response = client.post(
        "/api/auth/register",
        json={
            "name": "Cafe Luna",
            "email": "owner@cafeluna.com",
            "password": TEST_PASSWORD,
        },
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def auth_headers(registered_business) -> dict:
    """Bearer header for registered_business."""
    return {"Authorization": f"Bearer {registered_business['token']}"}


@pytest.fixture
def sample_fields() -> list[dict]:
    """Form with custom field ids that still map onto rating and comment."""
    return [
        {"id": "customer_name", "type": "text", "label": "Your Name", "required": True},
        {"id": "contact_email", "type": "email", "label": "Email", "required": False},
        {"id": "overall-rating", "type": "rating", "label": "Overall Rating", "required": True},
        {"id": "thoughts", "type": "textarea", "label": "Tell us more", "required": False},
    ]
