"""Pytest configuration and fixtures."""

import os

import pytest

# Settings are read lazily, but module-level loggers consult them at import time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("WAITLIST_ENV", "test")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["WAITLIST_ENV"] = "test"
    os.environ["ADMIN_API_KEY"] = "test-admin-key"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Give every test settings built from its own environment."""
    from app.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_db(monkeypatch):
    """In-memory store patched over the app.db functions."""
    from tests.fakes.fake_db import FakeWaitlistDB, install

    return install(monkeypatch, FakeWaitlistDB())
