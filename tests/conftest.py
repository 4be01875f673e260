"""Pytest configuration and fixtures."""

import os
from unittest.mock import patch

import pytest

from app.core.config import get_settings
from app.core.realtime import InMemoryChangeFeed, set_change_feed
from tests.fakes.fake_supabase import FakeSupabase

DB_MODULES = (
    "app.db.users",
    "app.db.documents",
    "app.db.suggestions",
    "app.db.writing_snapshots",
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
    os.environ["LLM_API_KEY"] = "test-llm-key"
    os.environ["WOZ_ENV"] = "test"
    os.environ["REALTIME_BACKEND"] = "memory"
    get_settings.cache_clear()


@pytest.fixture
def feed():
    """Fresh in-process change feed installed as the process-wide feed."""
    change_feed = InMemoryChangeFeed()
    set_change_feed(change_feed)
    yield change_feed
    set_change_feed(None)


@pytest.fixture
def fake_supabase(feed):
    """In-memory Supabase standing in for every table module; writes notify ``feed``."""
    fake = FakeSupabase(feed=feed)
    patches = [patch(f"{module}.get_supabase", return_value=fake) for module in DB_MODULES]
    for p in patches:
        p.start()
    yield fake
    for p in patches:
        p.stop()
