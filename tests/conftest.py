"""Shared fixtures.

Every test runs in its own temporary directory with a fresh SQLite
database, default configuration and an empty channel hub.
"""

from unittest.mock import MagicMock

import pytest

from telxtab.config.app_config import clear_config_cache
from telxtab.core import auth
from telxtab.db import profiles_repository
from telxtab.db.database import init_db
from telxtab.llm.client import LLMResponse
from telxtab.realtime.hub import reset_hub


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Run in tmp_path with a fresh database and default config."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    reset_hub()
    init_db()
    yield tmp_path
    clear_config_cache()
    reset_hub()


def make_user(
    username: str = "alice",
    email: str | None = None,
    password: str = "secret123",
    is_admin: bool = False,
):
    """Create a profile directly through the auth layer."""
    profile = auth.signup(email or f"{username}@example.com", password, username, username.title())
    if is_admin:
        profiles_repository.set_flag(profile.id, "is_admin", True)
        profile = profiles_repository.get_profile(profile.id)
    return profile


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth.create_session(user_id).token}"}


@pytest.fixture
def user_factory():
    """Callable creating extra users: ``user_factory("carol", is_admin=True)``."""
    return make_user


@pytest.fixture
def headers_for():
    """Callable returning Authorization headers for a user id."""
    return auth_headers


@pytest.fixture
def user():
    return make_user("alice")


@pytest.fixture
def other_user():
    return make_user("bob")


@pytest.fixture
def admin_user():
    return make_user("admin", is_admin=True)


@pytest.fixture
def mock_llm_client():
    """Mock LLM client for tutor, question and matchmaker calls."""
    client = MagicMock()
    client.config = MagicMock()
    client.config.provider = "lmstudio"
    client.config.model = "test-model"

    client.chat.return_value = LLMResponse(
        content="Great! Let's talk about travel. Where did you go last summer?",
        model="test-model",
        provider="lmstudio",
        usage={"total_tokens": 42},
    )
    client.simple_json.return_value = []

    return client

