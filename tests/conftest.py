"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import fakeredis
import pytest

from hubbub.engine.options import Options
from hubbub.models import User
from hubbub.services import user_service
from hubbub.store import keys
from hubbub.store.redis_store import RedisStore


@pytest.fixture
def redis_client() -> fakeredis.FakeRedis:
    """An isolated in-memory Redis; every test gets its own server."""
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client) -> RedisStore:
    return RedisStore(redis_client)


@pytest.fixture
def options() -> Options:
    """Default tunables, minus the submission break so tests can post freely."""
    return Options({"news_submission_break": 0, "password_iterations": 10})


@pytest.fixture
def make_user(store: RedisStore, options: Options):
    """Factory: create an account and return its :class:`User` record."""

    def _make(username: str, password: str = "password123", karma: int | None = None) -> User:
        result = user_service.create_account(store, options, username, password)
        assert result.ok, result.error
        user = user_service.authenticate(store, result.value)
        if karma is not None:
            store.hash_set(keys.user(user.id), "karma", karma)
            user = user_service.get_user_by_id(store, user.id)
        return user

    return _make


@pytest.fixture
def alice(make_user) -> User:
    return make_user("alice", karma=10)


@pytest.fixture
def bob(make_user) -> User:
    return make_user("bob", karma=10)
