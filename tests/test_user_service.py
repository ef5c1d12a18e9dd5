"""
tests/test_user_service.py — Accounts, Auth & Karma Tests
==========================================================
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from hubbub.engine.options import Options
from hubbub.errors import Reason
from hubbub.services import user_service
from hubbub.services.throttle import get_new_post_eta, mark_submitted, rate_limited
from hubbub.store import keys


class TestCreateAccount:
    def test_creates_user_with_initial_karma(self, store, options):
        result = user_service.create_account(store, options, "Alice", "password123")
        assert result.ok
        user = user_service.authenticate(store, result.value)
        assert user.username == "Alice"
        assert user.karma == options.get_int("user_initial_karma")
        assert len(user.salt) == 40
        assert len(user.apisecret) == 40
        assert user.password != "password123"

    def test_ids_are_sequential(self, make_user):
        assert make_user("a").id == 1
        assert make_user("b").id == 2

    def test_username_is_case_insensitive(self, store, options, make_user):
        make_user("alice")
        result = user_service.create_account(store, options, "ALICE", "password123")
        assert result.error is Reason.USERNAME_TAKEN

    @pytest.mark.parametrize("username,password", [("", "password123"), ("bob", ""), ("  ", "x" * 10)])
    def test_blank_credentials(self, store, options, username, password):
        assert user_service.create_account(store, options, username, password).error is Reason.INVALID_INPUT

    def test_short_password(self, store, options):
        result = user_service.create_account(store, options, "bob", "short")
        assert result.error is Reason.PASSWORD_TOO_SHORT
        assert result.detail == "8"

    def test_rate_limited_per_client_ip(self, store, options):
        first = user_service.create_account(store, options, "a", "password123", client_ip="1.2.3.4")
        second = user_service.create_account(store, options, "b", "password123", client_ip="1.2.3.4")
        other = user_service.create_account(store, options, "c", "password123", client_ip="5.6.7.8")
        assert first.ok
        assert second.error is Reason.RATE_LIMITED
        assert other.ok


class TestCredentials:
    def test_verify_returns_token_and_secret(self, store, options, make_user):
        user = make_user("alice", password="correct horse")
        result = user_service.verify_credentials(store, options, "ALICE", "correct horse")
        assert result.value == (user.auth, user.apisecret)

    @pytest.mark.parametrize("username,password", [("alice", "wrong pass"), ("nobody", "correct horse")])
    def test_no_match(self, store, options, make_user, username, password):
        make_user("alice", password="correct horse")
        result = user_service.verify_credentials(store, options, username, password)
        assert result.error is Reason.NO_MATCH

    def test_authenticate_unknown_token(self, store):
        assert user_service.authenticate(store, "deadbeef") is None
        assert user_service.authenticate(store, None) is None

    def test_rotate_auth_token_invalidates_old(self, store, make_user):
        user = make_user("alice")
        new_token = user_service.rotate_auth_token(store, user.id)
        assert new_token != user.auth
        assert user_service.authenticate(store, user.auth) is None
        assert user_service.authenticate(store, new_token).id == user.id

    def test_rotate_unknown_user(self, store):
        assert user_service.rotate_auth_token(store, 99) is None

    def test_api_secret(self, make_user):
        user = make_user("alice")
        assert user_service.verify_api_secret(user, user.apisecret)
        assert not user_service.verify_api_secret(user, "nope")
        assert not user_service.verify_api_secret(None, user.apisecret)


class TestProfile:
    def test_update_caps_lengths(self, store, options, make_user):
        user = make_user("alice")
        result = user_service.update_profile(store, options, user, about="x" * 5000, email="e" * 300)
        assert len(result.value.about) == 4095
        assert len(result.value.email) == 255
        stored = user_service.get_user_by_id(store, user.id)
        assert stored.about == result.value.about

    def test_password_change(self, store, options, make_user):
        user = make_user("alice", password="old password")
        assert user_service.update_profile(store, options, user, password="new password").ok
        assert user_service.verify_credentials(store, options, "alice", "new password").ok
        assert not user_service.verify_credentials(store, options, "alice", "old password").ok

    def test_password_change_too_short(self, store, options, make_user):
        user = make_user("alice")
        result = user_service.update_profile(store, options, user, password="abc")
        assert result.error is Reason.PASSWORD_TOO_SHORT

    def test_flags(self, store, make_user):
        user = make_user("alice")
        assert not user_service.is_admin(user)
        updated = user_service.add_user_flags(store, user.id, "aa")
        assert updated.flags == "a"
        assert user_service.is_admin(user_service.get_user_by_id(store, user.id))
        assert user_service.check_user_flags(updated, "a")


class TestKarma:
    def test_unconditional_increment(self, store, make_user):
        user = make_user("alice", karma=10)
        updated, applied = user_service.increment_karma(store, user, -3)
        assert applied
        assert updated.karma == 7
        assert user.karma == 10
        assert user_service.get_user_karma(store, user) == 7

    def test_drip_respects_interval(self, store, make_user):
        user = make_user("alice", karma=10)
        with patch("hubbub.services.user_service.time") as mock_time:
            mock_time.time.return_value = user.karma_incr_time + 50
            updated, applied = user_service.increment_karma(store, user, 1, min_interval=100)
            assert not applied
            assert updated.karma == 10

            mock_time.time.return_value = user.karma_incr_time + 101
            updated, applied = user_service.increment_karma(store, user, 1, min_interval=100)
            assert applied
            assert updated.karma == 11
            assert updated.karma_incr_time == user.karma_incr_time + 101

            # The returned record carries the new timestamp forward.
            _, applied = user_service.increment_karma(store, updated, 1, min_interval=100)
            assert not applied

    def test_apply_karma_drip(self, store, make_user):
        opts = Options({"karma_increment_interval": 10, "karma_increment_amount": 2})
        user = make_user("alice", karma=1)
        with patch("hubbub.services.user_service.time") as mock_time:
            mock_time.time.return_value = user.karma_incr_time + 11
            updated, applied = user_service.apply_karma_drip(store, opts, user)
        assert applied
        assert updated.karma == 3


class TestCounters:
    def test_counters(self, store, make_user):
        user = make_user("alice")
        store.sorted_set_add(keys.user_posted(user.id), 1, 1)
        store.sorted_set_add(keys.user_comments(user.id), 1, "1-1")
        store.sorted_set_add(keys.user_comments(user.id), 2, "1-2")
        assert user_service.get_user_counters(store, user) == {"posted_news": 1, "posted_comments": 2}

    def test_lookup_by_username(self, store, make_user):
        user = make_user("Alice")
        assert user_service.get_user_by_username(store, "alice").id == user.id
        assert user_service.get_user_by_username(store, "nobody") is None


class TestThrottle:
    def test_rate_limited_takes_lock(self, store):
        assert not rate_limited(store, 60, ["vote", "1.2.3.4"])
        assert rate_limited(store, 60, ["vote", "1.2.3.4"])
        assert store.ttl("limit:vote.1.2.3.4") > 0

    def test_no_tags_never_limits(self, store):
        assert not rate_limited(store, 60, [])
        assert not rate_limited(store, 60, [])

    def test_submission_eta(self, store):
        opts = Options({"news_submission_break": 900})
        assert get_new_post_eta(store, 1) == 0
        mark_submitted(store, opts, 1)
        assert 0 < get_new_post_eta(store, 1) <= 900
