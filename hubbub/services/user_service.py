"""
hubbub.services.user_service — Accounts, Auth Tokens & Karma
=============================================================

Account creation, credential verification, token-based authentication and
rotation, profile updates and karma accrual.

Records are immutable: operations that change a user return the updated
:class:`~hubbub.models.User` and callers carry it forward explicitly.
"""

from __future__ import annotations

import dataclasses
import logging
import time

from hubbub.engine.karma import karma_drip_due
from hubbub.engine.options import Options
from hubbub.engine.security import derive_key, generate_random, keys_match
from hubbub.errors import Reason, Result
from hubbub.models import ADMIN_FLAG, User
from hubbub.services.throttle import rate_limited
from hubbub.store import keys
from hubbub.store.redis_store import RedisStore

logger = logging.getLogger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def get_user_by_id(store: RedisStore, user_id: int | str) -> User | None:
    return User.from_hash(store.hash_get_all(keys.user(user_id)))


def get_user_by_username(store: RedisStore, username: str) -> User | None:
    """Case-insensitive username lookup."""
    if _blank(username):
        return None
    user_id = store.get(keys.username_index(username))
    if not user_id:
        return None
    return get_user_by_id(store, user_id)


def get_users_by_ids(store: RedisStore, user_ids: list[int]) -> dict[int, User]:
    """Fetch several users in one round trip; missing ids are left out."""
    unique = list(dict.fromkeys(user_ids))
    batch = store.batch()
    for user_id in unique:
        batch.hash_get_all(keys.user(user_id))
    users: dict[int, User] = {}
    for user_id, data in zip(unique, batch.execute()):
        user = User.from_hash(data)
        if user is not None:
            users[user_id] = user
    return users


def get_user_karma(store: RedisStore, user: User) -> int:
    """Fresh karma from the store, ignoring the in-memory record."""
    value = store.hash_get(keys.user(user.id), "karma")
    try:
        return int(value) if value is not None else 0
    except ValueError:
        return 0


def get_user_counters(store: RedisStore, user: User) -> dict[str, int]:
    """Number of news items and comments *user* has posted."""
    posted, commented = (
        store.batch()
        .sorted_set_cardinality(keys.user_posted(user.id))
        .sorted_set_cardinality(keys.user_comments(user.id))
        .execute()
    )
    return {"posted_news": posted or 0, "posted_comments": commented or 0}


# ---------------------------------------------------------------------------
# Accounts & credentials
# ---------------------------------------------------------------------------
def create_account(
    store: RedisStore,
    options: Options,
    username: str,
    password: str,
    *,
    client_ip: str | None = None,
) -> Result[str]:
    """Create an account and return its auth token.

    Fails with ``invalid_input`` for blank credentials, ``rate_limited`` when
    *client_ip* created an account recently, ``password_too_short`` and
    ``username_taken`` (case-insensitive).
    """
    if _blank(username) or _blank(password):
        return Result.failure(Reason.INVALID_INPUT)

    if client_ip and rate_limited(
        store, options.get_int("account_creation_delay"), ["create_user", client_ip]
    ):
        return Result.failure(Reason.RATE_LIMITED)

    min_length = options.get_int("password_min_length")
    if len(password) < min_length:
        return Result.failure(Reason.PASSWORD_TOO_SHORT, detail=str(min_length))

    index_key = keys.username_index(username)
    if store.exists(index_key):
        return Result.failure(Reason.USERNAME_TAKEN)

    user_id = store.increment(keys.USERS_COUNT)
    # Claim the name atomically; a concurrent signup may have won the race.
    if not store.set(index_key, user_id, only_if_absent=True):
        return Result.failure(Reason.USERNAME_TAKEN)

    now = int(time.time())
    salt = generate_random()
    user = User(
        id=user_id,
        username=username,
        salt=salt,
        password=derive_key(password, salt, options),
        ctime=now,
        karma=options.get_int("user_initial_karma"),
        karma_incr_time=now,
        auth=generate_random(),
        apisecret=generate_random(),
    )
    store.hash_set_many(keys.user(user_id), user.to_hash())
    store.set(keys.auth_token(user.auth), user_id)

    logger.info("Created account %s (id=%d)", username, user_id)
    return Result.success(user.auth)


def verify_credentials(
    store: RedisStore, options: Options, username: str, password: str
) -> Result[tuple[str, str]]:
    """Return ``(auth_token, api_secret)`` when the password matches."""
    if _blank(username) or password is None:
        return Result.failure(Reason.NO_MATCH)

    user = get_user_by_username(store, username)
    if user is None:
        return Result.failure(Reason.NO_MATCH)

    if not keys_match(user.password, derive_key(password, user.salt, options)):
        logger.debug("Password mismatch for %s", username)
        return Result.failure(Reason.NO_MATCH)

    return Result.success((user.auth, user.apisecret))


def authenticate(store: RedisStore, auth_token: str | None) -> User | None:
    """Resolve an auth token to its user.  Side-effect free.

    A missing or unknown token is not an error, just no session.
    """
    if not auth_token:
        return None
    user_id = store.get(keys.auth_token(auth_token))
    if not user_id:
        return None
    return get_user_by_id(store, user_id)


def rotate_auth_token(store: RedisStore, user_id: int) -> str | None:
    """Invalidate the current token of *user_id* and issue a new one."""
    user = get_user_by_id(store, user_id)
    if user is None:
        return None

    new_token = generate_random()
    if user.auth:
        store.delete(keys.auth_token(user.auth))
    store.hash_set(keys.user(user.id), "auth", new_token)
    store.set(keys.auth_token(new_token), user.id)

    logger.info("Rotated auth token for user %d", user.id)
    return new_token


def verify_api_secret(user: User | None, api_secret: str | None) -> bool:
    """Check a request's form secret against the user's API secret."""
    if user is None or not user.apisecret or not api_secret:
        return False
    return keys_match(user.apisecret, api_secret)


def update_profile(
    store: RedisStore,
    options: Options,
    user: User,
    *,
    about: str = "",
    email: str = "",
    password: str | None = None,
) -> Result[User]:
    """Update about/email (length-capped) and optionally the password."""
    changes: dict[str, str] = {
        "about": (about or "")[: options.get_int("about_max_length")],
        "email": (email or "")[: options.get_int("email_max_length")],
    }

    if password:
        min_length = options.get_int("password_min_length")
        if len(password) < min_length:
            return Result.failure(Reason.PASSWORD_TOO_SHORT, detail=str(min_length))
        changes["password"] = derive_key(password, user.salt, options)

    store.hash_set_many(keys.user(user.id), changes)
    return Result.success(dataclasses.replace(user, **changes))


# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------
def check_user_flags(user: User | None, flags: str) -> bool:
    return user is not None and user.has_flags(flags)


def is_admin(user: User | None) -> bool:
    return check_user_flags(user, ADMIN_FLAG)


def add_user_flags(store: RedisStore, user_id: int, flags: str) -> User | None:
    """Add each flag in *flags* the user does not already have."""
    user = get_user_by_id(store, user_id)
    if user is None:
        return None

    merged = user.flags + "".join(f for f in dict.fromkeys(flags) if f not in user.flags)
    if merged != user.flags:
        store.hash_set(keys.user(user.id), "flags", merged)
    return dataclasses.replace(user, flags=merged)


# ---------------------------------------------------------------------------
# Karma
# ---------------------------------------------------------------------------
def increment_karma(
    store: RedisStore, user: User, delta: int, min_interval: int = 0
) -> tuple[User, bool]:
    """Add *delta* karma to *user*.

    With ``min_interval > 0`` the increment only applies if that many seconds
    passed since the last one (the passive drip).  With ``0`` it always
    applies (vote costs and transfers).

    Returns ``(updated_user, applied)``.
    """
    user_key = keys.user(user.id)
    changes: dict[str, int] = {}

    if min_interval > 0:
        now = int(time.time())
        if not karma_drip_due(user.karma_incr_time, now, min_interval):
            return user, False
        store.hash_set(user_key, "karma_incr_time", now)
        changes["karma_incr_time"] = now

    changes["karma"] = store.hash_increment(user_key, "karma", delta)
    return dataclasses.replace(user, **changes), True


def apply_karma_drip(store: RedisStore, options: Options, user: User) -> tuple[User, bool]:
    """Passive karma accrual, called once per authenticated request."""
    return increment_karma(
        store,
        user,
        options.get_int("karma_increment_amount"),
        options.get_int("karma_increment_interval"),
    )
