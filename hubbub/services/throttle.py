"""
hubbub.services.throttle — Expiring-Lock Rate Limiting
=======================================================

Rate limits are plain store keys with a server-side TTL; there are no
in-process timers.  A lock keyed by the joined tags (e.g. action name +
client IP) blocks the same action until it expires.
"""

from __future__ import annotations

import logging

from hubbub.engine.options import Options
from hubbub.store import keys
from hubbub.store.redis_store import RedisStore

logger = logging.getLogger(__name__)


def rate_limited(store: RedisStore, window_seconds: int, tags: list[str]) -> bool:
    """Return True if the tagged action is locked, otherwise take the lock.

    The check and the lock are a single set-if-absent with expiry, so two
    concurrent callers cannot both get through.  No tags means no limit.
    """
    tags = [str(tag) for tag in tags if tag is not None and str(tag) != ""]
    if not tags:
        return False

    key = keys.rate_limit(tags)
    acquired = store.set(key, 1, expire=max(int(window_seconds), 1), only_if_absent=True)
    if not acquired:
        logger.debug("Rate limited: %s", key)
        return True
    return False


def get_new_post_eta(store: RedisStore, user_id: int) -> int:
    """Seconds before *user_id* may submit again (0 if allowed now)."""
    return max(store.ttl(keys.submitted_recently(user_id)), 0)


def mark_submitted(store: RedisStore, options: Options, user_id: int) -> None:
    """Start the user's submission break."""
    seconds = options.get_int("news_submission_break")
    if seconds > 0:
        store.set_with_expiry(keys.submitted_recently(user_id), seconds, 1)
