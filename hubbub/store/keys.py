"""
hubbub.store.keys — Persisted Key Layout
=========================================

Every key the engine reads or writes is built here, so the layout can be
audited in one place.
"""

from __future__ import annotations

USERS_COUNT = "users.count"
NEWS_COUNT = "news.count"
NEWS_TOP = "news.top"        # sorted set: news id → rank
NEWS_LATEST = "news.cron"    # sorted set: news id → creation time

# Field of the comment thread hash holding the last issued comment id.
THREAD_NEXT_ID = "nextid"


def user(user_id: int | str) -> str:
    return f"user:{user_id}"


def username_index(username: str) -> str:
    return f"username.to.id:{username.lower()}"


def auth_token(token: str) -> str:
    return f"auth:{token}"


def submitted_recently(user_id: int | str) -> str:
    return f"user:{user_id}:submitted_recently"


def news(news_id: int | str) -> str:
    return f"news:{news_id}"


def url_lock(url: str) -> str:
    return f"url:{url}"


def news_votes(news_id: int | str, direction: str) -> str:
    """Sorted set of voter ids (scored by vote time) for *direction*."""
    return f"news.{direction}:{news_id}"


def user_saved(user_id: int | str) -> str:
    return f"user.saved:{user_id}"


def user_posted(user_id: int | str) -> str:
    return f"user.posted:{user_id}"


def user_comments(user_id: int | str) -> str:
    return f"user.comments:{user_id}"


def comment_ref(news_id: int | str, comment_id: int | str) -> str:
    """Member stored in a user's comment history."""
    return f"{news_id}-{comment_id}"


def parse_comment_ref(ref: str) -> tuple[int, int] | None:
    news_id, sep, comment_id = ref.partition("-")
    if not sep:
        return None
    try:
        return int(news_id), int(comment_id)
    except ValueError:
        return None


def thread(news_id: int | str) -> str:
    return f"thread:comment:{news_id}"


def rate_limit(tags: list[str]) -> str:
    return "limit:" + ".".join(tags)
