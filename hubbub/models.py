"""
hubbub.models — Record Types
=============================

Typed records for the entities kept in the store, and the enums shared by
the engine and services.

Records:
- User      — account, credentials, karma (hash ``user:{id}``)
- NewsItem  — submitted link or text post (hash ``news:{id}``)
- Comment   — one entry of a thread (JSON field of ``thread:comment:{id}``)

``from_hash``/``to_hash`` convert between records and the flat string maps
the store returns.  Absent optional fields become ``None``, never a missing
key.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from urllib.parse import urlsplit

T = TypeVar("T")

TEXT_SCHEME = "text://"
TOP_LEVEL = -1  # parent id of top-level comments; comment id meaning "insert"
ADMIN_FLAG = "a"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class VoteDirection(enum.StrEnum):
    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: object) -> VoteDirection | None:
        """Return the direction for exactly ``"up"``/``"down"``, else None."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                return None
        return None

    @property
    def opposite(self) -> VoteDirection:
        return VoteDirection.DOWN if self is VoteDirection.UP else VoteDirection.UP


class FeedKind(enum.StrEnum):
    """Ranked views of the news collection."""
    TOP = "top"
    LATEST = "latest"


class CommentOp(enum.StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class User:
    """A registered account.  Never hard-deleted."""

    id: int
    username: str
    salt: str
    password: str  # hex PBKDF2 derived key
    ctime: int
    karma: int = 0
    karma_incr_time: int = 0
    about: str = ""
    email: str = ""
    auth: str = ""
    apisecret: str = ""
    flags: str = ""
    replies: int = 0  # unread replies counter

    @classmethod
    def from_hash(cls, data: dict[str, str] | None) -> User | None:
        if not data or "id" not in data:
            return None
        return cls(
            id=_int(data["id"]),
            username=data.get("username", ""),
            salt=data.get("salt", ""),
            password=data.get("password", ""),
            ctime=_int(data.get("ctime")),
            karma=_int(data.get("karma")),
            karma_incr_time=_int(data.get("karma_incr_time")),
            about=data.get("about", ""),
            email=data.get("email", ""),
            auth=data.get("auth", ""),
            apisecret=data.get("apisecret", ""),
            flags=data.get("flags", ""),
            replies=_int(data.get("replies")),
        )

    def to_hash(self) -> dict[str, str | int]:
        return {
            "id": self.id,
            "username": self.username,
            "salt": self.salt,
            "password": self.password,
            "ctime": self.ctime,
            "karma": self.karma,
            "karma_incr_time": self.karma_incr_time,
            "about": self.about,
            "email": self.email,
            "auth": self.auth,
            "apisecret": self.apisecret,
            "flags": self.flags,
            "replies": self.replies,
        }

    def has_flags(self, flags: str) -> bool:
        return all(flag in self.flags for flag in flags)

    @property
    def is_admin(self) -> bool:
        return self.has_flags(ADMIN_FLAG)


# ---------------------------------------------------------------------------
# NewsItem
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class NewsItem:
    """A submitted link or text post.

    Text posts carry their body in a synthetic ``text://`` URL, so exactly one
    of {external URL, inline text} is authoritative.  ``username`` and
    ``voted`` are per-request annotations, not stored fields.
    """

    id: int
    title: str
    url: str
    user_id: int
    ctime: int
    score: float = 0.0
    rank: float = 0.0
    up: int = 0
    down: int = 0
    comments: int = 0
    deleted: bool = False
    username: str | None = None
    voted: VoteDirection | None = None

    @classmethod
    def from_hash(cls, data: dict[str, str] | None) -> NewsItem | None:
        if not data or "id" not in data:
            return None
        return cls(
            id=_int(data["id"]),
            title=data.get("title", ""),
            url=data.get("url", ""),
            user_id=_int(data.get("user_id")),
            ctime=_int(data.get("ctime")),
            score=_float(data.get("score")),
            rank=_float(data.get("rank")),
            up=_int(data.get("up")),
            down=_int(data.get("down")),
            comments=_int(data.get("comments")),
            deleted=bool(_int(data.get("del"))),
        )

    def to_hash(self) -> dict[str, str | int | float]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "user_id": self.user_id,
            "ctime": self.ctime,
            "score": self.score,
            "rank": self.rank,
            "up": self.up,
            "down": self.down,
            "comments": self.comments,
            "del": int(self.deleted),
        }

    @property
    def is_text(self) -> bool:
        return self.url.startswith(TEXT_SCHEME)

    @property
    def text(self) -> str | None:
        """Inline body of a text post, or None for link posts."""
        if not self.is_text:
            return None
        return self.url[len(TEXT_SCHEME):]

    @property
    def domain(self) -> str | None:
        """Host of a link post, or None for text posts."""
        if self.is_text:
            return None
        return urlsplit(self.url).hostname


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class Comment:
    """One comment of a news item's thread.

    Stored as a JSON document under its sequential id in the thread hash.
    ``up``/``down`` are the voter id lists.  ``author``, ``voted`` and
    ``replies`` are filled in when building a tree.
    """

    id: int
    news_id: int
    parent_id: int
    user_id: int
    body: str
    ctime: int
    up: list[int] = field(default_factory=list)
    down: list[int] = field(default_factory=list)
    deleted: bool = False
    author: User | None = None
    voted: VoteDirection | None = None
    replies: list[Comment] = field(default_factory=list)

    @classmethod
    def from_json(cls, news_id: int, comment_id: int, raw: str | None) -> Comment | None:
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        if not isinstance(data, dict):
            return None
        return cls(
            id=comment_id,
            news_id=news_id,
            parent_id=_int(data.get("parent_id"), TOP_LEVEL),
            user_id=_int(data.get("user_id")),
            body=data.get("body") or "",
            ctime=_int(data.get("ctime")),
            up=[_int(v) for v in data.get("up") or []],
            down=[_int(v) for v in data.get("down") or []],
            deleted=bool(_int(data.get("del"))),
        )

    def to_json(self) -> str:
        return json.dumps({
            "body": self.body,
            "parent_id": self.parent_id,
            "user_id": self.user_id,
            "ctime": self.ctime,
            "up": self.up,
            "down": self.down,
            "del": int(self.deleted),
        })

    @property
    def ref(self) -> str:
        return f"{self.news_id}-{self.id}"


@dataclass(frozen=True, slots=True)
class CommentChange:
    """What :func:`~hubbub.services.comment_service.handle_comment` did."""

    op: CommentOp
    news_id: int
    comment_id: int


@dataclass(frozen=True, slots=True)
class VoteOutcome:
    """A recorded news vote: the item's new rank and the voter afterwards.

    Callers keep using ``voter`` for the rest of the request so later karma
    checks see the cost of this vote.
    """

    rank: float
    voter: User


@dataclass(slots=True)
class Page(Generic[T]):
    """One page of a paginated view; ``total`` is the full collection size."""

    items: list[T] = field(default_factory=list)
    total: int = 0
