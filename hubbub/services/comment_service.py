"""
hubbub.services.comment_service — Comment Threads
==================================================

Each news item owns one thread hash (``thread:comment:{news_id}``): every
field is a sequential comment id holding the comment as JSON, plus a
``nextid`` counter field.  Comments are never removed, only flagged, so the
thread structure survives deletions.

:func:`handle_comment` is the single entry point for insert / update /
delete.  Reads rebuild the parent → children tree on demand.
"""

from __future__ import annotations

import logging
import time

from hubbub.engine.options import Options
from hubbub.engine.threads import CommentTree, build_tree, comment_voted
from hubbub.errors import Reason, Result
from hubbub.models import TOP_LEVEL, Comment, CommentChange, CommentOp, NewsItem, Page, User
from hubbub.services.user_service import get_users_by_ids
from hubbub.store import keys
from hubbub.store.redis_store import RedisStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Single-comment storage
# ---------------------------------------------------------------------------
def get_comment(store: RedisStore, news_id: int, comment_id: int) -> Comment | None:
    raw = store.hash_get(keys.thread(news_id), comment_id)
    return Comment.from_json(int(news_id), int(comment_id), raw)


def save_comment(store: RedisStore, comment: Comment) -> None:
    """Overwrite the stored JSON of an existing comment."""
    store.hash_set(keys.thread(comment.news_id), comment.id, comment.to_json())


def _body_too_long(body: str, options: Options) -> bool:
    return len(body) > options.get_int("comment_max_length")


# ---------------------------------------------------------------------------
# Insert / update / delete
# ---------------------------------------------------------------------------
def handle_comment(
    store: RedisStore,
    options: Options,
    user: User,
    news_id: int,
    comment_id: int,
    parent_id: int = TOP_LEVEL,
    body: str | None = None,
) -> Result[CommentChange]:
    """Insert, edit or soft-delete a comment.

    * ``comment_id == -1`` inserts a new comment under *parent_id*.
    * an existing *comment_id* with a non-empty *body* edits it (and restores
      it if it was deleted).
    * an existing *comment_id* with an empty *body* deletes it.  A body of
      only whitespace is an edit, not a delete.

    Edits and deletes are limited to the author, within
    ``comment_edit_time`` seconds of the comment's own creation.
    """
    news = NewsItem.from_hash(store.hash_get_all(keys.news(news_id)))
    if news is None or news.deleted:
        return Result.failure(Reason.NOT_FOUND)

    body = body or ""
    if int(comment_id) == TOP_LEVEL:
        return _insert_comment(store, options, user, news, int(parent_id), body)

    existing = get_comment(store, news.id, comment_id)
    if existing is None:
        return Result.failure(Reason.NOT_FOUND)
    if existing.user_id != user.id:
        return Result.failure(Reason.NOT_AUTHOR)
    if existing.ctime <= int(time.time()) - options.get_int("comment_edit_time"):
        return Result.failure(Reason.EDIT_WINDOW_EXPIRED)

    if not body:
        return _delete_comment(store, existing)
    if _body_too_long(body, options):
        return Result.failure(Reason.INVALID_INPUT)
    return _update_comment(store, existing, body)


def _insert_comment(
    store: RedisStore,
    options: Options,
    user: User,
    news: NewsItem,
    parent_id: int,
    body: str,
) -> Result[CommentChange]:
    if not body.strip() or _body_too_long(body, options):
        return Result.failure(Reason.INVALID_INPUT)

    parent: Comment | None = None
    if parent_id != TOP_LEVEL:
        parent = get_comment(store, news.id, parent_id)
        if parent is None:
            return Result.failure(Reason.NOT_FOUND)

    now = int(time.time())
    comment_id = store.hash_increment(keys.thread(news.id), keys.THREAD_NEXT_ID, 1)
    comment = Comment(
        id=comment_id,
        news_id=news.id,
        parent_id=parent_id,
        user_id=user.id,
        body=body,
        ctime=now,
        up=[user.id],
    )
    save_comment(store, comment)

    store.hash_increment(keys.news(news.id), "comments", 1)
    store.sorted_set_add(keys.user_comments(user.id), now, comment.ref)

    if parent is not None and store.exists(keys.user(parent.user_id)):
        store.hash_increment(keys.user(parent.user_id), "replies", 1)

    logger.info("User %d commented on news %d (comment %d)", user.id, news.id, comment_id)
    return Result.success(CommentChange(CommentOp.INSERT, news.id, comment_id))


def _update_comment(store: RedisStore, comment: Comment, body: str) -> Result[CommentChange]:
    restored = comment.deleted
    comment.body = body
    comment.deleted = False
    save_comment(store, comment)
    if restored:
        store.hash_increment(keys.news(comment.news_id), "comments", 1)
    return Result.success(CommentChange(CommentOp.UPDATE, comment.news_id, comment.id))


def _delete_comment(store: RedisStore, comment: Comment) -> Result[CommentChange]:
    if not comment.deleted:
        comment.deleted = True
        save_comment(store, comment)
        store.hash_increment(keys.news(comment.news_id), "comments", -1)
        logger.info("Comment %s deleted by its author", comment.ref)
    return Result.success(CommentChange(CommentOp.DELETE, comment.news_id, comment.id))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _annotate(store: RedisStore, user: User | None, comments: list[Comment]) -> None:
    authors = get_users_by_ids(store, [c.user_id for c in comments])
    user_id = user.id if user is not None else None
    for comment in comments:
        comment.author = authors.get(comment.user_id)
        comment.voted = comment_voted(user_id, comment)


def get_comments(store: RedisStore, user: User | None, news_id: int) -> list[Comment]:
    """Every comment of a news item, annotated with author and vote state."""
    comments: list[Comment] = []
    for field, raw in store.hash_get_all(keys.thread(news_id)).items():
        if field == keys.THREAD_NEXT_ID:
            continue
        try:
            comment_id = int(field)
        except ValueError:
            logger.warning("Ignoring unexpected field %r in thread %s", field, news_id)
            continue
        comment = Comment.from_json(int(news_id), comment_id, raw)
        if comment is not None:
            comments.append(comment)

    _annotate(store, user, comments)
    return comments


def get_comments_tree(store: RedisStore, user: User | None, news_id: int) -> CommentTree:
    """Parent id → children mapping for a news item; ``-1`` is the top level."""
    return build_tree(get_comments(store, user, news_id))


def get_user_comments(
    store: RedisStore,
    options: Options,
    user: User,
    start: int = 0,
    count: int | None = None,
) -> Page[Comment]:
    """One page of *user*'s comment history, most recent first."""
    if count is None:
        count = options.get_int("user_comments_per_page")
    history_key = keys.user_comments(user.id)
    refs = store.sorted_set_rev_range(history_key, max(start, 0), count)
    total = store.sorted_set_cardinality(history_key)

    located = [parsed for parsed in map(keys.parse_comment_ref, refs) if parsed is not None]
    batch = store.batch()
    for news_id, comment_id in located:
        batch.hash_get(keys.thread(news_id), comment_id)

    comments: list[Comment] = []
    for (news_id, comment_id), raw in zip(located, batch.execute()):
        comment = Comment.from_json(news_id, comment_id, raw)
        if comment is None:
            continue
        comment.author = user
        comment.voted = comment_voted(user.id, comment)
        comments.append(comment)
    return Page(items=comments, total=total)


def get_replies(
    store: RedisStore, options: Options, user: User, reset: bool = False
) -> list[Comment]:
    """The user's most recent comments, each with its sub-thread of replies.

    With *reset* the user's unread ``replies`` counter goes back to zero.
    """
    recent = get_user_comments(
        store, options, user, 0, options.get_int("subthreads_in_replies_page")
    ).items

    trees: dict[int, CommentTree] = {}
    subthreads: list[Comment] = []
    for mine in recent:
        if mine.news_id not in trees:
            trees[mine.news_id] = get_comments_tree(store, user, mine.news_id)
        siblings = trees[mine.news_id].get(mine.parent_id, [])
        node = next((c for c in siblings if c.id == mine.id), None)
        if node is not None:
            subthreads.append(node)

    if reset:
        store.hash_set(keys.user(user.id), "replies", 0)
    return subthreads
