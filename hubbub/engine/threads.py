"""
hubbub.engine.threads — Comment Tree Helpers
=============================================

Pure helpers over :class:`~hubbub.models.Comment` records: vote state,
scoring, sibling ordering and parent → children grouping.  Storage imposes
no order on a thread; callers sort siblings at display time.
"""

from __future__ import annotations

from collections.abc import Iterable

from hubbub.models import TOP_LEVEL, Comment, VoteDirection

CommentTree = dict[int, list[Comment]]


def comment_voted(user_id: int | None, comment: Comment) -> VoteDirection | None:
    """Which way *user_id* voted on *comment*, if at all."""
    if user_id is None:
        return None
    if user_id in comment.up:
        return VoteDirection.UP
    if user_id in comment.down:
        return VoteDirection.DOWN
    return None


def comment_score(comment: Comment) -> int:
    return len(comment.up) - len(comment.down)


def sort_comments(comments: Iterable[Comment]) -> list[Comment]:
    """Siblings by score, then recency, both descending."""
    return sorted(comments, key=lambda c: (comment_score(c), c.ctime), reverse=True)


def build_tree(comments: Iterable[Comment]) -> CommentTree:
    """Group comments by parent id and link each one to its children.

    Every comment's ``replies`` is the very list stored under its id in the
    returned mapping (empty if it has no children).  Group ``-1`` holds the
    top-level comments.
    """
    tree: CommentTree = {}
    flat = list(comments)
    for comment in flat:
        tree.setdefault(comment.parent_id, []).append(comment)
    for comment in flat:
        comment.replies = tree.get(comment.id, [])
    return tree


def top_level(tree: CommentTree) -> list[Comment]:
    return tree.get(TOP_LEVEL, [])
