"""
tests/test_threads.py — Comment Tree Helper Tests
==================================================
"""

from __future__ import annotations

from hubbub.engine.threads import build_tree, comment_score, comment_voted, sort_comments, top_level
from hubbub.models import TOP_LEVEL, Comment, VoteDirection


def _comment(cid: int, parent: int = TOP_LEVEL, ctime: int = 0, up=(), down=()) -> Comment:
    return Comment(
        id=cid, news_id=1, parent_id=parent, user_id=1, body=f"c{cid}",
        ctime=ctime, up=list(up), down=list(down),
    )


class TestBuildTree:
    def test_groups_by_parent(self):
        tree = build_tree([_comment(1), _comment(2, parent=1), _comment(3, parent=1)])
        assert [c.id for c in top_level(tree)] == [1]
        assert [c.id for c in tree[1]] == [2, 3]

    def test_replies_point_at_children_group(self):
        tree = build_tree([_comment(1), _comment(2, parent=1)])
        root = top_level(tree)[0]
        assert root.replies is tree[1]
        assert root.replies[0].replies == []

    def test_empty_thread(self):
        assert top_level(build_tree([])) == []


class TestSortComments:
    def test_score_then_recency(self):
        low = _comment(1, ctime=300, up=[1])
        high = _comment(2, ctime=100, up=[1, 2, 3])
        tie_old = _comment(3, ctime=100, up=[1])
        ordered = sort_comments([tie_old, low, high])
        assert [c.id for c in ordered] == [2, 1, 3]

    def test_score_counts_downvotes(self):
        assert comment_score(_comment(1, up=[1, 2], down=[3, 4, 5])) == -1


class TestCommentVoted:
    def test_directions(self):
        comment = _comment(1, up=[7], down=[8])
        assert comment_voted(7, comment) is VoteDirection.UP
        assert comment_voted(8, comment) is VoteDirection.DOWN
        assert comment_voted(9, comment) is None

    def test_anonymous(self):
        assert comment_voted(None, _comment(1, up=[7])) is None
