"""
hubbub.services.vote_service — News & Comment Voting
=====================================================

A vote is membership of the voter's id in one of the item's two sorted sets
(``news.up:{id}`` / ``news.down:{id}``), scored by the vote time.  Votes are
at-most-once, irrevocable and not switchable.

Concurrency
-----------
Nothing here takes an application-level lock.  Per-user exclusivity relies
on the store: the vote is recorded with an add-if-new insert, and the
opposite set is checked again afterwards so a racing opposite vote from the
same user is rolled back.  Score and rank recomputation from two different
voters may interleave; the last writer wins until the next read refreshes
the rank.
"""

from __future__ import annotations

import logging
import time

from hubbub.engine.karma import can_vote, vote_karma_deltas
from hubbub.engine.options import Options
from hubbub.engine.ranking import compute_rank, compute_score
from hubbub.engine.threads import comment_score
from hubbub.errors import Reason, Result
from hubbub.models import NewsItem, User, VoteDirection, VoteOutcome
from hubbub.services.comment_service import get_comment, save_comment
from hubbub.services.throttle import rate_limited
from hubbub.services.user_service import get_user_by_id, increment_karma
from hubbub.store import keys
from hubbub.store.redis_store import RedisStore

logger = logging.getLogger(__name__)

__all__ = ["rate_limited", "vote_comment", "vote_news"]


def _resolve_user(store: RedisStore, user: User | int | None) -> User | None:
    if user is None or isinstance(user, User):
        return user
    return get_user_by_id(store, user)


def _transfer_karma(store: RedisStore, user_id: int, delta: int) -> None:
    """Credit karma to a user we only know by id (the news author)."""
    user_key = keys.user(user_id)
    if store.exists(user_key):
        store.hash_increment(user_key, "karma", delta)


# ---------------------------------------------------------------------------
# News votes
# ---------------------------------------------------------------------------
def vote_news(
    store: RedisStore,
    options: Options,
    news_id: int,
    user: User | int,
    direction: str | VoteDirection,
) -> Result[VoteOutcome]:
    """Cast *user*'s vote on a news item.

    On success the :class:`~hubbub.models.VoteOutcome` holds the item's new
    rank and the voter record with its karma cost applied.

    Rejections, checked in this order: ``invalid_vote_type``,
    ``not_found`` (user or item missing, or item deleted),
    ``duplicate_vote``, ``insufficient_karma``.
    """
    vote = VoteDirection.parse(direction)
    if vote is None:
        return Result.failure(Reason.INVALID_VOTE_TYPE)

    voter = _resolve_user(store, user)
    news = NewsItem.from_hash(store.hash_get_all(keys.news(news_id)))
    if voter is None or news is None or news.deleted:
        return Result.failure(Reason.NOT_FOUND)

    vote_key = keys.news_votes(news.id, vote)
    opposite_key = keys.news_votes(news.id, vote.opposite)

    already = store.batch().sorted_set_score(vote_key, voter.id).sorted_set_score(
        opposite_key, voter.id
    ).execute()
    if any(score is not None for score in already):
        logger.debug("User %d already voted on news %d", voter.id, news.id)
        return Result.failure(Reason.DUPLICATE_VOTE)

    self_vote = voter.id == news.user_id
    if not self_vote and not can_vote(voter.karma, vote, options):
        logger.debug(
            "User %d (karma %d) cannot %svote news %d", voter.id, voter.karma, vote, news.id,
        )
        return Result.failure(Reason.INSUFFICIENT_KARMA)

    # Record the vote; losing either race means another request from the
    # same user got there first.
    now = int(time.time())
    if not store.sorted_set_add(vote_key, now, voter.id, only_new=True):
        return Result.failure(Reason.DUPLICATE_VOTE)
    if store.sorted_set_score(opposite_key, voter.id) is not None:
        store.sorted_set_remove(vote_key, voter.id)
        return Result.failure(Reason.DUPLICATE_VOTE)

    store.hash_increment(keys.news(news.id), vote.value, 1)
    if vote is VoteDirection.UP:
        store.sorted_set_add(keys.user_saved(voter.id), now, news.id)

    rank = _refresh_score(store, options, news, now)

    if not self_vote:
        voter_delta, author_delta = vote_karma_deltas(vote, options)
        voter, _ = increment_karma(store, voter, voter_delta)
        if author_delta:
            _transfer_karma(store, news.user_id, author_delta)

    logger.info("User %d %svoted news %d → rank %.4f", voter.id, vote, news.id, rank)
    return Result.success(VoteOutcome(rank=rank, voter=voter))


def _refresh_score(store: RedisStore, options: Options, news: NewsItem, now: int) -> float:
    """Recompute score and rank from the vote sets and persist both."""
    up, down = (
        store.batch()
        .sorted_set_cardinality(keys.news_votes(news.id, VoteDirection.UP))
        .sorted_set_cardinality(keys.news_votes(news.id, VoteDirection.DOWN))
        .execute()
    )
    score = compute_score(up or 0, down or 0, options)
    rank = compute_rank(score, news.ctime, now, options)

    store.hash_set_many(keys.news(news.id), {"score": score, "rank": rank})
    store.sorted_set_add(keys.NEWS_TOP, rank, news.id)
    return rank


# ---------------------------------------------------------------------------
# Comment votes
# ---------------------------------------------------------------------------
def vote_comment(
    store: RedisStore,
    user: User,
    news_id: int,
    comment_id: int,
    direction: str | VoteDirection,
) -> Result[int]:
    """Add *user* to a comment's up or down voter list; returns its new score.

    No karma gate and no transfer.  A second vote by the same user, in
    either direction, fails with ``invalid_or_duplicate``.
    """
    vote = VoteDirection.parse(direction)
    if vote is None:
        return Result.failure(Reason.INVALID_VOTE_TYPE)

    comment = get_comment(store, news_id, comment_id)
    if comment is None or comment.deleted:
        return Result.failure(Reason.NOT_FOUND)

    if user.id in comment.up or user.id in comment.down:
        return Result.failure(Reason.INVALID_OR_DUPLICATE)

    voters = comment.up if vote is VoteDirection.UP else comment.down
    voters.append(user.id)
    save_comment(store, comment)

    logger.debug("User %d %svoted comment %s", user.id, vote, comment.ref)
    return Result.success(comment_score(comment))
