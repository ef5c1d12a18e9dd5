"""
hubbub.engine.karma — Karma Economy Rules
==========================================

Pure rules for the karma economy; the service layer applies them.

* Voting on someone else's news needs a minimum karma, higher for
  downvotes than for upvotes.
* An upvote costs the voter ``news_upvote_karma_cost`` and gives the author
  ``news_upvote_karma_transfered``; a downvote only costs the voter.
* Self-votes (the implicit upvote at submission) are free.
* The passive karma drip is applied at most once per
  ``karma_increment_interval``.
"""

from __future__ import annotations

import logging

from hubbub.engine.options import Options
from hubbub.models import VoteDirection

logger = logging.getLogger(__name__)

_DEFAULT_OPTIONS = Options()


def min_karma_to_vote(direction: VoteDirection, options: Options | None = None) -> int:
    opts = options or _DEFAULT_OPTIONS
    if direction is VoteDirection.DOWN:
        return opts.get_int("news_downvote_min_karma")
    return opts.get_int("news_upvote_min_karma")


def can_vote(
    voter_karma: int, direction: VoteDirection, options: Options | None = None
) -> bool:
    """Whether a voter with *voter_karma* may cast a *direction* vote."""
    return voter_karma >= min_karma_to_vote(direction, options)


def vote_karma_deltas(
    direction: VoteDirection, options: Options | None = None
) -> tuple[int, int]:
    """Return ``(voter_delta, author_delta)`` for a vote on someone else's item."""
    opts = options or _DEFAULT_OPTIONS
    if direction is VoteDirection.UP:
        cost = opts.get_int("news_upvote_karma_cost")
        transferred = opts.get_int("news_upvote_karma_transfered")
        if transferred > cost:
            logger.warning(
                "Upvote transfers more karma (%d) than it costs (%d); karma is being minted",
                transferred, cost,
            )
        return -cost, transferred
    return -opts.get_int("news_downvote_karma_cost"), 0


def karma_drip_due(last_increment: int, now: int, interval: int) -> bool:
    """True when at least *interval* seconds passed since *last_increment*."""
    return last_increment < now - interval
