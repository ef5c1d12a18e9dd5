"""
hubbub.engine.ranking — Score & Rank Formulas
==============================================

Pure functions, no store I/O.  This is the canonical ranking law:

    score = (up - down) + ln(votes - log_start) * log_booster   if votes > log_start
    score = (up - down)                                         otherwise

    age   = now - ctime + age_padding                  (seconds)
    rank  = score / (age / 3600) ** rank_aging_factor

The aging factor is always an exponent.  ``age_padding`` keeps brand-new
items from getting a near-infinite rank.
"""

from __future__ import annotations

import math

from hubbub.engine.options import Options

RANK_EPSILON = 0.001
"""Cached ranks closer than this to the fresh value are left alone."""

_DEFAULT_OPTIONS = Options()


def compute_score(up: int, down: int, options: Options | None = None) -> float:
    """Vote-tally score with a logarithmic boost past ``news_score_log_start``.

    The threshold comparison is strict: exactly ``log_start`` votes gets no
    boost.
    """
    opts = options or _DEFAULT_OPTIONS
    log_start = opts.get_float("news_score_log_start")
    booster = opts.get_float("news_score_log_booster")

    score = float(up - down)
    votes = up + down
    if votes > log_start:
        score += math.log(votes - log_start) * booster
    return score


def compute_rank(
    score: float, ctime: int | float, now: int | float, options: Options | None = None
) -> float:
    """Time-decayed rank of an item created at *ctime*, evaluated at *now*."""
    opts = options or _DEFAULT_OPTIONS
    padding = opts.get_float("news_age_padding")
    aging = opts.get_float("rank_aging_factor")

    # A zero or negative age (clock skew, zero padding) would divide by zero.
    age = max(float(now) - float(ctime) + padding, 1.0)
    return float(score) / math.pow(age / 3600.0, aging)


def rank_drifted(cached: float, fresh: float) -> bool:
    """True when a cached rank must be refreshed."""
    return abs(fresh - cached) > RANK_EPSILON
