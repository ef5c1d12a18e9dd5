"""
tests/test_ranking.py — Score & Rank Formula Tests
===================================================
"""

from __future__ import annotations

import math

import pytest

from hubbub.engine.options import Options
from hubbub.engine.ranking import RANK_EPSILON, compute_rank, compute_score, rank_drifted


class TestComputeScore:
    @pytest.mark.parametrize(
        "up,down,expected",
        [
            (0, 0, 0.0),
            (1, 0, 1.0),
            (3, 5, -2.0),
            (10, 0, 10.0),  # exactly log_start votes: no boost
        ],
    )
    def test_plain_difference_up_to_threshold(self, up, down, expected):
        assert compute_score(up, down) == expected

    def test_log_boost_past_threshold(self):
        # 12 votes, log_start 10, booster 2
        assert compute_score(12, 0) == pytest.approx(12 + math.log(2) * 2)

    def test_boost_counts_total_volume(self):
        # 8 up + 4 down = 12 votes
        assert compute_score(8, 4) == pytest.approx(4 + math.log(2) * 2)

    def test_custom_threshold_and_booster(self):
        opts = Options({"news_score_log_start": 1, "news_score_log_booster": 3})
        assert compute_score(3, 0, opts) == pytest.approx(3 + math.log(2) * 3)


class TestComputeRank:
    def test_exponent_form(self):
        opts = Options({"news_age_padding": 0, "rank_aging_factor": 1})
        assert compute_rank(2.0, 0, 7200, opts) == pytest.approx(1.0)

    def test_padding_applies_to_new_items(self):
        opts = Options({"news_age_padding": 3600, "rank_aging_factor": 2.2})
        assert compute_rank(1.0, 1000, 1000, opts) == pytest.approx(1.0)

    def test_default_options(self):
        # 8h of padding, aging 2.2
        assert compute_rank(1.0, 0, 0) == pytest.approx(1 / 8 ** 2.2)

    def test_rank_decays_with_age(self):
        young = compute_rank(5.0, 0, 3600)
        old = compute_rank(5.0, 0, 3600 * 24)
        assert young > old > 0

    def test_zero_age_does_not_divide_by_zero(self):
        opts = Options({"news_age_padding": 0})
        assert math.isfinite(compute_rank(1.0, 100, 100, opts))

    def test_negative_score_keeps_sign(self):
        assert compute_rank(-3.0, 0, 3600) < 0


class TestRankDrift:
    def test_within_epsilon(self):
        assert not rank_drifted(1.0, 1.0 + RANK_EPSILON / 2)

    def test_beyond_epsilon(self):
        assert rank_drifted(1.0, 1.0 + RANK_EPSILON * 2)
        assert rank_drifted(1.0, 1.0 - RANK_EPSILON * 2)
