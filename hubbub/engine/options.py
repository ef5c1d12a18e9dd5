"""
hubbub.engine.options — Engine Tunables
========================================

Single catalogue of every named tunable the engine reads, with its default,
category and description.  :class:`Options` wraps a flat mapping (usually
the ``options`` section of ``config.yaml``) and falls back to the catalogue
when a key is missing or cannot be coerced.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default tunables catalogue
# ---------------------------------------------------------------------------
DEFAULT_OPTIONS: dict[str, tuple[object, str, str]] = {
    # accounts
    "password_min_length": (8, "accounts", "Minimum password length"),
    "password_hash_algorithm": ("sha1", "accounts", "PBKDF2 HMAC digest"),
    "password_iterations": (1000, "accounts", "PBKDF2 iteration count"),
    "password_key_bits": (160, "accounts", "PBKDF2 derived key length in bits"),
    "account_creation_delay": (
        3600 * 15, "accounts", "Seconds between account creations from one client",
    ),
    "about_max_length": (4095, "accounts", "Max length of the profile 'about' text"),
    "email_max_length": (255, "accounts", "Max length of the profile email"),
    # comments
    "comment_max_length": (4096, "comments", "Max comment length (and text post length)"),
    "comment_edit_time": (3600 * 2, "comments", "Seconds a comment stays editable"),
    "user_comments_per_page": (10, "comments", "Comments per user history page"),
    "subthreads_in_replies_page": (10, "comments", "Sub-threads shown on the replies page"),
    # karma
    "user_initial_karma": (1, "karma", "Karma given to new accounts"),
    "karma_increment_interval": (3600 * 3, "karma", "Min seconds between karma drips"),
    "karma_increment_amount": (1, "karma", "Karma added per drip"),
    "news_downvote_min_karma": (30, "karma", "Karma required to downvote news"),
    "news_downvote_karma_cost": (6, "karma", "Karma a downvote costs the voter"),
    "news_upvote_min_karma": (0, "karma", "Karma required to upvote news"),
    "news_upvote_karma_cost": (1, "karma", "Karma an upvote costs the voter"),
    "news_upvote_karma_transfered": (1, "karma", "Karma an upvote gives the author"),
    # news and ranking
    "news_age_padding": (60 * 60 * 8, "ranking", "Seconds added to every item's age"),
    "news_score_log_start": (10, "ranking", "Vote volume above which the log boost applies"),
    "news_score_log_booster": (2, "ranking", "Multiplier of the log boost"),
    "rank_aging_factor": (2.2, "ranking", "Exponent of the age decay"),
    "top_news_per_page": (30, "news", "Items per top page"),
    "latest_news_per_page": (100, "news", "Items per latest page"),
    "saved_news_per_page": (10, "news", "Items per saved page"),
    "news_edit_time": (60 * 15, "news", "Seconds a news item stays editable"),
    "prevent_repost_time": (3600 * 48, "news", "Seconds a URL stays locked after posting"),
    "news_submission_break": (60 * 15, "news", "Seconds between submissions of one user"),
    "api_max_news_count": (32, "news", "Max items per feed request"),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


class Options:
    """Read-only typed view over a flat mapping of tunables.

    Usage::

        options = Options({"rank_aging_factor": 1.8})
        options.get_float("rank_aging_factor")     # 1.8
        options.get_int("news_edit_time")          # 900 (catalogue default)
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})
        unknown = set(self._values) - set(DEFAULT_OPTIONS)
        if unknown:
            logger.debug("Options contain unknown keys: %s", ", ".join(sorted(unknown)))

    def get(self, key: str, default: Any = None) -> Any:
        """Return the raw value for *key*, then the catalogue default, then *default*."""
        if key in self._values and self._values[key] is not None:
            return self._values[key]
        if key in DEFAULT_OPTIONS:
            return DEFAULT_OPTIONS[key][0]
        return default

    def get_int(self, key: str, default: int = 0) -> int:
        val = self.get(key)
        if val is None:
            return default
        try:
            return int(val)
        except (TypeError, ValueError):
            return self._fallback(key, default, int)

    def get_float(self, key: str, default: float = 0.0) -> float:
        val = self.get(key)
        if val is None:
            return default
        try:
            return float(val)
        except (TypeError, ValueError):
            return self._fallback(key, default, float)

    def get_str(self, key: str, default: str = "") -> str:
        val = self.get(key)
        return default if val is None else str(val)

    def get_bool(self, key: str, default: bool = False) -> bool:
        val = self.get(key)
        if val is None:
            return default
        if isinstance(val, str):
            return val.strip().lower() in ("1", "true", "yes", "on")
        return bool(val)

    def as_dict(self) -> dict[str, Any]:
        """Every catalogue key with its effective value, plus unknown extras."""
        merged = {key: spec[0] for key, spec in DEFAULT_OPTIONS.items()}
        merged.update({k: v for k, v in self._values.items() if v is not None})
        return merged

    def _fallback(self, key: str, default: Any, cast: type) -> Any:
        logger.warning("Option %s=%r is not a valid %s", key, self._values.get(key), cast.__name__)
        if key in DEFAULT_OPTIONS:
            return cast(DEFAULT_OPTIONS[key][0])
        return default
