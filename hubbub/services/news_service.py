"""
hubbub.services.news_service — Submission, Editing & Ranked Views
==================================================================

News items live in ``news:{id}`` hashes and are indexed by two global sorted
sets: ``news.top`` (by rank) and ``news.cron`` (by creation time).

Ranks are refreshed lazily: whenever a ranked view is read, each item's rank
is recomputed and written back (hash + ``news.top``) if it drifted by more
than :data:`~hubbub.engine.ranking.RANK_EPSILON`.  There is no background job.

Repost suppression: a link post locks ``url:{normalized url}`` for
``prevent_repost_time`` seconds, holding the item id.  Submitting the same
URL while it is locked returns the existing id instead of a new item.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from urllib.parse import urlsplit, urlunsplit

from hubbub.engine.options import Options
from hubbub.engine.ranking import compute_rank, rank_drifted
from hubbub.errors import Reason, Result
from hubbub.models import TEXT_SCHEME, FeedKind, NewsItem, Page, User, VoteDirection
from hubbub.services.throttle import get_new_post_eta, mark_submitted
from hubbub.services.vote_service import vote_news
from hubbub.store import keys
from hubbub.store.redis_store import RedisStore

logger = logging.getLogger(__name__)

WEB_SCHEMES = ("http", "https")


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------
def normalize_url(url: str) -> str:
    """Strip whitespace and lower-case the scheme and host."""
    url = url.strip()
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment)
    )


def is_web_url(url: str) -> bool:
    parts = urlsplit(url)
    return parts.scheme.lower() in WEB_SCHEMES and bool(parts.netloc)


def _content_url(
    options: Options, url: str | None, text: str | None
) -> tuple[str | None, Reason | None]:
    """Return the URL to store for a link or text post, or a failure reason.

    A given URL always wins; *text* is only stored when no URL is given.
    """
    url = (url or "").strip()
    text = (text or "").strip()
    if not url and not text:
        return None, Reason.INVALID_INPUT
    if not url:
        return TEXT_SCHEME + text[: options.get_int("comment_max_length")], None
    url = normalize_url(url)
    if not is_web_url(url):
        return None, Reason.INVALID_URL
    return url, None


def _load(store: RedisStore, news_id: int) -> NewsItem | None:
    return NewsItem.from_hash(store.hash_get_all(keys.news(news_id)))


def _edit_window_open(options: Options, news: NewsItem, now: int) -> bool:
    return news.ctime >= now - options.get_int("news_edit_time")


def _release_url_lock(store: RedisStore, news: NewsItem) -> None:
    """Drop the repost lock of *news* if it still points at this item."""
    if news.is_text:
        return
    lock_key = keys.url_lock(news.url)
    if store.get(lock_key) == str(news.id):
        store.delete(lock_key)


# ---------------------------------------------------------------------------
# Submission, edit, delete
# ---------------------------------------------------------------------------
def submit_news(
    store: RedisStore,
    options: Options,
    user: User,
    title: str,
    url: str | None = None,
    text: str | None = None,
) -> Result[int]:
    """Create a link or text post and return its id.

    A link post is created when *url* is given (any *text* is ignored), a
    text post when only *text* is.  A link whose URL is
    still repost-locked returns the id of the existing item.
    """
    title = (title or "").strip()
    if not title:
        return Result.failure(Reason.INVALID_INPUT)

    content_url, reason = _content_url(options, url, text)
    if reason is not None:
        return Result.failure(reason)

    eta = get_new_post_eta(store, user.id)
    if eta > 0:
        return Result.failure(Reason.SUBMITTED_TOO_RECENTLY, detail=str(eta))

    is_text = content_url.startswith(TEXT_SCHEME)
    lock_key = keys.url_lock(content_url)
    if not is_text:
        existing = store.get(lock_key)
        if existing:
            logger.info("Repost of %s suppressed, returning news %s", content_url, existing)
            return Result.success(int(existing))

    news_id = store.increment(keys.NEWS_COUNT)
    if not is_text and not store.set(
        lock_key, news_id, expire=max(options.get_int("prevent_repost_time"), 1),
        only_if_absent=True,
    ):
        # Lost a race with a concurrent submission of the same URL.
        return Result.success(int(store.get(lock_key) or news_id))

    now = int(time.time())
    news = NewsItem(id=news_id, title=title, url=content_url, user_id=user.id, ctime=now)
    store.hash_set_many(keys.news(news_id), news.to_hash())

    # Authors implicitly upvote their own submissions; this also ranks the
    # item into news.top.
    voted = vote_news(store, options, news_id, user, VoteDirection.UP)
    if not voted.ok:
        logger.warning("Self-vote on news %d failed: %s", news_id, voted.error)

    store.batch().sorted_set_add(keys.user_posted(user.id), now, news_id).sorted_set_add(
        keys.NEWS_LATEST, now, news_id
    ).execute()
    mark_submitted(store, options, user.id)

    logger.info("User %d submitted news %d: %s", user.id, news_id, title)
    return Result.success(news_id)


def edit_news(
    store: RedisStore,
    options: Options,
    user: User,
    news_id: int,
    title: str,
    url: str | None = None,
    text: str | None = None,
) -> Result[int]:
    """Change the title and URL/text of *user*'s own news item.

    Moving to a new link re-checks repost suppression for it and releases
    the old link's lock.
    """
    news = _load(store, news_id)
    if news is None or news.deleted:
        return Result.failure(Reason.NOT_FOUND)
    if news.user_id != user.id:
        return Result.failure(Reason.NOT_AUTHOR)
    if not _edit_window_open(options, news, int(time.time())):
        return Result.failure(Reason.EDIT_WINDOW_EXPIRED)

    title = (title or "").strip()
    if not title:
        return Result.failure(Reason.INVALID_INPUT)
    content_url, reason = _content_url(options, url, text)
    if reason is not None:
        return Result.failure(reason)

    if content_url != news.url:
        if not content_url.startswith(TEXT_SCHEME) and not store.set(
            keys.url_lock(content_url), news.id,
            expire=max(options.get_int("prevent_repost_time"), 1),
            only_if_absent=True,
        ):
            return Result.failure(Reason.URL_LOCKED)
        _release_url_lock(store, news)

    store.hash_set_many(keys.news(news.id), {"title": title, "url": content_url})
    logger.info("User %d edited news %d", user.id, news.id)
    return Result.success(news.id)


def delete_news(store: RedisStore, options: Options, user: User, news_id: int) -> Result[int]:
    """Soft-delete *user*'s own news item and drop it from both views."""
    news = _load(store, news_id)
    if news is None or news.deleted:
        return Result.failure(Reason.NOT_FOUND)
    if news.user_id != user.id:
        return Result.failure(Reason.NOT_AUTHOR)
    if not _edit_window_open(options, news, int(time.time())):
        return Result.failure(Reason.EDIT_WINDOW_EXPIRED)

    store.hash_set(keys.news(news.id), "del", 1)
    store.sorted_set_remove(keys.NEWS_TOP, news.id)
    store.sorted_set_remove(keys.NEWS_LATEST, news.id)
    _release_url_lock(store, news)

    logger.info("User %d deleted news %d", user.id, news.id)
    return Result.success(news.id)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------
def get_news_by_ids(
    store: RedisStore,
    options: Options,
    user: User | None,
    news_ids: list[int | str],
    update_rank: bool = False,
) -> list[NewsItem]:
    """Fetch news items in input order; missing ids are skipped.

    Items are annotated with the author's ``username`` and, when *user* is
    given, the direction *user* voted.  With *update_rank* drifted ranks are
    refreshed in the store.
    """
    if not news_ids:
        return []

    batch = store.batch()
    for news_id in news_ids:
        batch.hash_get_all(keys.news(news_id))
    items = [item for item in map(NewsItem.from_hash, batch.execute()) if item is not None]
    if not items:
        return []

    if update_rank:
        _refresh_ranks(store, options, items)

    lookups = store.batch()
    for item in items:
        lookups.hash_get(keys.user(item.user_id), "username")
    if user is not None:
        for item in items:
            lookups.sorted_set_score(keys.news_votes(item.id, VoteDirection.UP), user.id)
            lookups.sorted_set_score(keys.news_votes(item.id, VoteDirection.DOWN), user.id)
    results = lookups.execute()

    for index, item in enumerate(items):
        item.username = results[index]
    if user is not None:
        votes = results[len(items):]
        for index, item in enumerate(items):
            up, down = votes[2 * index], votes[2 * index + 1]
            if up is not None:
                item.voted = VoteDirection.UP
            elif down is not None:
                item.voted = VoteDirection.DOWN
    return items


def _refresh_ranks(store: RedisStore, options: Options, items: list[NewsItem]) -> None:
    now = int(time.time())
    refresh = store.batch()
    for item in items:
        fresh = compute_rank(item.score, item.ctime, now, options)
        if not rank_drifted(item.rank, fresh):
            continue
        item.rank = fresh
        refresh.hash_set_many(keys.news(item.id), {"rank": fresh})
        if not item.deleted:
            refresh.sorted_set_add(keys.NEWS_TOP, fresh, item.id)
    if len(refresh):
        logger.debug("Refreshing %d drifted ranks", len(refresh))
        refresh.execute()


def get_news_by_id(
    store: RedisStore,
    options: Options,
    user: User | None,
    news_id: int | str,
    update_rank: bool = False,
) -> NewsItem | None:
    items = get_news_by_ids(store, options, user, [news_id], update_rank)
    return items[0] if items else None


def _page(
    store: RedisStore,
    options: Options,
    user: User | None,
    key: str,
    start: int,
    count: int,
    update_rank: bool,
) -> Page[NewsItem]:
    ids = store.sorted_set_rev_range(key, max(start, 0), count)
    items = get_news_by_ids(store, options, user, ids, update_rank)
    return Page(items=items, total=store.sorted_set_cardinality(key))


def get_top_news(
    store: RedisStore,
    options: Options,
    user: User | None = None,
    start: int = 0,
    count: int | None = None,
) -> Page[NewsItem]:
    """Highest-ranked items.  The page is re-sorted after the rank refresh."""
    if count is None:
        count = options.get_int("top_news_per_page")
    page = _page(store, options, user, keys.NEWS_TOP, start, count, update_rank=True)
    page.items.sort(key=lambda item: item.rank, reverse=True)
    return page


def get_latest_news(
    store: RedisStore,
    options: Options,
    user: User | None = None,
    start: int = 0,
    count: int | None = None,
) -> Page[NewsItem]:
    if count is None:
        count = options.get_int("latest_news_per_page")
    return _page(store, options, user, keys.NEWS_LATEST, start, count, update_rank=True)


def get_saved_news(
    store: RedisStore,
    options: Options,
    user: User,
    start: int = 0,
    count: int | None = None,
) -> Page[NewsItem]:
    """Items *user* upvoted, most recent vote first."""
    if count is None:
        count = options.get_int("saved_news_per_page")
    return _page(store, options, user, keys.user_saved(user.id), start, count, update_rank=False)


def get_submitted_news(
    store: RedisStore,
    options: Options,
    user: User,
    start: int = 0,
    count: int | None = None,
) -> Page[NewsItem]:
    """Items *user* submitted, most recent first."""
    if count is None:
        count = options.get_int("saved_news_per_page")
    return _page(store, options, user, keys.user_posted(user.id), start, count, update_rank=False)


# ---------------------------------------------------------------------------
# Feed dispatch
# ---------------------------------------------------------------------------
FeedFunc = Callable[..., Page[NewsItem]]

FEEDS: dict[FeedKind, FeedFunc] = {
    FeedKind.TOP: get_top_news,
    FeedKind.LATEST: get_latest_news,
}


def get_news_feed(
    store: RedisStore,
    options: Options,
    kind: FeedKind | str,
    user: User | None = None,
    start: int = 0,
    count: int | None = None,
) -> Page[NewsItem] | None:
    """Serve a ranked view selected by *kind*; None for an unknown kind.

    ``count`` is capped at ``api_max_news_count``.
    """
    try:
        feed = FEEDS[FeedKind(kind)]
    except ValueError:
        return None

    limit = options.get_int("api_max_news_count")
    count = limit if count is None else max(min(count, limit), 0)
    return feed(store, options, user, start, count)
