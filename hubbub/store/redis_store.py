"""
hubbub.store.redis_store — Typed Redis Adapter
===============================================

The only module that talks to the backing store.  :class:`RedisStore` wraps
a ``redis.Redis`` client (created with ``decode_responses=True``) and
exposes scalar, hash and sorted-set primitives plus :meth:`RedisStore.batch`
for grouping independent commands into one round trip.

Guarantees:

* Single commands are atomic (they are single Redis commands).
* A batch is a plain pipeline: results keep submission order, but the batch
  is **not** a transaction.  A command that fails inside a batch yields
  ``None`` in its slot, so list-style lookups treat it as absent.
* Losing the connection raises :class:`~hubbub.errors.StoreUnavailable`.
  Nothing is retried here.

Usage::

    store = create_store("redis://localhost:6379/0")
    batch = store.batch()
    for news_id in ids:
        batch.hash_get_all(keys.news(news_id))
    records = batch.execute()          # same order as ids
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import redis

from hubbub.config import DEFAULT_REDIS_URL
from hubbub.errors import StoreUnavailable

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (redis.ConnectionError, redis.TimeoutError)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Turn connection-level Redis failures into :class:`StoreUnavailable`."""
    try:
        yield
    except _CONNECTION_ERRORS as exc:
        logger.error("Store unavailable during %s: %s", operation, exc)
        raise StoreUnavailable(f"store unavailable during {operation}") from exc


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------
def create_store(url: str | None = None) -> RedisStore:
    """Build a :class:`RedisStore` from *url* or the ``REDIS_URL`` env var."""
    url = url or os.getenv("REDIS_URL") or DEFAULT_REDIS_URL
    client = redis.Redis.from_url(url, decode_responses=True)
    logger.info("Redis store created → %s", client.connection_pool.connection_kwargs.get("host"))
    return RedisStore(client)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------
class RedisStore:
    """Typed wrapper over a ``redis.Redis`` client."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def ping(self) -> bool:
        with _translate_errors("ping"):
            return bool(self._client.ping())

    # -- scalars ------------------------------------------------------------
    def get(self, key: str) -> str | None:
        with _translate_errors("get"):
            return self._client.get(key)

    def set(
        self,
        key: str,
        value: Any,
        *,
        expire: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        """Set *key*; returns False when ``only_if_absent`` and the key exists."""
        with _translate_errors("set"):
            return bool(self._client.set(key, value, ex=expire, nx=only_if_absent))

    def set_with_expiry(self, key: str, seconds: int, value: Any) -> None:
        with _translate_errors("setex"):
            self._client.setex(key, seconds, value)

    def delete(self, *keys: str) -> int:
        with _translate_errors("delete"):
            return self._client.delete(*keys)

    def exists(self, key: str) -> bool:
        with _translate_errors("exists"):
            return bool(self._client.exists(key))

    def increment(self, key: str, amount: int = 1) -> int:
        with _translate_errors("incr"):
            return self._client.incrby(key, amount)

    def ttl(self, key: str) -> int:
        """Seconds to live; -2 if the key is missing, -1 if it never expires."""
        with _translate_errors("ttl"):
            return self._client.ttl(key)

    # -- hashes -------------------------------------------------------------
    def hash_get(self, key: str, field: str | int) -> str | None:
        with _translate_errors("hget"):
            return self._client.hget(key, field)

    def hash_get_all(self, key: str) -> dict[str, str]:
        with _translate_errors("hgetall"):
            return self._client.hgetall(key)

    def hash_set(self, key: str, field: str | int, value: Any) -> None:
        with _translate_errors("hset"):
            self._client.hset(key, field, value)

    def hash_set_many(self, key: str, mapping: dict[str, Any]) -> None:
        if not mapping:
            return
        with _translate_errors("hset"):
            self._client.hset(key, mapping=mapping)

    def hash_increment(self, key: str, field: str, amount: int = 1) -> int:
        with _translate_errors("hincrby"):
            return self._client.hincrby(key, field, amount)

    # -- sorted sets --------------------------------------------------------
    def sorted_set_add(
        self, key: str, score: float, member: str | int, *, only_new: bool = False
    ) -> int:
        """Add or re-score *member*; returns the number of new members."""
        with _translate_errors("zadd"):
            return self._client.zadd(key, {str(member): score}, nx=only_new)

    def sorted_set_rev_range(self, key: str, start: int, count: int) -> list[str]:
        """Members from highest to lowest score, ``count`` from ``start``."""
        if count <= 0:
            return []
        with _translate_errors("zrevrange"):
            return self._client.zrevrange(key, start, start + count - 1)

    def sorted_set_score(self, key: str, member: str | int) -> float | None:
        with _translate_errors("zscore"):
            return self._client.zscore(key, str(member))

    def sorted_set_remove(self, key: str, member: str | int) -> int:
        with _translate_errors("zrem"):
            return self._client.zrem(key, str(member))

    def sorted_set_cardinality(self, key: str) -> int:
        with _translate_errors("zcard"):
            return self._client.zcard(key)

    # -- batching -----------------------------------------------------------
    def batch(self) -> Batch:
        """Start a new order-preserving, non-transactional batch."""
        return Batch(self._client.pipeline(transaction=False))


class Batch:
    """Commands queued for a single pipeline round trip.

    Each method queues one command and returns the batch so calls can be
    chained.  :meth:`execute` returns one result per queued command.
    """

    def __init__(self, pipeline: redis.client.Pipeline) -> None:
        self._pipe = pipeline
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def _queued(self) -> Batch:
        self._size += 1
        return self

    def get(self, key: str) -> Batch:
        self._pipe.get(key)
        return self._queued()

    def hash_get(self, key: str, field: str | int) -> Batch:
        self._pipe.hget(key, field)
        return self._queued()

    def hash_get_all(self, key: str) -> Batch:
        self._pipe.hgetall(key)
        return self._queued()

    def hash_set_many(self, key: str, mapping: dict[str, Any]) -> Batch:
        self._pipe.hset(key, mapping=mapping)
        return self._queued()

    def sorted_set_add(self, key: str, score: float, member: str | int) -> Batch:
        self._pipe.zadd(key, {str(member): score})
        return self._queued()

    def sorted_set_score(self, key: str, member: str | int) -> Batch:
        self._pipe.zscore(key, str(member))
        return self._queued()

    def sorted_set_cardinality(self, key: str) -> Batch:
        self._pipe.zcard(key)
        return self._queued()

    def execute(self) -> list[Any]:
        """Run the queued commands; failed slots come back as ``None``."""
        if not self._size:
            return []
        with _translate_errors("pipeline"):
            raw = self._pipe.execute(raise_on_error=False)

        results: list[Any] = []
        for item in raw:
            if isinstance(item, Exception):
                logger.warning("Batched command failed, treating as absent: %s", item)
                results.append(None)
            else:
                results.append(item)
        return results
