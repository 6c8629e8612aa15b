"""
Redis-backed posting-list store for production.

Posting lists are Redis sorted sets and member maps are Redis hashes, so
the data is readable with plain redis-cli. Union and intersection are
issued as raw ZUNIONSTORE/ZINTERSTORE commands with explicit WEIGHTS and
AGGREGATE clauses. Transactions use WATCH/MULTI/EXEC and are retried when a
watched key changes underneath them.

Every Redis failure is re-raised as StorageUnavailable.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, TypeVar

import redis
from redis.exceptions import RedisError, WatchError

from core.errors import StorageUnavailable
from core.logging import get_logger
from core.utils import to_score
from storage.base import (
    Aggregate,
    PostingStore,
    ScoredMember,
    Transaction,
    WeightedSource,
    rank_descending,
)


logger = get_logger(__name__)

T = TypeVar("T")


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise Redis client errors as StorageUnavailable."""
    try:
        yield
    except WatchError:
        raise
    except RedisError as e:
        logger.error("Redis operation failed", operation=operation, error=str(e),
                     error_type=type(e).__name__)
        raise StorageUnavailable(f"Redis {operation} failed: {e}") from e


class _RedisTransaction(Transaction):
    """Wraps a pipeline in WATCH mode; the first write switches it to MULTI."""

    def __init__(self, pipe: "redis.client.Pipeline"):
        self._pipe = pipe
        self._buffering = False

    def _begin_writes(self) -> None:
        if not self._buffering:
            self._pipe.multi()
            self._buffering = True

    def hgetall(self, key: str) -> Dict[str, float]:
        if self._buffering:
            raise RuntimeError("Transaction reads must precede writes")
        if not self._pipe.watching:
            raise RuntimeError(f"Transaction read of {key!r} requires the key to be watched")
        raw = self._pipe.hgetall(key)
        return {field: to_score(value) for field, value in raw.items()}

    def hset(self, key: str, mapping: Mapping[str, float]) -> None:
        if not mapping:
            return
        self._begin_writes()
        self._pipe.hset(key, mapping=dict(mapping))

    def zadd(self, key: str, mapping: Mapping[str, float]) -> None:
        if not mapping:
            return
        self._begin_writes()
        self._pipe.zadd(key, dict(mapping))

    def commit(self) -> None:
        self._begin_writes()
        self._pipe.execute()


class RedisPostingStore(PostingStore):
    """
    Posting-list store on top of a redis-py client.

    The client must be created with ``decode_responses=True`` so member ids
    and hash fields come back as str.
    """

    backend_name = "redis"

    def __init__(self, client: "redis.Redis", max_retries: int = 32):
        self._client = client
        self._max_retries = max_retries

    @classmethod
    def from_url(
        cls,
        redis_url: str,
        socket_timeout: Optional[float] = None,
        max_retries: int = 32,
    ) -> "RedisPostingStore":
        """
        Connect to Redis and verify the connection.

        Raises:
            StorageUnavailable: If Redis cannot be reached
        """
        client = redis.from_url(redis_url, decode_responses=True, socket_timeout=socket_timeout)
        store = cls(client, max_retries=max_retries)
        store.ping()
        logger.info("Connected to Redis", redis_url=redis_url.split("@")[-1])
        return store

    @staticmethod
    def _store_args(dest: str, sources: Sequence[WeightedSource], aggregate: Aggregate) -> List[Any]:
        args: List[Any] = [dest, len(sources)]
        args.extend(source.key for source in sources)
        args.append("WEIGHTS")
        args.extend(repr(float(source.weight)) for source in sources)
        args.extend(["AGGREGATE", aggregate.value])
        return args

    # =========================================================
    # Hashes
    # =========================================================

    def hget(self, key: str, field: str) -> Optional[float]:
        with translate_errors("HGET"):
            value = self._client.hget(key, field)
        return None if value is None else to_score(value)

    def hgetall(self, key: str) -> Dict[str, float]:
        with translate_errors("HGETALL"):
            raw = self._client.hgetall(key)
        return {field: to_score(value) for field, value in raw.items()}

    # =========================================================
    # Posting lists
    # =========================================================

    def zscore(self, key: str, member: str) -> Optional[float]:
        with translate_errors("ZSCORE"):
            score = self._client.zscore(key, member)
        return None if score is None else float(score)

    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        if not mapping:
            return 0
        with translate_errors("ZADD"):
            return int(self._client.zadd(key, dict(mapping)))

    def zcard(self, key: str) -> int:
        with translate_errors("ZCARD"):
            return int(self._client.zcard(key))

    def zitems(self, key: str) -> List[ScoredMember]:
        with translate_errors("ZRANGE"):
            items = self._client.zrange(key, 0, -1, withscores=True)
        return [(member, float(score)) for member, score in items]

    def union_store(
        self,
        dest: str,
        sources: Sequence[WeightedSource],
        aggregate: Aggregate = Aggregate.SUM,
    ) -> int:
        # ZUNIONSTORE rejects numkeys == 0
        if not sources:
            self.delete(dest)
            return 0
        with translate_errors("ZUNIONSTORE"):
            return int(self._client.execute_command(
                "ZUNIONSTORE", *self._store_args(dest, sources, aggregate)
            ))

    def intersect_store(
        self,
        dest: str,
        sources: Sequence[WeightedSource],
        aggregate: Aggregate = Aggregate.SUM,
    ) -> int:
        if not sources:
            self.delete(dest)
            return 0
        with translate_errors("ZINTERSTORE"):
            return int(self._client.execute_command(
                "ZINTERSTORE", *self._store_args(dest, sources, aggregate)
            ))

    def top(self, key: str, limit: int, min_score: Optional[float] = None) -> List[ScoredMember]:
        if limit <= 0:
            return []
        floor = "-inf" if min_score is None else f"({min_score!r}"
        # Redis breaks ties in reverse lexicographic order; fetch every
        # qualifying member and re-rank so ties come out ascending.
        with translate_errors("ZREVRANGEBYSCORE"):
            items = self._client.zrevrangebyscore(key, "+inf", floor, withscores=True)
        return rank_descending([(member, float(score)) for member, score in items], limit)

    # =========================================================
    # Keys
    # =========================================================

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with translate_errors("DEL"):
            return int(self._client.delete(*keys))

    def expire(self, key: str, seconds: int) -> None:
        with translate_errors("EXPIRE"):
            self._client.expire(key, seconds)

    def transaction(self, fn: Callable[[Transaction], T], *watch_keys: str) -> T:
        for attempt in range(1, self._max_retries + 1):
            with translate_errors("MULTI/EXEC"):
                with self._client.pipeline(transaction=True) as pipe:
                    try:
                        if watch_keys:
                            pipe.watch(*watch_keys)
                        tx = _RedisTransaction(pipe)
                        result = fn(tx)
                        tx.commit()
                        return result
                    except WatchError:
                        logger.debug("Transaction conflict, retrying",
                                     watch_keys=list(watch_keys), attempt=attempt)
        raise StorageUnavailable(
            f"Transaction on {list(watch_keys)} did not commit after {self._max_retries} attempts"
        )

    # =========================================================
    # Health
    # =========================================================

    def ping(self) -> bool:
        with translate_errors("PING"):
            return bool(self._client.ping())

    def get_stats(self) -> Dict[str, Any]:
        with translate_errors("DBSIZE"):
            keys = int(self._client.dbsize())
        return {
            "backend": self.backend_name,
            "keys": keys,
        }
