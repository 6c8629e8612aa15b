"""
In-memory posting-list store for development and testing.

Note: Data is lost on process restart. Use the Redis store for production.

All state lives in plain dicts guarded by one re-entrant lock, so every
public operation is atomic with respect to every other one. Transactions
run entirely under the lock.
"""

import time
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from storage.base import (
    Aggregate,
    PostingStore,
    ScoredMember,
    Transaction,
    WeightedSource,
    rank_descending,
)


T = TypeVar("T")


class _MemoryTransaction(Transaction):
    """Buffers writes until the transaction function returns."""

    def __init__(self, store: "InMemoryPostingStore"):
        self._store = store
        self._hash_writes: List[tuple] = []
        self._zset_writes: List[tuple] = []

    @property
    def _writing(self) -> bool:
        return bool(self._hash_writes or self._zset_writes)

    def hgetall(self, key: str) -> Dict[str, float]:
        if self._writing:
            raise RuntimeError("Transaction reads must precede writes")
        return self._store.hgetall(key)

    def hset(self, key: str, mapping: Mapping[str, float]) -> None:
        self._hash_writes.append((key, dict(mapping)))

    def zadd(self, key: str, mapping: Mapping[str, float]) -> None:
        self._zset_writes.append((key, dict(mapping)))

    def apply(self) -> None:
        for key, mapping in self._hash_writes:
            self._store._hset(key, mapping)
        for key, mapping in self._zset_writes:
            self._store.zadd(key, mapping)


class InMemoryPostingStore(PostingStore):
    """Dict-backed implementation of the posting-list contract."""

    backend_name = "in_memory"

    def __init__(self):
        self._hashes: Dict[str, Dict[str, float]] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}
        self._expires_at: Dict[str, float] = {}
        self._lock = RLock()

    def _purge_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self._drop(key)

    def _drop(self, key: str) -> bool:
        existed = key in self._hashes or key in self._zsets
        self._hashes.pop(key, None)
        self._zsets.pop(key, None)
        self._expires_at.pop(key, None)
        return existed

    def _zset(self, key: str) -> Dict[str, float]:
        self._purge_if_expired(key)
        return self._zsets.get(key, {})

    def _store_result(self, dest: str, result: Dict[str, float]) -> int:
        self._drop(dest)
        if result:
            self._zsets[dest] = result
        return len(result)

    def _hset(self, key: str, mapping: Mapping[str, float]) -> None:
        if not mapping:
            return
        with self._lock:
            self._purge_if_expired(key)
            self._hashes.setdefault(key, {}).update(
                {field: float(value) for field, value in mapping.items()}
            )

    # =========================================================
    # Hashes
    # =========================================================

    def hget(self, key: str, field: str) -> Optional[float]:
        with self._lock:
            self._purge_if_expired(key)
            return self._hashes.get(key, {}).get(field)

    def hgetall(self, key: str) -> Dict[str, float]:
        with self._lock:
            self._purge_if_expired(key)
            return dict(self._hashes.get(key, {}))

    # =========================================================
    # Posting lists
    # =========================================================

    def zscore(self, key: str, member: str) -> Optional[float]:
        with self._lock:
            return self._zset(key).get(member)

    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        if not mapping:
            return 0
        with self._lock:
            self._purge_if_expired(key)
            zset = self._zsets.setdefault(key, {})
            added = sum(1 for member in mapping if member not in zset)
            zset.update({member: float(score) for member, score in mapping.items()})
            return added

    def zcard(self, key: str) -> int:
        with self._lock:
            return len(self._zset(key))

    def zitems(self, key: str) -> List[ScoredMember]:
        with self._lock:
            return sorted(self._zset(key).items(), key=lambda item: (item[1], item[0]))

    def union_store(
        self,
        dest: str,
        sources: Sequence[WeightedSource],
        aggregate: Aggregate = Aggregate.SUM,
    ) -> int:
        with self._lock:
            result: Dict[str, float] = {}
            for source in sources:
                for member, score in self._zset(source.key).items():
                    weighted = score * source.weight
                    if member in result:
                        result[member] = aggregate.combine(result[member], weighted)
                    else:
                        result[member] = weighted
            return self._store_result(dest, result)

    def intersect_store(
        self,
        dest: str,
        sources: Sequence[WeightedSource],
        aggregate: Aggregate = Aggregate.SUM,
    ) -> int:
        with self._lock:
            if not sources:
                return self._store_result(dest, {})
            zsets = [(self._zset(source.key), source.weight) for source in sources]
            # Walk the smallest list; every member must be in all the others
            smallest = min(zsets, key=lambda pair: len(pair[0]))[0]
            result: Dict[str, float] = {}
            for member in smallest:
                if not all(member in zset for zset, _ in zsets):
                    continue
                first, first_weight = zsets[0]
                value = first[member] * first_weight
                for zset, weight in zsets[1:]:
                    value = aggregate.combine(value, zset[member] * weight)
                result[member] = value
            return self._store_result(dest, result)

    def top(self, key: str, limit: int, min_score: Optional[float] = None) -> List[ScoredMember]:
        with self._lock:
            items = self._zset(key).items()
            if min_score is not None:
                items = [(member, score) for member, score in items if score > min_score]
            return rank_descending(list(items), limit)

    # =========================================================
    # Keys
    # =========================================================

    def delete(self, *keys: str) -> int:
        with self._lock:
            deleted = 0
            for key in keys:
                self._purge_if_expired(key)
                if self._drop(key):
                    deleted += 1
            return deleted

    def expire(self, key: str, seconds: int) -> None:
        with self._lock:
            if key in self._hashes or key in self._zsets:
                self._expires_at[key] = time.monotonic() + seconds

    def transaction(self, fn: Callable[[Transaction], T], *watch_keys: str) -> T:
        with self._lock:
            tx = _MemoryTransaction(self)
            result = fn(tx)
            tx.apply()
            return result

    # =========================================================
    # Health
    # =========================================================

    def ping(self) -> bool:
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "backend": self.backend_name,
                "hashes": len(self._hashes),
                "posting_lists": len(self._zsets),
            }

    def keys(self) -> List[str]:
        """All live keys, sorted. Used by tests to check for leaked scratch keys."""
        with self._lock:
            for key in list(self._expires_at):
                self._purge_if_expired(key)
            return sorted(set(self._hashes) | set(self._zsets))
