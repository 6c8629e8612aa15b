"""
Posting-list store contract.

A posting list is an ordered mapping from member id to a float score (a
Redis sorted set). Hashes hold per-member maps (attribute -> value). The
matching engine consumes exactly the operations declared here; both the
in-memory and the Redis backend implement them with identical semantics:

- Union/intersection take explicit per-source weights and an explicit
  aggregate, never relying on backend defaults.
- A union or intersection over zero sources stores an empty result.
- Empty results are not stored (the destination key is removed).
- ``top`` orders by score descending, ties by member id ascending.
- ``transaction`` reads immediately and commits buffered writes atomically.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, TypeVar


T = TypeVar("T")

ScoredMember = Tuple[str, float]


class Aggregate(str, Enum):
    """How scores of a member present in several sources are combined."""
    SUM = "SUM"
    MIN = "MIN"
    MAX = "MAX"

    def combine(self, current: float, value: float) -> float:
        if self is Aggregate.SUM:
            return current + value
        if self is Aggregate.MIN:
            return min(current, value)
        return max(current, value)


class WeightedSource(NamedTuple):
    """A posting list participating in a union/intersection, with its weight."""
    key: str
    weight: float = 1.0


def sources_with_weight(keys: Sequence[str], weight: float) -> List[WeightedSource]:
    """Build sources that all share one weight."""
    return [WeightedSource(key, weight) for key in keys]


def rank_descending(items: Sequence[ScoredMember], limit: Optional[int] = None) -> List[ScoredMember]:
    """Sort by score descending, ties by member id ascending, then cut."""
    ranked = sorted(items, key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


class Transaction(ABC):
    """
    View handed to a transaction function.

    All reads must happen before the first write. Writes are buffered and
    applied together when the function returns without raising.
    """

    @abstractmethod
    def hgetall(self, key: str) -> Dict[str, float]:
        ...

    @abstractmethod
    def hset(self, key: str, mapping: Mapping[str, float]) -> None:
        ...

    @abstractmethod
    def zadd(self, key: str, mapping: Mapping[str, float]) -> None:
        ...


class PostingStore(ABC):
    """Storage collaborator used by the indices and the recommendation engine."""

    backend_name: str = "abstract"

    # =========================================================
    # Hashes
    # =========================================================

    @abstractmethod
    def hget(self, key: str, field: str) -> Optional[float]:
        """Return one hash field, or None when the key or field is absent."""

    @abstractmethod
    def hgetall(self, key: str) -> Dict[str, float]:
        """Return the whole hash (empty dict when absent)."""

    # =========================================================
    # Posting lists
    # =========================================================

    @abstractmethod
    def zscore(self, key: str, member: str) -> Optional[float]:
        """Point lookup of a member's score, or None when absent."""

    @abstractmethod
    def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        """Set scores for members. Returns the number of newly added members."""

    @abstractmethod
    def zcard(self, key: str) -> int:
        """Number of members in a posting list."""

    @abstractmethod
    def zitems(self, key: str) -> List[ScoredMember]:
        """All (member, score) pairs, ascending by score then member."""

    @abstractmethod
    def union_store(
        self,
        dest: str,
        sources: Sequence[WeightedSource],
        aggregate: Aggregate = Aggregate.SUM,
    ) -> int:
        """
        Store the weighted union of ``sources`` into ``dest``.

        A member's score is the aggregate of score * weight over every
        source that contains it. Returns the size of the result.
        """

    @abstractmethod
    def intersect_store(
        self,
        dest: str,
        sources: Sequence[WeightedSource],
        aggregate: Aggregate = Aggregate.SUM,
    ) -> int:
        """
        Store the weighted intersection of ``sources`` into ``dest``.

        Only members present in every source survive. Returns the size of
        the result.
        """

    @abstractmethod
    def top(self, key: str, limit: int, min_score: Optional[float] = None) -> List[ScoredMember]:
        """
        Highest-scoring members, descending, at most ``limit`` of them.

        When ``min_score`` is given only scores strictly greater than it are
        returned.
        """

    # =========================================================
    # Keys
    # =========================================================

    @abstractmethod
    def delete(self, *keys: str) -> int:
        """Delete keys of any type. Returns how many existed."""

    @abstractmethod
    def expire(self, key: str, seconds: int) -> None:
        """Expire a key after ``seconds``."""

    @abstractmethod
    def transaction(self, fn: Callable[[Transaction], T], *watch_keys: str) -> T:
        """
        Run ``fn`` as one atomic read-modify-write unit.

        ``watch_keys`` name the keys ``fn`` reads. ``fn`` may be invoked more
        than once when a concurrent writer touches a watched key, so it must
        not have side effects outside the transaction view.
        """

    # =========================================================
    # Health
    # =========================================================

    @abstractmethod
    def ping(self) -> bool:
        ...

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        ...
