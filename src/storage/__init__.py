"""
Posting-list storage.

Two interchangeable backends implement the PostingStore contract:
- InMemoryPostingStore: development and tests (default)
- RedisPostingStore: production

Use config.database.get_store() to obtain the configured instance.
"""

from storage.base import (
    Aggregate,
    PostingStore,
    ScoredMember,
    Transaction,
    WeightedSource,
    rank_descending,
    sources_with_weight,
)
from storage.memory import InMemoryPostingStore
from storage.redis_store import RedisPostingStore

__all__ = [
    "Aggregate",
    "PostingStore",
    "ScoredMember",
    "Transaction",
    "WeightedSource",
    "rank_descending",
    "sources_with_weight",
    "InMemoryPostingStore",
    "RedisPostingStore",
]
