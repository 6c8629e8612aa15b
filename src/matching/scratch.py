"""
Per-query scratch space.

Each recommend call gets its own namespace (``scratch:<query_id>:<stage>``)
so concurrent queries never overwrite each other's intermediate posting
lists. Every key handed out is deleted when the block exits, whether the
query succeeded or not. On stores with real expiry a TTL is also set, so a
worker that dies mid-query cannot leak keys forever.
"""

import uuid
from typing import List, Optional

from config.constants import KeySpace
from core.logging import get_logger
from storage import PostingStore


logger = get_logger(__name__)


class ScratchSpace:
    """
    Usage:
        with ScratchSpace(store, keys, ttl_seconds=60) as scratch:
            pool = scratch.key("pool")
            store.union_store(pool, sources)
            scratch.touch(pool)
    """

    def __init__(self, store: PostingStore, key_space: KeySpace, ttl_seconds: Optional[int] = None):
        self._store = store
        self._keys = key_space
        self._ttl = ttl_seconds
        self.query_id = uuid.uuid4().hex
        self._allocated: List[str] = []

    def key(self, stage: str) -> str:
        """Allocate the scratch key for a pipeline stage."""
        key = self._keys.scratch(self.query_id, stage)
        self._allocated.append(key)
        return key

    def touch(self, key: str) -> None:
        """Apply the safety TTL to a key that was just written."""
        if self._ttl:
            self._store.expire(key, self._ttl)

    @property
    def keys(self) -> List[str]:
        return list(self._allocated)

    def __enter__(self) -> "ScratchSpace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._allocated:
            return
        try:
            self._store.delete(*self._allocated)
        except Exception as e:
            # Don't mask the query's own exception; the TTL reclaims the keys
            if exc_type is None:
                raise
            logger.warning("Scratch cleanup failed", query_id=self.query_id, error=str(e))
