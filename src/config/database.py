"""
Storage client singletons.

This module provides the process-wide posting-list store, selected from
settings:

- storage_backend="redis": connect to REDIS_URL, fail if unreachable
- storage_backend="memory": in-process store
- storage_backend="auto": Redis when REDIS_URL is set in the environment or
  redis_enabled is true, falling back to memory if Redis is unreachable
"""

import os
from functools import lru_cache
from typing import Optional

from config.settings import Settings, get_settings
from core.errors import StorageUnavailable
from core.logging import get_logger
from storage import InMemoryPostingStore, PostingStore, RedisPostingStore


logger = get_logger(__name__)


def _connect_redis(settings: Settings) -> RedisPostingStore:
    return RedisPostingStore.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout_seconds,
        max_retries=settings.transaction_max_retries,
    )


def create_store(settings: Optional[Settings] = None) -> PostingStore:
    """
    Create a posting-list store for the configured backend.

    Args:
        settings: Settings to use (defaults to get_settings())

    Returns:
        PostingStore: A connected store

    Raises:
        StorageUnavailable: If storage_backend is "redis" and Redis is unreachable
    """
    settings = settings or get_settings()
    backend = settings.storage_backend

    if backend == "redis":
        return _connect_redis(settings)

    if backend == "auto" and (settings.redis_enabled or os.getenv("REDIS_URL")):
        try:
            return _connect_redis(settings)
        except StorageUnavailable as e:
            logger.warning("Redis unavailable, using in-memory store", error=str(e))
            return InMemoryPostingStore()

    logger.info("Using in-memory store", storage_backend=backend)
    return InMemoryPostingStore()


@lru_cache(maxsize=1)
def get_store() -> PostingStore:
    """
    Get the singleton posting-list store.

    Uses lru_cache to ensure only one store (and one Redis connection pool)
    is created and reused.
    """
    return create_store()
