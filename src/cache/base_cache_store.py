# src/cache/base_cache_store.py — v2
"""Abstract cache store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from assetledger.cache.models import CacheDocument


class BaseCacheStore(ABC):
    """Durable storage for cache documents keyed by (name, env)."""

    @abstractmethod
    def load(self, name: str, env: str) -> CacheDocument | None:
        """Return the stored document, or None on first run."""

    @abstractmethod
    def save(self, name: str, env: str, document: CacheDocument) -> None:
        """Persist the document.

        Raises:
            CachePersistenceError: If the write fails. Callers must treat
                this as fatal.
        """
