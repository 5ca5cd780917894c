# src/cache/session.py — v1
"""CacheSession: the single owner of a loaded cache document.

Every pipeline stage reads progress through the session and applies its
results through it. Mutations enforce the document invariants (links are
immutable, ``onChain`` and ``verified`` only move from False to True) and
``save()`` persists synchronously through the backing store.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from assetledger.cache.base_cache_store import BaseCacheStore
from assetledger.cache.models import CacheDocument, CacheItem, ProgramInfo
from assetledger.pipeline.errors import CacheInvariantError

logger = logging.getLogger(__name__)


class CacheSession:
    """Owner-side wrapper around one (name, env) cache document."""

    def __init__(
        self,
        store: BaseCacheStore,
        name: str,
        env: str,
        document: CacheDocument | None = None,
    ) -> None:
        self._store = store
        self.name = name
        self.env = env
        self.document = document if document is not None else CacheDocument()

    @classmethod
    def open(cls, store: BaseCacheStore, name: str, env: str) -> CacheSession:
        """Load the stored document, or start an empty one on first run."""
        document = store.load(name, env)
        if document is None:
            logger.info("No cache found for %s/%s, starting fresh", env, name)
        return cls(store, name, env, document)

    # --- Reads ---

    @property
    def program(self) -> ProgramInfo:
        return self.document.program

    def get(self, index: int) -> CacheItem | None:
        return self.document.items.get(index)

    def has_link(self, index: int) -> bool:
        item = self.get(index)
        return item is not None and bool(item.link)

    def indices(self) -> list[int]:
        return sorted(self.document.items)

    def pending_commit(self, indices: Iterable[int]) -> list[int]:
        """Indices in ``indices`` whose ``onChain`` flag is still False."""
        return [i for i in indices if not self._flag(i, "on_chain")]

    def needs_verification(self, indices: Iterable[int]) -> list[int]:
        return [i for i in indices if not self._flag(i, "verified")]

    def _flag(self, index: int, attr: str) -> bool:
        item = self.get(index)
        return item is not None and bool(getattr(item, attr))

    # --- Mutations ---

    def set_program(self, program: ProgramInfo) -> None:
        current = self.document.program
        if current.uuid and program.uuid != current.uuid:
            raise CacheInvariantError(
                f"Program already initialized with uuid {current.uuid}"
            )
        self.document.program = program

    def set_authority(self, authority: str) -> None:
        self.document.program.authority = authority

    def record_upload(
        self,
        index: int,
        link: str,
        name: str,
        payment_ref: str | None = None,
    ) -> CacheItem:
        """Record a successful off-chain upload for ``index``."""
        if not link:
            raise CacheInvariantError(f"Item {index}: empty link")
        existing = self.get(index)
        if existing is not None and existing.link:
            if existing.link != link:
                raise CacheInvariantError(
                    f"Item {index} already uploaded to {existing.link}"
                )
            return existing
        item = CacheItem(link=link, name=name, on_chain=False, payment_ref=payment_ref)
        self.document.items[index] = item
        return item

    def mark_committed(self, indices: Iterable[int], transaction_ref: str) -> None:
        """Flip ``onChain`` for a whole batch at once."""
        targets = list(indices)
        for index in targets:
            item = self.get(index)
            if item is None or not item.link:
                raise CacheInvariantError(f"Item {index} cannot be on chain without a link")
        for index in targets:
            item = self.document.items[index]
            item.on_chain = True
            item.indices_transaction = transaction_ref

    def mark_verified(self, index: int) -> None:
        item = self.get(index)
        if item is None or not item.on_chain:
            raise CacheInvariantError(f"Item {index} cannot be verified before commit")
        item.verified = True

    def save(self) -> None:
        """Persist synchronously. CachePersistenceError propagates."""
        self._store.save(self.name, self.env, self.document)
