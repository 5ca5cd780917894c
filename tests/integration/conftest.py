# tests/integration/conftest.py — v2
"""Integration fixtures: full upload runs over the in-memory ledger."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetledger.api.facade import upload
from assetledger.cache.json_store import JsonCacheStore
from assetledger.cache.models import CacheDocument


class SnapshotStore(JsonCacheStore):
    """JSON store that keeps a copy of every saved document."""

    def __init__(self, cache_root: Path) -> None:
        super().__init__(cache_root)
        self.snapshots: list[CacheDocument] = []

    def save(self, name: str, env: str, document: CacheDocument) -> None:
        super().save(name, env, document)
        self.snapshots.append(document.model_copy(deep=True))


@pytest.fixture
def snapshot_store(fast_settings) -> SnapshotStore:
    return SnapshotStore(fast_settings.cache_root)


@pytest.fixture
def run_upload(fake_signer, fake_ledger, fake_initializer, fast_settings, snapshot_store):
    """Factory: run the upload entry point with the shared fakes."""

    async def _run(files, storage, cache_name: str = "temp", **overrides) -> bool:
        params = dict(
            ledger_client=fake_ledger,
            initializer=fake_initializer,
            settings=fast_settings,
            cache_store=snapshot_store,
            storage=storage,
        )
        params.update(overrides)
        return await upload(
            files, cache_name, "devnet", fake_signer, 100, "arweave", False, **params,
        )

    return _run


def item_state(document: CacheDocument) -> dict[int, tuple]:
    """Comparable per-item state, without payment or transaction references."""
    return {
        index: (item.link, item.name, item.on_chain, item.verified)
        for index, item in document.items.items()
    }


@pytest.fixture
def state_of():
    return item_state
