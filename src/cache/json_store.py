# src/cache/json_store.py — v2
"""JSON file-based cache store.

One file per (cache name, env) pair under ``cache_root``, named
``<env>-<name>``. Writes go to a temporary sibling first and are moved
into place with ``os.replace`` so a crash mid-write never leaves a
truncated document behind.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from assetledger.cache.base_cache_store import BaseCacheStore
from assetledger.cache.models import CacheDocument
from assetledger.pipeline.errors import CacheCorruptedError, CachePersistenceError

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def load(self, name: str, env: str) -> CacheDocument | None:
        """Read the cache document for (name, env), None if absent."""
        path = self.cache_path(name, env)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheDocument.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise CacheCorruptedError(f"Cannot decode cache file {path}: {e}") from e

    def save(self, name: str, env: str, document: CacheDocument) -> None:
        """Atomically write the cache document."""
        path = self.cache_path(name, env)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(document.to_json(), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error("Failed to persist cache %s: %s", path, e)
            raise CachePersistenceError(f"Cannot write cache file {path}: {e}") from e
        logger.debug("Cache saved: %s (%d items)", path, len(document.items))

    def cache_path(self, name: str, env: str) -> Path:
        """Return file path for a (name, env) pair."""
        safe_name = name.replace("/", "_").replace("\\", "_")
        return self._root / f"{env}-{safe_name}"
