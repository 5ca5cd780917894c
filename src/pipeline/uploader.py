# src/pipeline/uploader.py — v1
"""AssetUploader: idempotent per-item upload to off-chain storage.

The uploader never mutates the cache. It returns an ``UploadOutcome`` that
the orchestrator applies through ``CacheSession.record_upload`` once the
task completes, so concurrent uploads never share a mutable document.
"""

from __future__ import annotations

import logging

from assetledger.cache.session import CacheSession
from assetledger.pipeline.errors import ManifestParseError, TransientNetworkError
from assetledger.pipeline.models import UploadItem, UploadOutcome
from assetledger.storage.base_uploader import BaseStorageUploader
from assetledger.storage.models import load_manifest

logger = logging.getLogger(__name__)


class AssetUploader:
    """Upload one item's image + manifest unless the cache already has a link."""

    def __init__(self, storage: BaseStorageUploader) -> None:
        self._storage = storage

    async def upload_item(self, item: UploadItem, session: CacheSession) -> UploadOutcome:
        cached = session.get(item.index)
        if cached is not None and cached.link:
            return UploadOutcome(
                index=item.index, status="skipped", link=cached.link, name=cached.name,
            )

        try:
            manifest = load_manifest(item.manifest_file, item.content_file.name)
            result = await self._storage.upload(
                item.content_file, manifest.to_bytes(), manifest,
            )
        except (TransientNetworkError, ManifestParseError, OSError) as e:
            logger.error("Error uploading file %d: %s", item.index, e)
            return UploadOutcome(index=item.index, status="failed", error=str(e))

        logger.info("Uploaded item %d: %s", item.index, result.uri)
        return UploadOutcome(
            index=item.index,
            status="uploaded",
            link=result.uri,
            name=manifest.name,
            payment_ref=result.payment_ref,
        )
