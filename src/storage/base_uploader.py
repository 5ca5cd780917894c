# src/storage/base_uploader.py — v1
"""Abstract off-chain storage uploader interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from assetledger.storage.models import Manifest, UploadResult


class BaseStorageUploader(ABC):
    """Unified interface for off-chain storage backends."""

    kind: str = ""

    @abstractmethod
    async def upload(
        self,
        content_file: Path,
        manifest_bytes: bytes,
        manifest: Manifest,
    ) -> UploadResult:
        """Store the image and its manifest, return the manifest URI.

        Raises:
            UploadError: On any transport or provider failure.
        """

    async def close(self) -> None:
        """Release transport resources."""
