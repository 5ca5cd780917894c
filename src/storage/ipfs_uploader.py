# src/storage/ipfs_uploader.py — v1
"""IPFS uploader (storage kind ``ipfs``) using the IPFS HTTP API.

The image is added first; the manifest is then rewritten to reference the
image's gateway URL and added as a second object whose URL is the link.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import httpx

from assetledger.pipeline.errors import UploadError
from assetledger.storage.base_uploader import BaseStorageUploader
from assetledger.storage.models import Manifest, UploadResult

logger = logging.getLogger(__name__)


class IpfsUploader(BaseStorageUploader):
    """Upload to an IPFS node (e.g. Infura) with project credentials."""

    kind = "ipfs"

    def __init__(
        self,
        project_id: str,
        secret_key: str,
        api_url: str = "https://ipfs.infura.io:5001/api/v0",
        gateway_url: str = "https://ipfs.io/ipfs",
        timeout_s: float = 30.0,
        settle_delay_s: float = 0.5,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not project_id or not secret_key:
            raise ValueError("IPFS uploads require a project id and secret key")
        self._api = api_url.rstrip("/")
        self._gateway = gateway_url.rstrip("/")
        self._settle_delay_s = settle_delay_s
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout_s, auth=(project_id, secret_key),
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def _add(self, filename: str, content: bytes) -> str:
        """Add one object, return its CID."""
        try:
            response = await self._http.post(
                f"{self._api}/add",
                params={"pin": "true"},
                files={"file": (filename, content)},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UploadError(f"IPFS add of {filename} failed: {e}") from e

        cid = payload.get("Hash") if isinstance(payload, dict) else None
        if not isinstance(cid, str) or not cid:
            raise UploadError(f"IPFS add of {filename} returned no hash: {payload!r}")
        return cid

    async def upload(
        self,
        content_file: Path,
        manifest_bytes: bytes,
        manifest: Manifest,
    ) -> UploadResult:
        try:
            image = Path(content_file).read_bytes()
        except OSError as e:
            raise UploadError(f"Cannot read {content_file}: {e}") from e

        image_cid = await self._add(Path(content_file).name, image)
        media_url = f"{self._gateway}/{image_cid}"
        logger.debug("Image uploaded: %s", media_url)

        data = json.loads(manifest_bytes)
        data["image"] = media_url
        properties = data.setdefault("properties", {})
        properties["files"] = [{"uri": media_url, "type": "image/png"}]

        manifest_cid = await self._add(
            "metadata.json", json.dumps(data).encode("utf-8"),
        )
        link = f"{self._gateway}/{manifest_cid}"
        logger.debug("Manifest uploaded: %s", link)

        # Give the gateway time to pick the objects up.
        if self._settle_delay_s:
            await asyncio.sleep(self._settle_delay_s)
        return UploadResult(uri=link)
