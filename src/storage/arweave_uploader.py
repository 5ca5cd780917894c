# src/storage/arweave_uploader.py — v1
"""Arweave uploader (storage kind ``arweave``).

Pays the storage fee with a ledger transfer, then posts the image and
manifest to the upload endpoint together with the payment transaction id.
The endpoint answers with one message per stored file; the manifest's
Arweave transaction id becomes the item link.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from assetledger.ledger.models import Transfer
from assetledger.pipeline.errors import AssetLedgerError, UploadError
from assetledger.pipeline.transaction_engine import TransactionEngine
from assetledger.storage.base_uploader import BaseStorageUploader
from assetledger.storage.models import STORED_IMAGE_NAME, Manifest, UploadResult

logger = logging.getLogger(__name__)


class ArweaveUploader(BaseStorageUploader):
    """Upload through the paid Arweave upload endpoint."""

    kind = "arweave"

    def __init__(
        self,
        engine: TransactionEngine,
        env: str,
        upload_url: str,
        payment_wallet: str,
        storage_cost: int = 20_000,
        gateway_url: str = "https://arweave.net",
        timeout_s: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Arweave uploader.

        Args:
            engine: Transaction engine used for the storage payment.
            env: Cluster name forwarded to the endpoint.
            upload_url: Upload endpoint URL.
            payment_wallet: Address receiving the storage fee.
            storage_cost: Fee per item in the ledger's smallest unit.
            gateway_url: Base URL of the public Arweave gateway.
            timeout_s: Request timeout for the upload POST.
            http_client: Pre-built client (tests use ``httpx.MockTransport``).
        """
        self._engine = engine
        self._env = env
        self._upload_url = upload_url
        self._payment_wallet = payment_wallet
        self._storage_cost = storage_cost
        self._gateway = gateway_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def close(self) -> None:
        await self._http.aclose()

    async def upload(
        self,
        content_file: Path,
        manifest_bytes: bytes,
        manifest: Manifest,
    ) -> UploadResult:
        payment_txid = await self._pay_storage_fee()

        try:
            image = Path(content_file).read_bytes()
        except OSError as e:
            raise UploadError(f"Cannot read {content_file}: {e}") from e

        files = [
            ("file[]", (STORED_IMAGE_NAME, image, "image/png")),
            ("file[]", ("metadata.json", manifest_bytes, "application/json")),
        ]
        data = {"transaction": payment_txid, "env": self._env}

        logger.debug("Uploading %s: %s", Path(content_file).name, manifest.name)
        try:
            response = await self._http.post(self._upload_url, data=data, files=files)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UploadError(f"Arweave upload of {content_file} failed: {e}") from e

        messages = result.get("messages") if isinstance(result, dict) else None
        if not isinstance(messages, list):
            messages = []
        manifest_message = next(
            (
                m for m in messages
                if isinstance(m, dict) and m.get("filename") == "manifest.json"
            ),
            None,
        )
        if not manifest_message or not manifest_message.get("transactionId"):
            raise UploadError(f"No transaction ID for upload: {Path(content_file).name}")

        link = f"{self._gateway}/{manifest_message['transactionId']}"
        logger.debug("File uploaded: %s", link)
        return UploadResult(uri=link, payment_ref=payment_txid)

    async def _pay_storage_fee(self) -> str:
        transfer = Transfer(
            source=self._engine.signer.public_key,
            destination=self._payment_wallet,
            amount=self._storage_cost,
        )
        try:
            receipt = await self._engine.send_instructions([transfer])
        except AssetLedgerError as e:
            raise UploadError(f"Storage payment failed: {e}") from e
        return receipt.txid
