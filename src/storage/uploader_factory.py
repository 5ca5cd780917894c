# src/storage/uploader_factory.py — v1
"""Factory: instantiate the off-chain storage uploader from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from assetledger.config.settings import Settings
from assetledger.storage.base_uploader import BaseStorageUploader
from assetledger.storage.models import StorageCredentials

if TYPE_CHECKING:
    from assetledger.pipeline.transaction_engine import TransactionEngine

STORAGE_KINDS = ("arweave", "ipfs")


def create_uploader(
    kind: str,
    settings: Settings,
    env: str,
    engine: TransactionEngine | None = None,
    credentials: StorageCredentials | None = None,
) -> BaseStorageUploader:
    """Create the uploader for ``kind``.

    Args:
        kind: Storage kind ("arweave" or "ipfs").
        settings: Application settings (endpoints, timeouts).
        env: Ledger cluster name.
        engine: Transaction engine, required for arweave storage payments.
        credentials: Provider credentials, required for ipfs.

    Raises:
        ValueError: If the kind is unsupported or a requirement is missing.
    """
    if kind == "arweave":
        from assetledger.storage.arweave_uploader import ArweaveUploader
        if engine is None:
            raise ValueError("arweave storage requires a transaction engine")
        return ArweaveUploader(
            engine=engine,
            env=env,
            upload_url=settings.arweave_upload_url,
            payment_wallet=settings.arweave_payment_wallet,
            storage_cost=settings.arweave_storage_cost,
            gateway_url=settings.arweave_gateway_url,
            timeout_s=settings.arweave_upload_timeout_s,
        )

    if kind == "ipfs":
        from assetledger.storage.ipfs_uploader import IpfsUploader
        creds = credentials or StorageCredentials()
        return IpfsUploader(
            project_id=creds.project_id,
            secret_key=creds.secret_key,
            api_url=settings.ipfs_api_url,
            gateway_url=settings.ipfs_gateway_url,
            timeout_s=settings.ipfs_upload_timeout_s,
            settle_delay_s=settings.ipfs_settle_delay_s,
        )

    raise ValueError(f"Unsupported storage kind: {kind!r}")
