# src/api/facade.py — v2
"""Public API facade: upload and verify entry points.

Usage:
    from assetledger.api.facade import upload
    ok = await upload(files, "temp", "devnet", signer, 100, "arweave", False,
                      ledger_client=client, initializer=initializer)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from assetledger.batch.scanner import ItemScanner
from assetledger.cache.json_store import JsonCacheStore
from assetledger.cache.session import CacheSession
from assetledger.config.settings import ConfigurationError, Settings
from assetledger.logging.context import clear_context, set_run_context
from assetledger.pipeline.committer import BatchCommitter
from assetledger.pipeline.models import RunSummary, UploadItem
from assetledger.pipeline.orchestrator import Orchestrator
from assetledger.pipeline.transaction_engine import TransactionEngine
from assetledger.pipeline.uploader import AssetUploader
from assetledger.pipeline.verifier import Verifier
from assetledger.storage.models import StorageCredentials, load_manifest
from assetledger.storage.uploader_factory import create_uploader

if TYPE_CHECKING:
    from assetledger.cache.base_cache_store import BaseCacheStore
    from assetledger.ledger.base_client import (
        BaseLedgerClient,
        BaseProgramInitializer,
        BaseTransactionSigner,
    )
    from assetledger.storage.base_uploader import BaseStorageUploader

logger = logging.getLogger(__name__)


async def upload(
    files: Iterable[Path | str],
    cache_name: str,
    env: str,
    signer: BaseTransactionSigner,
    total_items: int,
    storage_kind: str,
    retain_authority: bool,
    storage_credentials: StorageCredentials | None = None,
    *,
    ledger_client: BaseLedgerClient,
    initializer: BaseProgramInitializer | None = None,
    settings: Settings | None = None,
    cache_store: BaseCacheStore | None = None,
    storage: BaseStorageUploader | None = None,
) -> bool:
    """Upload items, commit them to the ledger program and verify them.

    Safe to re-run after any interruption: progress is read from and written
    to the cache after every state change.

    Args:
        files: Candidate files; ``<index>.png`` images with ``<index>.json``
            manifests next to them.
        cache_name: Cache name (one cache file per name and env).
        env: Ledger cluster name.
        signer: Wallet signer (fee payer and config authority).
        total_items: Number of index lines the program config holds.
        storage_kind: "arweave" or "ipfs".
        retain_authority: Forwarded to program initialization.
        storage_credentials: Credentials for storage kinds that need them.
        ledger_client: Ledger RPC client.
        initializer: Creates the program config on first run.
        settings: Global settings. Loaded from .env if None.
        cache_store: Cache backend. JSON files under ``cache_root`` if None.
        storage: Pre-built storage uploader (overrides ``storage_kind``).

    Returns:
        True if every batch was uploaded, committed and verified.

    Raises:
        ConfigurationError: Missing initializer or too many items.
        CachePersistenceError: Cache could not be saved.
    """
    settings = settings or Settings()
    set_run_context(env, cache_name)
    try:
        store = cache_store or JsonCacheStore(settings.cache_root)
        session = CacheSession.open(store, cache_name, env)

        items = ItemScanner().scan(files, session.indices())
        if not items:
            logger.error("No items to upload")
            return False
        if len(items) > total_items:
            raise ConfigurationError(
                f"Found {len(items)} items but the program holds {total_items} lines"
            )

        engine = TransactionEngine.from_settings(ledger_client, signer, settings)
        await _ensure_program(session, items[0], total_items, retain_authority, initializer)
        if session.program.authority != signer.public_key:
            session.set_authority(signer.public_key)
            session.save()

        owns_storage = storage is None
        if storage is None:
            storage = create_uploader(
                storage_kind, settings, env, engine=engine, credentials=storage_credentials,
            )
        try:
            orchestrator = Orchestrator.from_settings(
                session,
                AssetUploader(storage),
                BatchCommitter(
                    engine,
                    explorer_url_template=settings.explorer_url_template,
                    fatal_error_code=settings.fatal_error_code,
                ),
                Verifier(ledger_client),
                settings,
            )
            summary = await orchestrator.run(items)
        finally:
            if owns_storage:
                await storage.close()

        _log_summary(summary)
        return summary.success
    finally:
        clear_context()


async def verify(
    cache_name: str,
    env: str,
    *,
    ledger_client: BaseLedgerClient,
    settings: Settings | None = None,
    cache_store: BaseCacheStore | None = None,
) -> bool:
    """Re-check every committed item of a cache against the ledger."""
    settings = settings or Settings()
    set_run_context(env, cache_name)
    try:
        store = cache_store or JsonCacheStore(settings.cache_root)
        document = store.load(cache_name, env)
        if document is None:
            logger.error("No cache found for %s/%s", env, cache_name)
            return False
        session = CacheSession(store, cache_name, env, document)

        if settings.max_verify_attempts is None:
            settings = settings.model_copy(
                update={"max_verify_attempts": settings.verify_command_max_attempts},
            )
        orchestrator = Orchestrator.from_settings(
            session, None, None, Verifier(ledger_client), settings,
        )
        summary = await orchestrator.verify_all(session.indices())
        _log_summary(summary)

        not_on_chain = session.pending_commit(session.indices())
        if not_on_chain:
            logger.warning("%d items are not on chain yet: %s", len(not_on_chain), not_on_chain)
        return summary.success and not not_on_chain
    finally:
        clear_context()


async def _ensure_program(
    session: CacheSession,
    first_item: UploadItem,
    total_items: int,
    retain_authority: bool,
    initializer: BaseProgramInitializer | None,
) -> None:
    """Create the program config once; later runs reuse the cached one."""
    if session.program.uuid:
        return
    if initializer is None:
        raise ConfigurationError(
            "Cache has no program config and no initializer was provided"
        )
    manifest = load_manifest(first_item.manifest_file, first_item.content_file.name)
    program = await initializer.initialize(
        manifest.model_dump(mode="json"), total_items, retain_authority,
    )
    session.set_program(program)
    session.save()
    logger.info("Initialized config with address %s", program.config_address)


def _log_summary(summary: RunSummary) -> None:
    for report in summary.batches:
        logger.info(
            "Batch %d - %d: %s (uploaded=%d, verified=%d)%s",
            report.start,
            report.end,
            report.state.value,
            report.uploaded,
            report.verified,
            f" error={report.error}" if report.error else "",
        )
    logger.info(
        "Done. Successful = %s (%d items, %d batches, %.1fs)",
        summary.success,
        summary.total_items,
        len(summary.batches),
        summary.duration_seconds,
    )
