# src/pipeline/verifier.py — v1
"""Verifier: reconcile committed config lines with the cache.

A mismatch is treated as read lag, never as corruption: the item stays
unverified (its ``onChain`` flag is left alone) and the batch is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from assetledger.cache.session import CacheSession
from assetledger.ledger.base_client import BaseLedgerClient
from assetledger.ledger.layout import LayoutError, decode_config_line, slice_line
from assetledger.pipeline.errors import (
    LedgerError,
    TransientNetworkError,
    VerificationMismatch,
)
from assetledger.pipeline.retry import FatalError, Ok, RetryableError, StageResult

logger = logging.getLogger(__name__)


class Verifier:
    """Check on-ledger index lines against cached name/link."""

    def __init__(self, client: BaseLedgerClient) -> None:
        self._client = client

    def verify_item(self, index: int, record: bytes, session: CacheSession) -> bool:
        """Compare one raw config line with the cache; mark verified on match."""
        item = session.get(index)
        if item is None:
            logger.warning("Item %d missing from cache, cannot verify", index)
            return False

        try:
            line = decode_config_line(record)
        except LayoutError as e:
            logger.warning("Item %d: cannot decode config line: %s", index, e)
            return False

        if line.name != item.name or line.uri != item.link:
            mismatch = VerificationMismatch(
                index, (item.name, item.link), (line.name, line.uri),
            )
            logger.warning("%s", mismatch)
            return False

        session.mark_verified(index)
        return True

    async def verify_batch(
        self, session: CacheSession, indices: Sequence[int],
    ) -> StageResult:
        """Verify a committed batch with one account read per attempt."""
        if not session.needs_verification(indices):
            logger.info("Skipping verification of already verified items")
            return Ok(0)

        config = session.program.config_address
        if not config:
            return FatalError("program config address missing from cache")

        logger.info("Fetching uploaded config for indices %d - %d", indices[0], indices[-1])
        try:
            data = await self._client.get_account_data(config)
        except (LedgerError, TransientNetworkError) as e:
            logger.warning("Failed to fetch config account %s: %s", config, e)
            return RetryableError(str(e), e)

        failed = [
            index
            for index in indices
            if not self.verify_item(index, slice_line(data, index), session)
        ]
        session.save()

        if failed:
            return RetryableError(f"Failed to verify items {failed}")
        return Ok(len(indices))
