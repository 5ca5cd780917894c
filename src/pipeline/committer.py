# src/pipeline/committer.py — v1
"""BatchCommitter: write one batch of index lines to the ledger program.

A batch is committed as a single ``AppendIndexLines`` instruction carrying
every index in the range (not only the missing ones) so ledger lines stay
contiguous. The cache is saved after every attempt, whatever its outcome.
"""

from __future__ import annotations

import logging

from assetledger.cache.session import CacheSession
from assetledger.ledger.layout import LayoutError, validate_index_line
from assetledger.ledger.models import AppendIndexLines, IndexLine
from assetledger.pipeline.errors import (
    FatalProgramError,
    LedgerError,
    MissingCacheItem,
    TransactionFailed,
    TransientNetworkError,
)
from assetledger.pipeline.retry import FatalError, Ok, RetryableError, StageResult
from assetledger.pipeline.transaction_engine import TransactionEngine

logger = logging.getLogger(__name__)

DEFAULT_FATAL_ERROR_CODE = 303


class BatchCommitter:
    """Drive the transaction engine for one batch range."""

    def __init__(
        self,
        engine: TransactionEngine,
        explorer_url_template: str = "https://explorer.solana.com/tx/{txid}?cluster={env}",
        fatal_error_code: int = DEFAULT_FATAL_ERROR_CODE,
    ) -> None:
        self._engine = engine
        self._explorer_url_template = explorer_url_template
        self._fatal_error_code = fatal_error_code

    async def commit(self, session: CacheSession, start: int, size: int) -> StageResult:
        """Commit indices ``start .. start+size-1``.

        Returns:
            Ok when the whole range is on chain (possibly without any network
            call), FatalError for a missing item or the fatal program error
            code, RetryableError for anything else.
        """
        indices = list(range(start, start + size))
        if not session.pending_commit(indices):
            logger.debug("Indices %d - %d already on chain", start, indices[-1])
            return Ok()

        if not session.program.config_address:
            logger.error("Program config address missing from cache")
            return FatalError("program config address missing from cache")

        try:
            instruction = self._build_instruction(session, indices)
        except MissingCacheItem as e:
            logger.error("%s", e)
            return FatalError(str(e), e)
        except LayoutError as e:
            logger.error("Batch %d - %d does not fit config lines: %s", start, indices[-1], e)
            return FatalError(str(e), e)

        logger.info("Writing indices %d - %d", start, indices[-1])
        try:
            receipt = await self._engine.send_instructions([instruction])
            transaction_ref = self._explorer_url_template.format(
                txid=receipt.txid, env=session.env,
            )
            session.mark_committed(indices, transaction_ref)
            logger.info(
                "Committed indices %d - %d in %s", start, indices[-1], receipt.txid,
            )
            return Ok(receipt)
        except TransactionFailed as e:
            if e.code == self._fatal_error_code:
                logger.error(
                    "Received fatal error %d committing %d - %d: %s",
                    e.code, start, indices[-1], e,
                )
                fatal = FatalProgramError(e.code, str(e))
                return FatalError(str(fatal), fatal)
            logger.error("Commit of %d - %d failed: %s", start, indices[-1], e)
            return RetryableError(str(e), e)
        except (LedgerError, TransientNetworkError) as e:
            logger.error("Commit of %d - %d failed: %s", start, indices[-1], e)
            return RetryableError(str(e), e)
        finally:
            session.save()

    def _build_instruction(
        self, session: CacheSession, indices: list[int],
    ) -> AppendIndexLines:
        lines: list[IndexLine] = []
        for index in indices:
            item = session.get(index)
            if item is None or not item.link:
                raise MissingCacheItem(index)
            line = IndexLine(uri=item.link, name=item.name)
            validate_index_line(line)
            lines.append(line)

        return AppendIndexLines(
            config=session.program.config_address,
            authority=self._engine.signer.public_key,
            start_index=indices[0],
            lines=tuple(lines),
        )
