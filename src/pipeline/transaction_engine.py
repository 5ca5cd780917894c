# src/pipeline/transaction_engine.py — v1
"""Land one ledger transaction over an unreliable broadcast channel.

Protocol for one attempt:
    1. Anchor the instructions to a recent block and sign once.
    2. Broadcast, then keep re-broadcasting the identical payload every
       ``resubmit_interval_s`` in a background task.
    3. Poll the signature status every ``confirm_poll_interval_s``.
    4. Both activities stop together on the first terminal status or when
       ``confirmation_timeout_s`` expires.
    5. On timeout or ledger-side error, simulate the payload and surface the
       most specific ``Program log:`` line as the failure reason.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any

from assetledger.config.settings import Settings
from assetledger.ledger.base_client import BaseLedgerClient, BaseTransactionSigner
from assetledger.ledger.models import (
    BlockReference,
    Instruction,
    SignatureStatus,
    SignedTransaction,
    SimulationResult,
    TransactionReceipt,
)
from assetledger.pipeline.errors import (
    AssetLedgerError,
    ConfirmationTimeout,
    TransactionFailed,
)

logger = logging.getLogger(__name__)

PROGRAM_LOG_PREFIX = "Program log: "


def extract_error_code(err: Any) -> int | None:
    """Find a ``{"Custom": <code>}`` program error code anywhere in ``err``."""
    if isinstance(err, dict):
        custom = err.get("Custom")
        if isinstance(custom, int):
            return custom
        for value in err.values():
            code = extract_error_code(value)
            if code is not None:
                return code
    elif isinstance(err, (list, tuple)):
        for value in err:
            code = extract_error_code(value)
            if code is not None:
                return code
    return None


def program_log_message(logs: Sequence[str] | None) -> str | None:
    """Return the last ``Program log:`` line, without its prefix."""
    for line in reversed(logs or ()):
        if line.startswith(PROGRAM_LOG_PREFIX):
            return line[len(PROGRAM_LOG_PREFIX):]
    return None


class TransactionEngine:
    """Build, sign, broadcast and confirm single transactions."""

    def __init__(
        self,
        client: BaseLedgerClient,
        signer: BaseTransactionSigner,
        resubmit_interval_s: float = 0.5,
        confirm_poll_interval_s: float = 1.0,
        timeout_s: float = 60.0,
    ) -> None:
        self._client = client
        self._signer = signer
        self._resubmit_interval_s = resubmit_interval_s
        self._poll_interval_s = confirm_poll_interval_s
        self._timeout_s = timeout_s

    @classmethod
    def from_settings(
        cls,
        client: BaseLedgerClient,
        signer: BaseTransactionSigner,
        settings: Settings,
    ) -> TransactionEngine:
        return cls(
            client,
            signer,
            resubmit_interval_s=settings.resubmit_interval_s,
            confirm_poll_interval_s=settings.confirm_poll_interval_s,
            timeout_s=settings.confirmation_timeout_s,
        )

    @property
    def signer(self) -> BaseTransactionSigner:
        return self._signer

    async def send_instructions(
        self,
        instructions: Sequence[Instruction],
        extra_signers: Sequence[Any] = (),
        block: BlockReference | None = None,
    ) -> TransactionReceipt:
        """Sign ``instructions`` into one transaction and land it.

        Raises:
            TransactionFailed: Ledger or program rejected the transaction.
            ConfirmationTimeout: Not confirmed within the timeout.
            TransientNetworkError: Broadcast or block lookup failed.
        """
        if block is None:
            block = await self._client.get_recent_block_reference()
        signed = self._signer.sign(instructions, block, extra_signers)
        return await self.send_signed(signed)

    async def send_signed(self, signed: SignedTransaction) -> TransactionReceipt:
        """Broadcast ``signed`` with resubmission and wait for confirmation."""
        txid = await self._client.broadcast(signed.payload)
        logger.debug("Started awaiting confirmation for %s", txid)

        done = asyncio.Event()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout_s
        resubmitter = asyncio.create_task(
            self._resubmit_loop(signed, done, deadline),
            name=f"resubmit-{txid[:8]}",
        )
        try:
            try:
                status = await asyncio.wait_for(
                    self._await_confirmation(txid), timeout=self._timeout_s,
                )
            except asyncio.TimeoutError:
                status = None
        finally:
            done.set()
            resubmitter.cancel()
            await asyncio.gather(resubmitter, return_exceptions=True)

        if status is not None and status.err is None:
            logger.debug("Transaction %s confirmed in slot %d", txid, status.slot)
            return TransactionReceipt(txid=txid, slot=status.slot)

        if status is None:
            logger.warning(
                "Timed out awaiting confirmation on %s after %.0fs", txid, self._timeout_s,
            )
            failure: AssetLedgerError = ConfirmationTimeout(txid, self._timeout_s)
        else:
            logger.error("Transaction %s failed: %s", txid, status.err)
            failure = TransactionFailed(
                f"Transaction failed: {json.dumps(status.err, default=str)}",
                code=extract_error_code(status.err),
                txid=txid,
            )
        raise await self._diagnose(signed, txid, failure)

    async def _resubmit_loop(
        self,
        signed: SignedTransaction,
        done: asyncio.Event,
        deadline: float,
    ) -> None:
        loop = asyncio.get_running_loop()
        # The initial broadcast already happened; wait an interval before each resend.
        while not done.is_set() and loop.time() < deadline:
            try:
                await asyncio.wait_for(done.wait(), timeout=self._resubmit_interval_s)
                return
            except asyncio.TimeoutError:
                pass
            try:
                await self._client.broadcast(signed.payload)
            except AssetLedgerError as e:
                logger.debug("Resubmission of %s failed: %s", signed.signature, e)

    async def _await_confirmation(self, txid: str) -> SignatureStatus:
        while True:
            await asyncio.sleep(self._poll_interval_s)
            try:
                status = await self._client.get_signature_status(txid)
            except AssetLedgerError as e:
                logger.debug("Status poll for %s failed: %s", txid, e)
                continue
            if status is not None and status.is_terminal:
                return status
            logger.debug("No terminal status for %s yet", txid)

    async def _diagnose(
        self,
        signed: SignedTransaction,
        txid: str,
        failure: AssetLedgerError,
    ) -> AssetLedgerError:
        """Simulate the payload to turn ``failure`` into a precise error."""
        try:
            result: SimulationResult = await self._client.simulate(signed.payload)
        except AssetLedgerError as e:
            logger.error("Simulate transaction error for %s: %s", txid, e)
            return failure

        if result.err is None:
            return failure

        code = extract_error_code(result.err)
        message = program_log_message(result.logs)
        if message is not None:
            return TransactionFailed(f"Transaction failed: {message}", code=code, txid=txid)
        return TransactionFailed(json.dumps(result.err, default=str), code=code, txid=txid)
