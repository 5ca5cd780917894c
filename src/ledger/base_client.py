# src/ledger/base_client.py — v1
"""Abstract ledger collaborators.

The pipeline consumes the ledger through three seams:

* ``BaseLedgerClient``: RPC transport (broadcast, status, simulate, reads).
* ``BaseTransactionSigner``: builds and signs the wire transaction. Key
  loading and the wire encoding live with the concrete ledger library.
* ``BaseProgramInitializer``: one-time creation of the program config.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from assetledger.cache.models import ProgramInfo
from assetledger.ledger.models import (
    BlockReference,
    Instruction,
    SignatureStatus,
    SignedTransaction,
    SimulationResult,
)


class BaseLedgerClient(ABC):
    """Unified interface for ledger RPC backends."""

    @abstractmethod
    async def broadcast(self, payload: bytes) -> str:
        """Submit a signed transaction, return its id."""

    @abstractmethod
    async def get_signature_status(self, txid: str) -> SignatureStatus | None:
        """Return the current status, or None if not yet seen."""

    @abstractmethod
    async def simulate(self, payload: bytes) -> SimulationResult:
        """Dry-run a signed transaction."""

    @abstractmethod
    async def get_account_data(self, address: str) -> bytes:
        """Return the raw data of an account."""

    @abstractmethod
    async def get_recent_block_reference(self) -> BlockReference:
        """Return a recent block reference to anchor new transactions."""

    async def close(self) -> None:
        """Release transport resources."""


class BaseTransactionSigner(ABC):
    """Builds and signs transactions for the paying wallet."""

    @property
    @abstractmethod
    def public_key(self) -> str:
        """Address of the fee payer / authority."""

    @abstractmethod
    def sign(
        self,
        instructions: Sequence[Instruction],
        block: BlockReference,
        extra_signers: Sequence[Any] = (),
    ) -> SignedTransaction:
        """Encode ``instructions`` into one transaction and sign it."""


class BaseProgramInitializer(ABC):
    """Creates the ledger program config the index lines are written to."""

    @abstractmethod
    async def initialize(
        self,
        manifest: dict[str, Any],
        total_items: int,
        retain_authority: bool,
    ) -> ProgramInfo:
        """Create the config account sized for ``total_items`` lines."""
