# src/ledger/models.py — v1
"""Ledger domain models: instructions, signed payloads, statuses, receipts."""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class IndexLine(BaseModel):
    """One ``{uri, name}`` record written to the config account."""

    uri: str
    name: str


class AppendIndexLines(BaseModel):
    """Append index lines to the config account starting at ``start_index``.

    Executed with the config account and the signing authority as accounts.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["append_index_lines"] = "append_index_lines"
    config: str
    authority: str
    start_index: int = Field(ge=0)
    lines: tuple[IndexLine, ...]


class Transfer(BaseModel):
    """Native-token transfer, used to pay the storage provider."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["transfer"] = "transfer"
    source: str
    destination: str
    amount: int = Field(gt=0)


Instruction = Union[AppendIndexLines, Transfer]


class BlockReference(BaseModel):
    """Recent block hash a transaction is anchored to."""

    blockhash: str
    last_valid_block_height: int | None = None


class SignedTransaction(BaseModel):
    """Signed wire payload. Never mutated after signing."""

    model_config = ConfigDict(frozen=True)

    signature: str
    payload: bytes


class SignatureStatus(BaseModel):
    """Result of a signature status query."""

    slot: int = 0
    confirmations: int | None = None
    err: Any = None
    confirmation_status: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Confirmed, finalized, or carrying an error."""
        return self.err is not None or self.confirmation_status in (
            "confirmed",
            "finalized",
        )


class SimulationResult(BaseModel):
    """Dry-run outcome of a signed transaction."""

    err: Any = None
    logs: list[str] | None = None


class TransactionReceipt(BaseModel):
    """A confirmed transaction."""

    txid: str
    slot: int = 0
