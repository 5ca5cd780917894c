# src/pipeline/errors.py — v1
"""Error taxonomy for the upload/commit/verify pipeline.

Transient errors are retried by the stage that raised them and leave the
cache untouched. Fatal errors (program rejection, missing cache item,
persistence loss) stop the run; cache progress made so far is kept.
"""

from __future__ import annotations

from typing import Any


class AssetLedgerError(Exception):
    """Base class for all pipeline errors."""


class TransientNetworkError(AssetLedgerError):
    """Storage or RPC transport failure. Retried at the calling stage."""


class UploadError(TransientNetworkError):
    """Off-chain storage provider rejected or failed an upload."""


class ManifestParseError(AssetLedgerError):
    """Item manifest is missing, not JSON, or fails validation."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid manifest {path}: {reason}")


class LedgerError(AssetLedgerError):
    """Base class for ledger-side failures."""


class LedgerRpcError(LedgerError):
    """JSON-RPC endpoint returned an error object."""

    def __init__(self, method: str, error: Any) -> None:
        self.method = method
        self.error = error
        super().__init__(f"RPC {method} failed: {error}")


class TransactionFailed(LedgerError):
    """Transaction was rejected by the ledger or its program."""

    def __init__(self, message: str, code: int | None = None, txid: str | None = None) -> None:
        self.code = code
        self.txid = txid
        super().__init__(message)


class ConfirmationTimeout(LedgerError):
    """Transaction not observed confirmed within the timeout."""

    def __init__(self, txid: str, timeout_s: float) -> None:
        self.txid = txid
        self.timeout_s = timeout_s
        super().__init__(
            f"Timed out awaiting confirmation on transaction {txid} ({timeout_s:.0f}s)"
        )


class FatalProgramError(AssetLedgerError):
    """Recognized program error code that makes retrying pointless."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(f"Fatal program error {code}: {message}")


class VerificationMismatch(AssetLedgerError):
    """On-ledger record does not (yet) match the cache."""

    def __init__(self, index: int, expected: tuple[str, str], found: tuple[str, str]) -> None:
        self.index = index
        self.expected = expected
        self.found = found
        super().__init__(
            f"Item {index}: expected name={expected[0]!r} uri={expected[1]!r}, "
            f"found name={found[0]!r} uri={found[1]!r}"
        )


class MissingCacheItem(AssetLedgerError):
    """Item required by a batch commit is absent from the cache."""

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Item {index} does not exist in cache")


class CacheInvariantError(AssetLedgerError):
    """A mutation would break a cache document invariant."""


class CacheCorruptedError(AssetLedgerError):
    """Cache file exists but cannot be decoded."""


class CachePersistenceError(AssetLedgerError, OSError):
    """Cache document could not be written to durable storage."""
