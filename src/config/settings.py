# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for pipeline timing, storage endpoints, ledger
endpoints and logging. Every field can be set through an ``ASSETLEDGER_``
prefixed environment variable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


# Larger batches overflow the transaction size limit.
MAX_BATCH_SIZE = 20


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ASSETLEDGER_",
        extra="ignore",
    )

    # === Cache ===
    cache_root: Path = Path(".cache")

    # === Batching ===
    batch_size: int = 9

    # === Transaction engine ===
    resubmit_interval_s: float = 0.5
    confirm_poll_interval_s: float = 1.0
    confirmation_timeout_s: float = 60.0
    fatal_error_code: int = 303

    # === Stage retry policies (None = retry until success) ===
    upload_retry_delay_s: float = 2.0
    commit_retry_delay_s: float = 2.0
    verify_retry_delay_s: float = 1.0
    retry_backoff_factor: float = 1.0
    retry_max_delay_s: float = 30.0
    max_upload_attempts: int | None = None
    max_commit_attempts: int | None = None
    max_verify_attempts: int | None = None
    # Verify retries back off; the standalone verify command is bounded.
    verify_backoff_factor: float = 2.0
    verify_command_max_attempts: int = 5

    # === Ledger ===
    rpc_url_devnet: str = "https://api.devnet.solana.com"
    rpc_url_testnet: str = "https://api.testnet.solana.com"
    rpc_url_mainnet_beta: str = "https://api.mainnet-beta.solana.com"
    rpc_timeout_s: float = 30.0
    explorer_url_template: str = "https://explorer.solana.com/tx/{txid}?cluster={env}"
    signer_factory: str = ""
    initializer_factory: str = ""

    # === Storage: arweave ===
    arweave_upload_url: str = (
        "https://us-central1-principal-lane-200702.cloudfunctions.net/uploadFile4"
    )
    arweave_payment_wallet: str = "HvwC9QSAzvGXhhVrgPmauVwFWcYZhne3hVot9EbHuFTm"
    arweave_storage_cost: int = 20_000
    arweave_upload_timeout_s: float = 10.0
    arweave_gateway_url: str = "https://arweave.net"

    # === Storage: ipfs ===
    ipfs_api_url: str = "https://ipfs.infura.io:5001/api/v0"
    ipfs_gateway_url: str = "https://ipfs.io/ipfs"
    ipfs_upload_timeout_s: float = 30.0
    ipfs_settle_delay_s: float = 0.5

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:  # noqa: N805
        if not 1 <= v <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        return v

    @field_validator(
        "resubmit_interval_s",
        "confirm_poll_interval_s",
        "confirmation_timeout_s",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("intervals and timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.confirm_poll_interval_s >= self.confirmation_timeout_s:
            errors.append(
                "CONFIRM_POLL_INTERVAL_S must be < CONFIRMATION_TIMEOUT_S"
            )
        if self.resubmit_interval_s >= self.confirmation_timeout_s:
            errors.append(
                "RESUBMIT_INTERVAL_S must be < CONFIRMATION_TIMEOUT_S"
            )
        for name in ("max_upload_attempts", "max_commit_attempts", "max_verify_attempts"):
            value = getattr(self, name)
            if value is not None and value < 1:
                errors.append(f"{name.upper()} must be >= 1 when set")
        if self.verify_command_max_attempts < 1:
            errors.append("VERIFY_COMMAND_MAX_ATTEMPTS must be >= 1")
        if self.retry_backoff_factor < 1 or self.verify_backoff_factor < 1:
            errors.append("Backoff factors must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def rpc_url(self, env: str) -> str:
        """Return the RPC endpoint for a cluster name (devnet, mainnet-beta...)."""
        attr = "rpc_url_" + env.replace("-", "_")
        url = getattr(self, attr, None)
        if not url:
            raise ConfigurationError(f"No RPC URL configured for env {env!r}")
        return url


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
