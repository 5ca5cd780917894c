# src/cache/models.py — v2
"""Cache domain models: ProgramInfo, CacheItem, CacheDocument.

The JSON field names (``onChain``, ``indicesTransaction``, ``payment``,
``program.config``) are a stable on-disk contract shared with earlier
cache files, so they are exposed through aliases.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProgramInfo(BaseModel):
    """Ledger program configuration, set once by initialization."""

    model_config = ConfigDict(populate_by_name=True)

    uuid: str | None = None
    config_address: str | None = Field(default=None, alias="config")
    authority: str | None = None


class CacheItem(BaseModel):
    """Upload/commit/verify progress for a single item index."""

    model_config = ConfigDict(populate_by_name=True)

    link: str
    name: str
    on_chain: bool = Field(default=False, alias="onChain")
    indices_transaction: str | None = Field(default=None, alias="indicesTransaction")
    payment_ref: str | None = Field(default=None, alias="payment")
    verified: bool = False


class CacheDocument(BaseModel):
    """Idempotency ledger for one (cache name, env) pair."""

    model_config = ConfigDict(populate_by_name=True)

    program: ProgramInfo = Field(default_factory=ProgramInfo)
    items: dict[int, CacheItem] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
