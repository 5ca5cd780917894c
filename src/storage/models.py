# src/storage/models.py — v2
"""Storage domain models: Manifest, UploadResult."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from assetledger.pipeline.errors import ManifestParseError

# Name the storage provider stores every item image under.
STORED_IMAGE_NAME = "image.png"


class Manifest(BaseModel):
    """Item metadata manifest (``<index>.json`` next to ``<index>.png``)."""

    model_config = ConfigDict(extra="allow")

    name: str
    symbol: str = ""
    description: str = ""
    image: str = ""
    seller_fee_basis_points: int = 0
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:  # noqa: N805
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    def to_bytes(self) -> bytes:
        return json.dumps(self.model_dump(mode="json", exclude_unset=True)).encode("utf-8")


class UploadResult(BaseModel):
    """Outcome of one successful off-chain upload."""

    uri: str
    payment_ref: str | None = None


def load_manifest(manifest_file: Path, image_name: str) -> Manifest:
    """Read a manifest, pointing its image references at ``image.png``.

    Raises:
        ManifestParseError: If the file is unreadable, not JSON, or invalid.
    """
    try:
        text = Path(manifest_file).read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestParseError(str(manifest_file), str(e)) from e

    text = text.replace(image_name, STORED_IMAGE_NAME)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestParseError(str(manifest_file), f"not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestParseError(str(manifest_file), "top level must be an object")

    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise ManifestParseError(str(manifest_file), str(e)) from e


class StorageCredentials(BaseModel):
    """Credentials for providers that need them (IPFS project id/secret)."""

    project_id: str = ""
    secret_key: str = ""
