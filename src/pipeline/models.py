# src/pipeline/models.py — v1
"""Pipeline models: UploadItem, UploadOutcome, batch states and run summary."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class UploadItem(BaseModel):
    """One item on disk: ``<index>.png`` and its ``<index>.json`` manifest."""

    index: int = Field(ge=0)
    content_file: Path
    manifest_file: Path


class UploadOutcome(BaseModel):
    """Result of uploading one item. Applied to the cache by the caller."""

    index: int
    status: Literal["uploaded", "skipped", "failed"]
    link: str | None = None
    name: str | None = None
    payment_ref: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


class BatchState(str, Enum):
    """Per-batch lifecycle."""

    UPLOAD_PENDING = "upload_pending"
    UPLOADING = "uploading"
    COMMITTING = "committing"
    VERIFYING = "verifying"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


class BatchReport(BaseModel):
    """Final state of one batch."""

    start: int
    end: int  # inclusive
    state: BatchState = BatchState.UPLOAD_PENDING
    uploaded: int = 0
    committed: bool = False
    verified: int = 0
    error: str | None = None


class RunSummary(BaseModel):
    """Summary of one pipeline run."""

    total_items: int
    batches: list[BatchReport] = Field(default_factory=list)
    aborted: bool = False
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.aborted and all(b.state == BatchState.DONE for b in self.batches)
