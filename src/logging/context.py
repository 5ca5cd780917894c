# src/logging/context.py — v2
"""Contextual logging support: attach env, cache name, batch and stage to records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per run and per batch.
_env: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "env", default=None
)
_cache_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_name", default=None
)
_batch: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    env: str | None = None
    cache_name: str | None = None
    batch: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        env=_env.get(),
        cache_name=_cache_name.get(),
        batch=_batch.get(),
        stage=_stage.get(),
    )


def set_run_context(env: str, cache_name: str) -> None:
    """Set run-level context (called once per pipeline run)."""
    _env.set(env)
    _cache_name.set(cache_name)


def set_batch_context(start: int, end: int, stage: str | None = None) -> None:
    """Set batch-level context; ``end`` is inclusive."""
    _batch.set(f"{start}-{end}")
    _stage.set(stage)


def set_stage(stage: str | None) -> None:
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _env.set(None)
    _cache_name.set(None)
    _batch.set(None)
    _stage.set(None)
