# src/ledger/plugins.py — v1
"""Resolve externally provided ledger collaborators from dotted paths.

Key loading and program initialization belong to the concrete ledger
library, so the CLI loads them from ``module:callable`` paths configured
in settings (``ASSETLEDGER_SIGNER_FACTORY``, ``ASSETLEDGER_INITIALIZER_FACTORY``).
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable

from assetledger.ledger.base_client import (
    BaseLedgerClient,
    BaseProgramInitializer,
    BaseTransactionSigner,
)

logger = logging.getLogger(__name__)


class PluginError(Exception):
    """Raised when a collaborator factory cannot be loaded."""


def import_factory(path: str) -> Callable[..., Any]:
    """Import a callable from ``'package.module:callable'``."""
    module_path, sep, attr = path.partition(":")
    if not sep or not module_path or not attr:
        raise PluginError(f"Invalid factory path: {path!r} (expected 'module:callable')")

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise PluginError(f"Cannot import module {module_path}: {exc}") from exc

    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise PluginError(f"{attr} not found or not callable in {module_path}")
    return factory


def load_signer(factory_path: str, keypair: str) -> BaseTransactionSigner:
    """Build the wallet signer from a keypair path."""
    if not factory_path:
        raise PluginError("No signer factory configured (ASSETLEDGER_SIGNER_FACTORY)")
    signer = import_factory(factory_path)(keypair)
    if not isinstance(signer, BaseTransactionSigner):
        raise PluginError(f"{factory_path} did not return a BaseTransactionSigner")
    logger.debug("Loaded signer %s", signer.public_key)
    return signer


def load_initializer(
    factory_path: str,
    client: BaseLedgerClient,
    signer: BaseTransactionSigner,
) -> BaseProgramInitializer | None:
    """Build the program initializer, or None when none is configured."""
    if not factory_path:
        return None
    initializer = import_factory(factory_path)(client, signer)
    if not isinstance(initializer, BaseProgramInitializer):
        raise PluginError(f"{factory_path} did not return a BaseProgramInitializer")
    return initializer
