# src/main.py — v2
"""CLI entry point: upload and verify commands.

Usage:
    assetledger upload <directory> -e devnet -k wallet.json -n 100 [options]
    assetledger verify -e devnet [-c cache-name]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from assetledger.version import __version__

if TYPE_CHECKING:
    from assetledger.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from assetledger.config.settings import load_settings

    try:
        settings = load_settings()
        _setup_logging(settings, args.verbose)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="assetledger",
        description=f"assetledger v{__version__} - upload assets and commit them on chain",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- upload ---
    p_upload = subparsers.add_parser(
        "upload", help="Upload a directory of items and commit them",
    )
    p_upload.add_argument("directory", type=Path, help="Directory of <n>.png/<n>.json pairs")
    _add_common_options(p_upload)
    p_upload.add_argument(
        "-k", "--keypair", required=True,
        help="Wallet keypair path, passed to the signer factory",
    )
    p_upload.add_argument(
        "-n", "--number", type=int, required=True,
        help="Number of index lines the program config holds",
    )
    p_upload.add_argument(
        "-s", "--storage", choices=("arweave", "ipfs"), default="arweave",
        help="Off-chain storage (default: arweave)",
    )
    p_upload.add_argument("--ipfs-infura-project-id", default="", help="IPFS project id")
    p_upload.add_argument("--ipfs-infura-secret", default="", help="IPFS secret key")
    p_upload.add_argument(
        "--retain-authority", action="store_true",
        help="Keep update authority on the program config",
    )
    p_upload.set_defaults(func=_cmd_upload)

    # --- verify ---
    p_verify = subparsers.add_parser(
        "verify", help="Re-check committed items against the ledger",
    )
    _add_common_options(p_verify)
    p_verify.set_defaults(func=_cmd_verify)

    return parser


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-e", "--env", default="devnet",
        help="Ledger cluster: devnet, testnet, mainnet-beta (default: devnet)",
    )
    parser.add_argument(
        "-c", "--cache-name", default="temp",
        help="Cache name (default: temp)",
    )


async def _cmd_upload(args: argparse.Namespace, settings: Settings) -> int:
    """Upload, commit and verify every item in a directory."""
    from assetledger.api.facade import upload
    from assetledger.batch.scanner import ItemScanner
    from assetledger.ledger.jsonrpc_client import JsonRpcLedgerClient
    from assetledger.ledger.plugins import load_initializer, load_signer
    from assetledger.storage.models import StorageCredentials

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    files = ItemScanner(directory).list_files(directory)
    signer = load_signer(settings.signer_factory, args.keypair)
    client = JsonRpcLedgerClient(settings.rpc_url(args.env), timeout_s=settings.rpc_timeout_s)
    try:
        ok = await upload(
            files,
            args.cache_name,
            args.env,
            signer,
            args.number,
            args.storage,
            args.retain_authority,
            StorageCredentials(
                project_id=args.ipfs_infura_project_id,
                secret_key=args.ipfs_infura_secret,
            ),
            ledger_client=client,
            initializer=load_initializer(settings.initializer_factory, client, signer),
            settings=settings,
        )
    finally:
        await client.close()

    print(f"\nDone. Successful = {ok}.")
    return 0 if ok else 1


async def _cmd_verify(args: argparse.Namespace, settings: Settings) -> int:
    """Verify every committed item of a cache."""
    from assetledger.api.facade import verify
    from assetledger.ledger.jsonrpc_client import JsonRpcLedgerClient

    client = JsonRpcLedgerClient(settings.rpc_url(args.env), timeout_s=settings.rpc_timeout_s)
    try:
        ok = await verify(
            args.cache_name, args.env, ledger_client=client, settings=settings,
        )
    finally:
        await client.close()

    print(f"\nVerification complete. All good = {ok}.")
    return 0 if ok else 1


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from assetledger.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
