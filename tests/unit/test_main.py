# tests/unit/test_main.py — v2
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from assetledger.main import _build_parser, main


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self, capsys):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_upload_subcommand(self):
        parser = _build_parser()
        args = parser.parse_args(["upload", "assets", "-k", "wallet.json", "-n", "100"])
        assert args.command == "upload"
        assert args.directory == Path("assets")
        assert args.keypair == "wallet.json"
        assert args.number == 100

    def test_upload_defaults(self):
        parser = _build_parser()
        args = parser.parse_args(["upload", "assets", "-k", "w", "-n", "1"])
        assert args.env == "devnet"
        assert args.cache_name == "temp"
        assert args.storage == "arweave"
        assert args.retain_authority is False

    def test_upload_requires_keypair(self):
        parser = _build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["upload", "assets", "-n", "1"])

    def test_storage_choices(self):
        parser = _build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["upload", "assets", "-k", "w", "-n", "1", "-s", "s3"])

    def test_verify_subcommand(self):
        parser = _build_parser()
        args = parser.parse_args(["verify", "-e", "mainnet-beta", "-c", "drop1"])
        assert args.command == "verify"
        assert args.env == "mainnet-beta"
        assert args.cache_name == "drop1"


# ---------------------------------------------------------------------------
# main() tests
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_upload_missing_directory(self, tmp_path):
        with patch("assetledger.main._setup_logging"):
            code = main(["upload", str(tmp_path / "missing"), "-k", "w", "-n", "1"])
        assert code == 1

    def test_upload_without_signer_factory(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ASSETLEDGER_SIGNER_FACTORY", raising=False)
        with patch("assetledger.main._setup_logging"):
            code = main(["upload", str(tmp_path), "-k", "w", "-n", "1"])
        assert code == 1

    def test_upload_success(self, tmp_path, capsys):
        with patch("assetledger.main._setup_logging"), \
             patch("assetledger.ledger.plugins.load_signer"), \
             patch("assetledger.ledger.plugins.load_initializer", return_value=None), \
             patch("assetledger.api.facade.upload", new=AsyncMock(return_value=True)) as up:
            code = main(["upload", str(tmp_path), "-k", "w", "-n", "5", "-s", "ipfs"])
        assert code == 0
        assert "Successful = True" in capsys.readouterr().out
        args = up.await_args.args
        assert args[1] == "temp"
        assert args[2] == "devnet"
        assert args[4] == 5
        assert args[5] == "ipfs"

    def test_verify_failure_exit_code(self, capsys):
        with patch("assetledger.main._setup_logging"), \
             patch("assetledger.api.facade.verify", new=AsyncMock(return_value=False)):
            code = main(["verify"])
        assert code == 1
        assert "All good = False" in capsys.readouterr().out

    def test_keyboard_interrupt(self):
        def _interrupt(coro):
            coro.close()
            raise KeyboardInterrupt

        with patch("assetledger.main._setup_logging"), \
             patch("assetledger.main.asyncio.run", side_effect=_interrupt):
            assert main(["verify"]) == 130
