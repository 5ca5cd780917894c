# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides an in-memory ledger that applies ``AppendIndexLines`` to a config
account buffer, a deterministic signer, a recording storage uploader, item
files on disk and fast settings. No network I/O.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Sequence

import pytest

from assetledger.cache.json_store import JsonCacheStore
from assetledger.cache.models import ProgramInfo
from assetledger.cache.session import CacheSession
from assetledger.config.settings import Settings, load_settings
from assetledger.ledger.base_client import (
    BaseLedgerClient,
    BaseProgramInitializer,
    BaseTransactionSigner,
)
from assetledger.ledger.layout import (
    CONFIG_ARRAY_START,
    CONFIG_LINE_SIZE,
    encode_config_line,
    line_offset,
)
from assetledger.ledger.models import (
    BlockReference,
    IndexLine,
    Instruction,
    SignatureStatus,
    SignedTransaction,
    SimulationResult,
)
from assetledger.pipeline.errors import TransientNetworkError, UploadError
from assetledger.storage.base_uploader import BaseStorageUploader
from assetledger.storage.models import Manifest, UploadResult

CONFIG_ADDRESS = "Config1111111111111111111111111111111111111"
AUTHORITY = "Authority111111111111111111111111111111111"
FATAL_ERR = {"InstructionError": [0, {"Custom": 303}]}


# === FAKES ===


class FakeSigner(BaseTransactionSigner):
    """Encodes instructions as JSON; signature = sha256(payload)."""

    def __init__(self, public_key: str = AUTHORITY) -> None:
        self._public_key = public_key
        self.signed: list[SignedTransaction] = []

    @property
    def public_key(self) -> str:
        return self._public_key

    def sign(
        self,
        instructions: Sequence[Instruction],
        block: BlockReference,
        extra_signers: Sequence[Any] = (),
    ) -> SignedTransaction:
        payload = json.dumps(
            {
                "block": block.blockhash,
                "instructions": [i.model_dump(mode="json") for i in instructions],
            },
            sort_keys=True,
        ).encode("utf-8")
        signed = SignedTransaction(
            signature=hashlib.sha256(payload).hexdigest(), payload=payload,
        )
        self.signed.append(signed)
        return signed


class FakeLedger(BaseLedgerClient):
    """In-memory ledger holding one config account."""

    def __init__(self, capacity: int = 64) -> None:
        self.data = bytearray(CONFIG_ARRAY_START + 4 + CONFIG_LINE_SIZE * capacity)
        self.broadcasts: list[str] = []
        self.applied: dict[str, dict[str, Any]] = {}
        self.commits: list[int] = []
        self.transfers: list[dict[str, Any]] = []
        self.status_polls = 0
        self.account_reads = 0
        self.simulations = 0
        self.block_requests = 0
        # Behaviour switches
        self.never_confirm = False
        self.unconfirmed_polls = 0
        # start_index -> N: next N appends fail with code 6000; -1: always code 303
        self.fail_start_indices: dict[int, int] = {}
        self.fail_program_logs: list[str] = ["Program log: Custom program error"]
        self.broadcast_errors = 0
        self.apply_lines = True

    # --- helpers ---

    @staticmethod
    def txid_of(payload: bytes) -> str:
        return hashlib.sha256(payload).hexdigest()

    def _error_for(self, tx: dict[str, Any]) -> dict[str, Any] | None:
        for ins in tx["instructions"]:
            if ins["kind"] == "append_index_lines":
                fails = self.fail_start_indices.get(ins["start_index"], 0)
                if fails:
                    return FATAL_ERR if fails < 0 else {"InstructionError": [0, {"Custom": 6000}]}
        return None

    def write_line(self, index: int, name: str, uri: str) -> None:
        start = line_offset(index)
        self.data[start:start + CONFIG_LINE_SIZE] = encode_config_line(
            IndexLine(uri=uri, name=name)
        )

    # --- BaseLedgerClient ---

    async def broadcast(self, payload: bytes) -> str:
        if self.broadcast_errors:
            self.broadcast_errors -= 1
            raise TransientNetworkError("broadcast dropped")
        txid = self.txid_of(payload)
        self.broadcasts.append(txid)
        if txid in self.applied:
            return txid

        tx = json.loads(payload)
        tx["err"] = self._error_for(tx)
        self.applied[txid] = tx
        if tx["err"] is None:
            for ins in tx["instructions"]:
                if ins["kind"] == "append_index_lines":
                    self.commits.append(ins["start_index"])
                    if self.apply_lines:
                        for offset, line in enumerate(ins["lines"]):
                            self.write_line(ins["start_index"] + offset, line["name"], line["uri"])
                elif ins["kind"] == "transfer":
                    self.transfers.append(ins)
        else:
            start = tx["instructions"][0]["start_index"]
            if self.fail_start_indices[start] > 0:
                self.fail_start_indices[start] -= 1
        return txid

    async def get_signature_status(self, txid: str) -> SignatureStatus | None:
        self.status_polls += 1
        tx = self.applied.get(txid)
        if tx is None or self.never_confirm:
            return None
        if self.unconfirmed_polls > 0:
            self.unconfirmed_polls -= 1
            return SignatureStatus(slot=1, confirmation_status="processed")
        if tx["err"] is not None:
            return SignatureStatus(slot=7, err=tx["err"])
        return SignatureStatus(slot=7, confirmations=1, confirmation_status="confirmed")

    async def simulate(self, payload: bytes) -> SimulationResult:
        self.simulations += 1
        tx = self.applied.get(self.txid_of(payload))
        if tx is None or tx["err"] is None:
            return SimulationResult()
        return SimulationResult(err=tx["err"], logs=list(self.fail_program_logs))

    async def get_account_data(self, address: str) -> bytes:
        self.account_reads += 1
        return bytes(self.data)

    async def get_recent_block_reference(self) -> BlockReference:
        self.block_requests += 1
        return BlockReference(blockhash=f"block-{self.block_requests}")


class FakeStorage(BaseStorageUploader):
    """Records uploads; ``fail_once`` item stems fail on their first attempt."""

    kind = "fake"

    def __init__(self) -> None:
        self.uploads: list[str] = []
        self.attempts: list[str] = []
        self.fail_once: set[str] = set()
        self.always_fail: set[str] = set()

    async def upload(
        self,
        content_file: Path,
        manifest_bytes: bytes,
        manifest: Manifest,
    ) -> UploadResult:
        stem = Path(content_file).stem
        self.attempts.append(stem)
        if stem in self.always_fail:
            raise UploadError(f"provider rejected {stem}")
        if stem in self.fail_once:
            self.fail_once.discard(stem)
            raise UploadError(f"transient failure for {stem}")
        self.uploads.append(stem)
        return UploadResult(
            uri=f"https://arweave.net/{stem}-manifest",
            payment_ref=f"pay-{stem}-{len(self.uploads)}",
        )


class FakeInitializer(BaseProgramInitializer):
    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], int, bool]] = []

    async def initialize(
        self, manifest: dict[str, Any], total_items: int, retain_authority: bool,
    ) -> ProgramInfo:
        self.calls.append((manifest, total_items, retain_authority))
        return ProgramInfo(uuid="Config", config_address=CONFIG_ADDRESS)


# === FIXTURES ===


@pytest.fixture
def fast_settings(tmp_path: Path) -> Settings:
    """Settings with tiny intervals so retries and polling run instantly."""
    return load_settings(
        cache_root=tmp_path / "cache",
        resubmit_interval_s=0.01,
        confirm_poll_interval_s=0.01,
        confirmation_timeout_s=0.3,
        upload_retry_delay_s=0,
        commit_retry_delay_s=0,
        verify_retry_delay_s=0,
    )


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def fake_initializer() -> FakeInitializer:
    return FakeInitializer()


@pytest.fixture
def cache_store(tmp_path: Path) -> JsonCacheStore:
    return JsonCacheStore(tmp_path / "cache")


@pytest.fixture
def session(cache_store: JsonCacheStore) -> CacheSession:
    """Empty session with an initialized program config."""
    s = CacheSession(cache_store, "temp", "devnet")
    s.set_program(ProgramInfo(uuid="Config", config_address=CONFIG_ADDRESS, authority=AUTHORITY))
    return s


def write_item(directory: Path, index: int, name: str | None = None) -> Path:
    """Write ``<index>.png`` and its manifest, return the image path."""
    directory.mkdir(parents=True, exist_ok=True)
    image = directory / f"{index}.png"
    image.write_bytes(b"\x89PNG fake " + str(index).encode())
    manifest = {
        "name": name or f"Item #{index}",
        "symbol": "ITM",
        "image": f"{index}.png",
        "seller_fee_basis_points": 500,
        "properties": {
            "files": [{"uri": f"{index}.png", "type": "image/png"}],
            "creators": [{"address": AUTHORITY, "share": 100}],
        },
    }
    (directory / f"{index}.json").write_text(json.dumps(manifest), encoding="utf-8")
    return image


@pytest.fixture
def item_files(tmp_path: Path):
    """Factory: create ``n`` item pairs under ``tmp_path/assets``."""

    def _make(n: int) -> list[Path]:
        return [write_item(tmp_path / "assets", i) for i in range(n)]

    return _make


@pytest.fixture
def seed_uploaded():
    """Factory: record uploads for ``indices`` in a session (no network)."""

    def _seed(s: CacheSession, indices) -> None:
        for i in indices:
            s.record_upload(i, f"https://arweave.net/{i}-manifest", f"Item #{i}", f"pay-{i}")

    return _seed
