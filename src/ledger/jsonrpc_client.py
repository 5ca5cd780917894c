# src/ledger/jsonrpc_client.py — v1
"""JSON-RPC ledger client over HTTP (httpx).

Maps the ``BaseLedgerClient`` calls onto the cluster's JSON-RPC methods.
Transport failures become ``TransientNetworkError``; JSON-RPC error objects
become ``LedgerRpcError``.
"""

from __future__ import annotations

import base64
import itertools
import logging
from typing import Any

import httpx

from assetledger.ledger.base_client import BaseLedgerClient
from assetledger.ledger.models import BlockReference, SignatureStatus, SimulationResult
from assetledger.pipeline.errors import LedgerRpcError, TransientNetworkError

logger = logging.getLogger(__name__)


class JsonRpcLedgerClient(BaseLedgerClient):
    """Ledger client speaking JSON-RPC 2.0 to a single endpoint."""

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 30.0,
        commitment: str = "confirmed",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            rpc_url: Cluster JSON-RPC endpoint.
            timeout_s: Per-request timeout.
            commitment: Commitment level for reads and simulation.
            http_client: Pre-built client (tests use ``httpx.MockTransport``).
        """
        self._url = rpc_url
        self._commitment = commitment
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._http.aclose()

    async def _call(self, method: str, *params: Any) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        try:
            response = await self._http.post(self._url, json=request)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransientNetworkError(f"RPC {method} transport error: {e}") from e

        if not isinstance(body, dict):
            raise LedgerRpcError(method, f"unexpected reply {body!r}")
        if body.get("error"):
            raise LedgerRpcError(method, body["error"])
        return body.get("result")

    async def broadcast(self, payload: bytes) -> str:
        return await self._call(
            "sendTransaction",
            base64.b64encode(payload).decode("ascii"),
            {"encoding": "base64", "skipPreflight": True},
        )

    async def get_signature_status(self, txid: str) -> SignatureStatus | None:
        result = await self._call("getSignatureStatuses", [txid])
        values = (result or {}).get("value") or [None]
        status = values[0]
        if status is None:
            return None
        return SignatureStatus(
            slot=status.get("slot", 0),
            confirmations=status.get("confirmations"),
            err=status.get("err"),
            confirmation_status=status.get("confirmationStatus"),
        )

    async def simulate(self, payload: bytes) -> SimulationResult:
        result = await self._call(
            "simulateTransaction",
            base64.b64encode(payload).decode("ascii"),
            {
                "encoding": "base64",
                "commitment": self._commitment,
                "replaceRecentBlockhash": True,
            },
        )
        value = (result or {}).get("value") or {}
        return SimulationResult(err=value.get("err"), logs=value.get("logs"))

    async def get_account_data(self, address: str) -> bytes:
        result = await self._call(
            "getAccountInfo",
            address,
            {"encoding": "base64", "commitment": self._commitment},
        )
        value = (result or {}).get("value")
        if value is None:
            raise LedgerRpcError("getAccountInfo", f"account {address} not found")
        data, _encoding = value["data"]
        return base64.b64decode(data)

    async def get_recent_block_reference(self) -> BlockReference:
        result = await self._call(
            "getLatestBlockhash", {"commitment": self._commitment}
        )
        value = (result or {}).get("value")
        if not value or not value.get("blockhash"):
            raise LedgerRpcError("getLatestBlockhash", "no blockhash in reply")
        return BlockReference(
            blockhash=value["blockhash"],
            last_valid_block_height=value.get("lastValidBlockHeight"),
        )
