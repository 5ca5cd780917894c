# tests/unit/ledger/test_unit_jsonrpc_client.py — v1
"""Tests for ledger/jsonrpc_client.py — request shape and error mapping."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from assetledger.ledger.jsonrpc_client import JsonRpcLedgerClient
from assetledger.pipeline.errors import LedgerRpcError, TransientNetworkError

RPC_URL = "https://rpc.test"


def _client(handler) -> tuple[JsonRpcLedgerClient, list[dict]]:
    seen: list[dict] = []

    def _record(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        result = handler(body)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})

    http = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return JsonRpcLedgerClient(RPC_URL, http_client=http), seen


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_sends_base64_without_preflight(self):
        client, seen = _client(lambda body: {"result": "sig1"})
        txid = await client.broadcast(b"\x01\x02")
        await client.close()

        assert txid == "sig1"
        assert seen[0]["method"] == "sendTransaction"
        assert seen[0]["params"][0] == base64.b64encode(b"\x01\x02").decode()
        assert seen[0]["params"][1]["skipPreflight"] is True

    @pytest.mark.asyncio
    async def test_request_ids_increment(self):
        client, seen = _client(lambda body: {"result": "sig"})
        await client.broadcast(b"a")
        await client.broadcast(b"a")
        await client.close()
        assert [b["id"] for b in seen] == [1, 2]


class TestSignatureStatus:
    @pytest.mark.asyncio
    async def test_unknown_signature(self):
        client, _ = _client(lambda body: {"result": {"value": [None]}})
        assert await client.get_signature_status("sig") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_confirmed(self):
        client, _ = _client(lambda body: {"result": {"value": [{
            "slot": 42, "confirmations": 1, "err": None, "confirmationStatus": "confirmed",
        }]}})
        status = await client.get_signature_status("sig")
        await client.close()
        assert status.slot == 42
        assert status.is_terminal is True

    @pytest.mark.asyncio
    async def test_error_status_is_terminal(self):
        err = {"InstructionError": [0, {"Custom": 303}]}
        client, _ = _client(lambda body: {"result": {"value": [{
            "slot": 3, "err": err, "confirmationStatus": "processed",
        }]}})
        status = await client.get_signature_status("sig")
        await client.close()
        assert status.err == err
        assert status.is_terminal is True


class TestSimulate:
    @pytest.mark.asyncio
    async def test_returns_err_and_logs(self):
        client, seen = _client(lambda body: {"result": {"value": {
            "err": {"Custom": 1}, "logs": ["Program log: boom"],
        }}})
        result = await client.simulate(b"tx")
        await client.close()
        assert result.err == {"Custom": 1}
        assert result.logs == ["Program log: boom"]
        assert seen[0]["params"][1]["replaceRecentBlockhash"] is True


class TestAccountData:
    @pytest.mark.asyncio
    async def test_decodes_base64(self):
        raw = b"\x00\x01config"
        client, seen = _client(lambda body: {"result": {"value": {
            "data": [base64.b64encode(raw).decode(), "base64"],
        }}})
        assert await client.get_account_data("Cfg") == raw
        await client.close()
        assert seen[0]["params"][0] == "Cfg"

    @pytest.mark.asyncio
    async def test_missing_account(self):
        client, _ = _client(lambda body: {"result": {"value": None}})
        with pytest.raises(LedgerRpcError):
            await client.get_account_data("Cfg")
        await client.close()


class TestBlockReference:
    @pytest.mark.asyncio
    async def test_latest_blockhash(self):
        client, _ = _client(lambda body: {"result": {"value": {
            "blockhash": "Hash1", "lastValidBlockHeight": 99,
        }}})
        block = await client.get_recent_block_reference()
        await client.close()
        assert block.blockhash == "Hash1"
        assert block.last_valid_block_height == 99

    @pytest.mark.asyncio
    async def test_null_result(self):
        client, _ = _client(lambda body: {"result": None})
        with pytest.raises(LedgerRpcError, match="getLatestBlockhash"):
            await client.get_recent_block_reference()
        await client.close()


class TestErrors:
    @pytest.mark.asyncio
    async def test_non_object_reply(self):
        client, _ = _client(lambda body: httpx.Response(200, json=[]))
        with pytest.raises(LedgerRpcError, match="unexpected reply"):
            await client.broadcast(b"\x01")
        await client.close()

    @pytest.mark.asyncio
    async def test_rpc_error_object(self):
        client, _ = _client(lambda body: {"error": {"code": -32002, "message": "bad"}})
        with pytest.raises(LedgerRpcError) as exc_info:
            await client.broadcast(b"tx")
        await client.close()
        assert exc_info.value.method == "sendTransaction"

    @pytest.mark.asyncio
    async def test_http_status_is_transient(self):
        client, _ = _client(lambda body: httpx.Response(503, text="unavailable"))
        with pytest.raises(TransientNetworkError):
            await client.broadcast(b"tx")
        await client.close()

    @pytest.mark.asyncio
    async def test_connect_error_is_transient(self):
        def _fail(request):
            raise httpx.ConnectError("refused", request=request)

        client = JsonRpcLedgerClient(
            RPC_URL, http_client=httpx.AsyncClient(transport=httpx.MockTransport(_fail)),
        )
        with pytest.raises(TransientNetworkError):
            await client.get_recent_block_reference()
        await client.close()
