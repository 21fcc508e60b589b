"""
Test configuration for btcexplorer tests.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from btcexplorer.transport import HTTPTransport

P2PKH_ZERO_SCRIPT = bytes([0x76, 0xA9, 0x14]) + bytes(20) + bytes([0x88, 0xAC])
P2PKH_ZERO_ADDRESS = "1111111111111111111114oLvT2"
OP_RETURN_SCRIPT = bytes([0x6A, 0x04]) + b"DZ01"
PREV_TXID = "11" * 32


def _varint(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    return b"\xfd" + n.to_bytes(2, "little")


def serialize_tx(
    inputs: list[tuple[str, int, bytes]],
    outputs: list[tuple[int, bytes]],
    witnesses: list[list[bytes]] | None = None,
) -> str:
    """Serialize a version 1 transaction to hex (segwit layout when witnesses are given)."""
    data = (1).to_bytes(4, "little")
    if witnesses is not None:
        data += b"\x00\x01"
    data += _varint(len(inputs))
    for prev_txid, vout, script in inputs:
        data += bytes.fromhex(prev_txid)[::-1]
        data += vout.to_bytes(4, "little")
        data += _varint(len(script)) + script
        data += b"\xff\xff\xff\xff"
    data += _varint(len(outputs))
    for value, script in outputs:
        data += value.to_bytes(8, "little")
        data += _varint(len(script)) + script
    if witnesses is not None:
        for stack in witnesses:
            data += _varint(len(stack))
            for item in stack:
                data += _varint(len(item)) + item
    data += (0).to_bytes(4, "little")
    return data.hex()


@pytest.fixture
def simple_tx_hex() -> str:
    """One input, a P2PKH output and an OP_RETURN output."""
    return serialize_tx(
        inputs=[(PREV_TXID, 1, bytes([0x01, 0xAB]))],
        outputs=[(50_000, P2PKH_ZERO_SCRIPT), (0, OP_RETURN_SCRIPT)],
    )


@pytest.fixture
def coinbase_tx_hex() -> str:
    return serialize_tx(
        inputs=[("00" * 32, 0xFFFFFFFF, bytes([0x03, 0x01, 0x02, 0x03]))],
        outputs=[(625_000_000, P2PKH_ZERO_SCRIPT)],
    )


class FakeExplorer:
    """
    Routes httpx requests to canned JSON responses and records every request.

    Routes are keyed by URL path; a value may be a JSON-serializable object,
    an httpx.Response, or a callable taking the request.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, response: Any) -> None:
        self.routes[path] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, text=json.dumps(route))

    def transport(self, base_url: str, **kwargs: Any) -> HTTPTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return HTTPTransport(base_url, client=client, **kwargs)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def explorer() -> FakeExplorer:
    return FakeExplorer()


@pytest.fixture
def recording_decoder() -> Callable[..., Any]:
    """Decoder returning the txid for every transaction and recording calls."""
    calls: list[str] = []

    def decode(tx, message_filter):
        calls.append(tx.txid)
        return {"txid": tx.txid, "filter": dict(message_filter)}

    decode.calls = calls  # type: ignore[attr-defined]
    return decode
