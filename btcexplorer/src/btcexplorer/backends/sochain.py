"""
chain.so (SoChain v2 API) explorer backend.

SoChain wraps every response in a {"status", "data"} envelope, reports
amounts as decimal BTC strings and enforces a strict request interval, so
every request goes through a RateLimiter.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

from loguru import logger

from btcexplorer.backends.base import ExplorerBackend, require, require_height
from btcexplorer.config import BackendConfig
from btcexplorer.exceptions import MalformedResponseError, NoUtxosError, TransactionParseError
from btcexplorer.models import UTXO, ScannedMessage, Transaction, to_satoshis
from btcexplorer.normalizer import (
    EnvelopeNormalizer,
    RequiredFields,
    expect_accepted,
    expect_payload,
)
from btcexplorer.rate_limiter import RateLimiter
from btcexplorer.scan import ADDRESS_UNKNOWN, MessageDecoder
from btcexplorer.transaction import parse_transaction
from btcexplorer.transport import HTTPTransport

SOCHAIN_URL = "https://chain.so/"
TX_LISTING = {"txs": list}


def _relay_reason(data: Any) -> str:
    if isinstance(data, dict) and data.get("tx_hex"):
        return str(data["tx_hex"])
    return str(data)


class SoChainBackend(ExplorerBackend):
    """Explorer backend for chain.so."""

    name = "sochain"

    def __init__(
        self,
        config: BackendConfig | None = None,
        decoder: MessageDecoder | None = None,
        transport: HTTPTransport | None = None,
    ):
        super().__init__(config, decoder)
        self.transport = transport or HTTPTransport(
            self.config.base_url or SOCHAIN_URL,
            timeout=self.config.timeout,
            limiter=RateLimiter(self.config.rate_limit_interval_ms),
        )
        self.normalizer = EnvelopeNormalizer(reason=_relay_reason)

    @property
    def chain_net(self) -> str:
        return "BTCTEST" if self.testnet else "BTC"

    async def _get_data(self, path: str, required: RequiredFields = ()) -> Any:
        body = await self.transport.get(path)
        return expect_payload(self.normalizer.normalize(body, required))

    async def tx_by_id(self, txid: str) -> Transaction | None:
        require(txid, "Transaction id")

        data = await self._get_data(f"api/v2/tx/{self.chain_net}/{txid}", {"tx_hex": str})
        try:
            tip = to_satoshis(data.get("fee") or 0)
        except ValueError as e:
            raise MalformedResponseError(f"Invalid fee in transaction {txid}: {e}") from e

        try:
            return parse_transaction(
                data["tx_hex"],
                txid=txid,
                block_height=data.get("block_no"),
                tip=tip,
                testnet=self.testnet,
            )
        except TransactionParseError as e:
            # Not an error, just an unparseable record
            logger.debug(f"Unparseable transaction {txid}: {e}")
            return None

    @staticmethod
    def _first_output_address(entry: Any) -> Any:
        if not isinstance(entry, dict) or "outputs" not in entry:
            return ADDRESS_UNKNOWN
        outputs = entry["outputs"]
        if not outputs or not isinstance(outputs[0], dict):
            return None
        return outputs[0].get("address")

    async def _load_listed_tx(self, entry: Any) -> Transaction | None:
        txid = entry if isinstance(entry, str) else entry.get("txid")
        if not txid:
            raise MalformedResponseError(f"Listed transaction has no txid: {entry!r}")
        return await self.tx_by_id(txid)

    async def messages_by_addr(
        self, address: str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        require(address, "addr")
        pipeline = self.pipeline

        data = await self._get_data(f"api/v2/address/{self.chain_net}/{address}", TX_LISTING)
        return await pipeline.scan(
            data["txs"], self._load_listed_tx, self._first_output_address, message_filter
        )

    async def messages_in_block(
        self, height: int | str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        block_height = require_height(height)
        pipeline = self.pipeline

        data = await self._get_data(f"api/v2/block/{self.chain_net}/{block_height}", TX_LISTING)
        messages = await pipeline.scan(
            data["txs"], self._load_listed_tx, self._first_output_address, message_filter
        )
        return [dataclasses.replace(m, block_height=block_height) for m in messages]

    async def get_utxos(self, address: str) -> list[UTXO]:
        require(address, "addr")

        path = f"api/v2/get_tx_unspent/{self.chain_net}/{address}"
        data = await self._get_data(path, TX_LISTING)
        if len(data["txs"]) == 0:
            raise NoUtxosError(address)

        try:
            return [
                UTXO(
                    address=address,
                    txid=utxo["txid"],
                    output_index=utxo["output_no"],
                    script=utxo["script_hex"],
                    satoshis=to_satoshis(utxo["value"]),
                    confirmations=utxo["confirmations"],
                )
                for utxo in data["txs"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"Invalid unspent output listing: {e}") from e

    async def relay(self, tx_hex: str) -> None:
        require(tx_hex, "Raw transaction")

        body = await self.transport.post(f"api/v2/send_tx/{self.chain_net}", {"tx_hex": tx_hex})
        expect_accepted(self.normalizer.normalize(body))
        logger.info("Transaction accepted by chain.so")

    async def close(self) -> None:
        await self.transport.close()
