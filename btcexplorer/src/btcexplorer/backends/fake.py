"""
In-memory explorer backend for tests of code built on ExplorerBackend.

Transactions and unspent outputs are added directly; relayed transactions
are parsed and stored as unconfirmed, so a save-then-find round trip works
without any network.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

from loguru import logger

from btcexplorer.backends.base import ExplorerBackend, require, require_height
from btcexplorer.config import BackendConfig
from btcexplorer.exceptions import NoUtxosError, RelayUnacceptedError, TransactionParseError
from btcexplorer.models import UTXO, ScannedMessage, Transaction
from btcexplorer.scan import MessageDecoder
from btcexplorer.transaction import parse_transaction


class FakeBackend(ExplorerBackend):
    """Explorer backend holding its chain state in memory."""

    name = "fake"

    def __init__(self, config: BackendConfig | None = None, decoder: MessageDecoder | None = None):
        super().__init__(config, decoder)
        self._transactions: dict[str, Transaction] = {}
        # address -> txids touching it, in insertion order
        self._address_index: dict[str, list[str]] = {}
        self._utxos: dict[str, list[UTXO]] = {}
        self.relayed: list[str] = []

    def add_transaction(self, tx: Transaction, addresses: list[str] | None = None) -> None:
        """
        Store a transaction.

        It is indexed under every output address, plus any extra addresses
        given (e.g. the sender, whose address inputs do not carry).
        """
        self._transactions[tx.txid] = tx
        touched = [out.address for out in tx.outputs if out.address] + list(addresses or [])
        for address in dict.fromkeys(touched):
            txids = self._address_index.setdefault(address, [])
            if tx.txid not in txids:
                txids.append(tx.txid)

    def add_utxo(self, utxo: UTXO) -> None:
        self._utxos.setdefault(utxo.address, []).append(utxo)

    def clear_transactions(self) -> None:
        self._transactions.clear()
        self._address_index.clear()
        self._utxos.clear()
        self.relayed.clear()

    async def _load(self, txid: str) -> Transaction | None:
        return self._transactions.get(txid)

    def _first_output_address(self, txid: str) -> str | None:
        tx = self._transactions.get(txid)
        return tx.first_output_address if tx else None

    async def tx_by_id(self, txid: str) -> Transaction | None:
        require(txid, "Transaction id")
        return self._transactions.get(txid)

    async def messages_by_addr(
        self, address: str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        require(address, "addr")
        txids = list(self._address_index.get(address, []))
        return await self.pipeline.scan(
            txids, self._load, self._first_output_address, message_filter
        )

    async def messages_in_block(
        self, height: int | str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        block_height = require_height(height)
        txids = [tx.txid for tx in self._transactions.values() if tx.block_height == block_height]
        messages = await self.pipeline.scan(
            txids, self._load, self._first_output_address, message_filter
        )
        return [dataclasses.replace(m, block_height=block_height) for m in messages]

    async def get_utxos(self, address: str) -> list[UTXO]:
        require(address, "addr")
        utxos = self._utxos.get(address, [])
        if not utxos:
            raise NoUtxosError(address)
        return list(utxos)

    async def relay(self, tx_hex: str) -> None:
        require(tx_hex, "Raw transaction")
        try:
            tx = parse_transaction(tx_hex, testnet=self.testnet)
        except TransactionParseError as e:
            raise RelayUnacceptedError(f"TX decode failed: {e}") from e

        self.add_transaction(tx)
        self.relayed.append(tx_hex)
        logger.debug(f"Fake relay stored {tx.txid}")
