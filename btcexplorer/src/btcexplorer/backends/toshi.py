"""
Toshi (api/v0) explorer backend.

Toshi returns bare JSON with integer satoshi amounts and paginates its
address and block listings with limit/offset instead of rate limiting.
Input scripts come back as space-separated pushes and are reassembled
into script hex.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

from loguru import logger

from btcexplorer.backends.base import ExplorerBackend, require, require_height
from btcexplorer.config import BackendConfig
from btcexplorer.exceptions import MalformedResponseError, NoUtxosError, TransactionParseError
from btcexplorer.models import (
    COINBASE_OUTPUT_INDEX,
    NULL_TXID,
    UTXO,
    ScannedMessage,
    Transaction,
    TxInput,
    TxOutput,
    to_satoshis,
)
from btcexplorer.normalizer import (
    BareNormalizer,
    RequiredFields,
    expect_accepted,
    expect_payload,
)
from btcexplorer.paginator import Page, Paginator
from btcexplorer.scan import MessageDecoder
from btcexplorer.transaction import script_from_pushes
from btcexplorer.transport import HTTPTransport

TOSHI_MAINNET_URL = "https://bitcoin.toshi.io/"
TOSHI_TESTNET_URL = "https://testnet3.toshi.io/"

ADDRESS_PAGE_SIZE = 100
BLOCK_PAGE_SIZE = 1000

TX_FIELDS = {"hash": str, "inputs": list, "outputs": list}
LISTING_FIELDS = {"transactions": list}
COUNTED_LISTING_FIELDS = {"transactions": list, "transactions_count": int}


def transaction_from_json(json_tx: dict[str, Any]) -> Transaction:
    """
    Map a Toshi transaction object onto a Transaction.

    Raises:
        MalformedResponseError: If expected fields are missing or amounts are invalid
        TransactionParseError: If an input script cannot be reassembled
    """
    try:
        inputs = []
        for vin in json_tx["inputs"]:
            if vin.get("coinbase"):
                inputs.append(TxInput(NULL_TXID, COINBASE_OUTPUT_INDEX, vin["coinbase"]))
                continue
            inputs.append(
                TxInput(
                    prev_txid=vin["previous_transaction_hash"],
                    output_index=vin["output_index"],
                    script=script_from_pushes(vin.get("script") or ""),
                )
            )

        outputs = []
        for vout in json_tx["outputs"]:
            addresses = vout.get("addresses") or []
            outputs.append(
                TxOutput(
                    satoshis=to_satoshis(vout["amount"]),
                    script=vout["script_hex"],
                    address=addresses[0] if addresses else None,
                )
            )

        return Transaction(
            txid=json_tx["hash"],
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            block_height=json_tx.get("block_height"),
            tip=to_satoshis(json_tx.get("fees") or 0),
        )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise MalformedResponseError(f"Invalid transaction object: {e!r}") from e


def first_output_address(json_tx: Any) -> str | None:
    outputs = json_tx.get("outputs") if isinstance(json_tx, dict) else None
    if not outputs or not isinstance(outputs[0], dict):
        return None
    addresses = outputs[0].get("addresses") or []
    return addresses[0] if addresses else None


class ToshiBackend(ExplorerBackend):
    """Explorer backend for Toshi."""

    name = "toshi"

    def __init__(
        self,
        config: BackendConfig | None = None,
        decoder: MessageDecoder | None = None,
        transport: HTTPTransport | None = None,
    ):
        super().__init__(config, decoder)
        default_url = TOSHI_TESTNET_URL if self.testnet else TOSHI_MAINNET_URL
        self.transport = transport or HTTPTransport(
            self.config.base_url or default_url, timeout=self.config.timeout
        )
        self.normalizer = BareNormalizer()
        self.address_paginator = Paginator(ADDRESS_PAGE_SIZE)
        self.block_paginator = Paginator(BLOCK_PAGE_SIZE)

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        required: RequiredFields = (),
        expect: type = dict,
    ) -> Any:
        body = await self.transport.get(path, params=params)
        return expect_payload(self.normalizer.normalize(body, required, expect=expect))

    async def tx_by_id(self, txid: str) -> Transaction | None:
        require(txid, "Transaction id")

        data = await self._get_json(f"api/v0/transactions/{txid}", required=TX_FIELDS)
        try:
            tx = transaction_from_json(data)
        except TransactionParseError as e:
            # Not an error, just an unparseable record
            logger.debug(f"Unparseable transaction {txid}: {e}")
            return None
        return dataclasses.replace(tx, txid=txid)

    async def _load_listed_tx(self, json_tx: Any) -> Transaction | None:
        if not isinstance(json_tx, dict):
            raise MalformedResponseError(f"Listed transaction is not an object: {json_tx!r}")
        try:
            return transaction_from_json(json_tx)
        except TransactionParseError as e:
            logger.debug(f"Skipping unparseable transaction {json_tx.get('hash')}: {e}")
            return None

    async def _address_transactions(self, address: str) -> list[Any]:
        async def fetch(offset: int, limit: int) -> Page:
            data = await self._get_json(
                f"api/v0/addresses/{address}/transactions",
                params={"limit": limit, "offset": offset},
                required=LISTING_FIELDS,
            )
            leading = data.get("unconfirmed_transactions") or []
            if not isinstance(leading, list):
                raise MalformedResponseError("unconfirmed_transactions is not a list")
            return Page(records=data["transactions"], leading=leading)

        return await self.address_paginator.collect(fetch)

    async def _block_transactions(self, height: int) -> list[Any]:
        async def fetch(offset: int, limit: int) -> Page:
            required = COUNTED_LISTING_FIELDS if offset == 0 else LISTING_FIELDS
            data = await self._get_json(
                f"api/v0/blocks/{height}/transactions",
                params={"limit": limit, "offset": offset},
                required=required,
            )
            return Page(records=data["transactions"], total=data.get("transactions_count"))

        return await self.block_paginator.collect_counted(fetch)

    async def messages_by_addr(
        self, address: str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        require(address, "addr")
        pipeline = self.pipeline

        transactions = await self._address_transactions(address)
        return await pipeline.scan(
            transactions, self._load_listed_tx, first_output_address, message_filter
        )

    async def messages_in_block(
        self, height: int | str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        block_height = require_height(height)
        pipeline = self.pipeline

        transactions = await self._block_transactions(block_height)
        messages = await pipeline.scan(
            transactions, self._load_listed_tx, first_output_address, message_filter
        )
        return [dataclasses.replace(m, block_height=block_height) for m in messages]

    async def get_utxos(self, address: str) -> list[UTXO]:
        require(address, "addr")

        data = await self._get_json(f"api/v0/addresses/{address}/unspent_outputs", expect=list)
        if len(data) == 0:
            raise NoUtxosError(address)

        try:
            return [
                UTXO(
                    address=address,
                    txid=utxo["transaction_hash"],
                    output_index=utxo["output_index"],
                    script=utxo["script_hex"],
                    satoshis=to_satoshis(utxo["amount"]),
                    confirmations=utxo["confirmations"],
                )
                for utxo in data
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"Invalid unspent output listing: {e}") from e

    async def relay(self, tx_hex: str) -> None:
        require(tx_hex, "Raw transaction")

        body = await self.transport.post("api/v0/transactions", {"hex": tx_hex})
        expect_accepted(self.normalizer.normalize(body))
        logger.info("Transaction accepted by Toshi")

    async def close(self) -> None:
        await self.transport.close()
