"""
Message scanning over a batch of raw transactions.

The decoder is supplied by the application's message codec:

    decoder(tx: Transaction, message_filter: Mapping[str, Any]) -> message | None

It may be a plain function or a coroutine function. Returning None means
"no matching message in this transaction"; raising aborts the scan.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from loguru import logger

from btcexplorer.models import ScannedMessage, Transaction

MESSAGE_TYPE_KEY = "type"
RECORD_CREATED_TYPE = "ITCRTE"
RESERVED_ADDRESS_PREFIX = "1DZ"


class _AddressUnknown:
    def __repr__(self) -> str:
        return "ADDRESS_UNKNOWN"


# Returned by an address probe when the listing entry has no output details
ADDRESS_UNKNOWN: Any = _AddressUnknown()

MessageDecoder = Callable[[Transaction, Mapping[str, Any]], Any]
TransactionLoader = Callable[[Any], Awaitable[Transaction | None]]
AddressProbe = Callable[[Any], Any]


class MessageScanPipeline:
    """
    Turns raw listing entries into decoded, filtered messages, in input order.

    Per entry:
    1. Optional fast path: when filtering for created records, an entry whose
       first output is not addressed to the reserved prefix is skipped
       before it is loaded or decoded.
    2. The entry is loaded into a Transaction; entries that cannot be parsed
       and coinbase transactions are skipped.
    3. The decoder runs; None results are skipped, anything else is kept.

    The fast path relies on the codec guarantee that created records are
    always sent to the reserved prefix. It can be disabled per pipeline.
    """

    def __init__(
        self,
        decoder: MessageDecoder,
        fast_path: bool = True,
        record_created_type: str = RECORD_CREATED_TYPE,
        reserved_prefix: str = RESERVED_ADDRESS_PREFIX,
    ):
        self.decoder = decoder
        self.fast_path = fast_path
        self.record_created_type = record_created_type
        self.reserved_prefix = reserved_prefix

    def _fast_path_applies(self, message_filter: Mapping[str, Any]) -> bool:
        return self.fast_path and message_filter.get(MESSAGE_TYPE_KEY) == self.record_created_type

    def _lacks_reserved_prefix(self, address: Any) -> bool:
        return not (isinstance(address, str) and address.startswith(self.reserved_prefix))

    async def decode(self, tx: Transaction, message_filter: Mapping[str, Any]) -> Any:
        result = self.decoder(tx, message_filter)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def scan(
        self,
        raw_txs: Sequence[Any],
        load: TransactionLoader,
        first_output_address: AddressProbe,
        message_filter: Mapping[str, Any] | None = None,
    ) -> list[ScannedMessage]:
        """
        Scan raw listing entries for application messages.

        Args:
            raw_txs: Backend-specific listing entries
            load: Coroutine producing a Transaction for an entry (None if unparseable)
            first_output_address: Reads the first output address from an entry,
                or returns ADDRESS_UNKNOWN when the entry carries no outputs
            message_filter: Passed through to the decoder

        Returns:
            Decoded messages in input order
        """
        message_filter = message_filter or {}
        use_fast_path = self._fast_path_applies(message_filter)
        messages: list[ScannedMessage] = []
        skipped = 0

        for raw in raw_txs:
            address = first_output_address(raw) if use_fast_path else ADDRESS_UNKNOWN
            if use_fast_path and address is not ADDRESS_UNKNOWN:
                if self._lacks_reserved_prefix(address):
                    skipped += 1
                    continue

            tx = await load(raw)
            if tx is None or tx.is_coinbase:
                skipped += 1
                continue

            if use_fast_path and address is ADDRESS_UNKNOWN:
                if self._lacks_reserved_prefix(tx.first_output_address):
                    skipped += 1
                    continue

            message = await self.decode(tx, message_filter)
            if message is None:
                continue

            messages.append(
                ScannedMessage(
                    txid=tx.txid, block_height=tx.block_height, tip=tx.tip, message=message
                )
            )

        logger.debug(
            f"Scanned {len(raw_txs)} transactions: {len(messages)} messages, {skipped} skipped"
        )
        return messages
