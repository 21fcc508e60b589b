"""
Base explorer backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from btcexplorer.config import BackendConfig
from btcexplorer.exceptions import ConfigurationError
from btcexplorer.models import UTXO, ScannedMessage, Transaction
from btcexplorer.scan import MessageDecoder, MessageScanPipeline


def require(value: Any, name: str) -> None:
    """Reject missing or empty arguments before any request is made."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{name} is a required parameter")


def require_height(height: int | str) -> int:
    """Block heights may be given as ints or numeric strings."""
    require(height, "height")
    if isinstance(height, bool) or (isinstance(height, float) and not height.is_integer()):
        raise ValueError(f"Invalid block height: {height!r}")
    try:
        value = int(height)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid block height: {height!r}") from e
    if value < 0:
        raise ValueError(f"Block height must be non-negative, got {value}")
    return value


class ExplorerBackend(ABC):
    """
    Abstract blockchain explorer backend.

    Implementations adapt one web service to a uniform contract: look up a
    transaction, scan an address or a block for application messages, list
    unspent outputs and relay a signed transaction.
    """

    name: str = ""

    def __init__(self, config: BackendConfig | None = None, decoder: MessageDecoder | None = None):
        self.config = config or BackendConfig()
        self.decoder = decoder
        self._pipeline = (
            MessageScanPipeline(decoder, fast_path=self.config.fast_path) if decoder else None
        )

    @property
    def testnet(self) -> bool:
        return self.config.testnet

    @property
    def pipeline(self) -> MessageScanPipeline:
        if self._pipeline is None:
            raise ConfigurationError(f"{type(self).__name__} was created without a message decoder")
        return self._pipeline

    @abstractmethod
    async def tx_by_id(self, txid: str) -> Transaction | None:
        """Get a transaction by id. None if the backend's payload cannot be parsed."""

    @abstractmethod
    async def messages_by_addr(
        self, address: str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        """Decode messages from every transaction touching an address, unconfirmed included."""

    @abstractmethod
    async def messages_in_block(
        self, height: int | str, message_filter: Mapping[str, Any] | None = None
    ) -> list[ScannedMessage]:
        """Decode messages from a block. Each result carries the requested height."""

    @abstractmethod
    async def get_utxos(self, address: str) -> list[UTXO]:
        """Get unspent outputs for an address. Raises NoUtxosError when there are none."""

    @abstractmethod
    async def relay(self, tx_hex: str) -> None:
        """Broadcast a signed transaction. Raises RelayUnacceptedError on rejection."""

    async def close(self) -> None:
        """Close backend connection"""
        pass

    async def __aenter__(self) -> ExplorerBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
