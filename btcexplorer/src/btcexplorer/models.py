"""
Normalized blockchain records returned by every explorer backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

SATOSHIS_PER_BTC = 100_000_000

NULL_TXID = "0" * 64
COINBASE_OUTPUT_INDEX = 0xFFFFFFFF


def to_satoshis(value: int | str) -> int:
    """
    Convert a backend amount to integer satoshis.

    Integers are taken to be satoshis already. Strings are decimal BTC
    ("0.0002" -> 20000) and are converted exactly, without floats.

    Raises:
        ValueError: If the amount is negative, not a number or finer than one satoshi
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")

    if isinstance(value, int):
        satoshis = value
    elif isinstance(value, str):
        try:
            btc = Decimal(value.strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid BTC amount: {value!r}") from e
        if not btc.is_finite():
            raise ValueError(f"Invalid BTC amount: {value!r}")
        scaled = btc * SATOSHIS_PER_BTC
        if scaled != scaled.to_integral_value():
            raise ValueError(f"BTC amount has sub-satoshi precision: {value!r}")
        satoshis = int(scaled)
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")

    if satoshis < 0:
        raise ValueError(f"Negative amount: {value!r}")
    return satoshis


@dataclass(frozen=True)
class TxInput:
    prev_txid: str
    output_index: int
    script: str


@dataclass(frozen=True)
class TxOutput:
    satoshis: int
    script: str
    address: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.satoshis, bool) or not isinstance(self.satoshis, int):
            raise ValueError(f"Output amount must be integer satoshis, got {self.satoshis!r}")
        if self.satoshis < 0:
            raise ValueError(f"Output amount must be non-negative, got {self.satoshis}")


@dataclass(frozen=True)
class Transaction:
    txid: str
    inputs: tuple[TxInput, ...]
    outputs: tuple[TxOutput, ...]
    block_height: int | None = None  # None while unconfirmed
    tip: int = 0  # Fee in satoshis

    @property
    def is_coinbase(self) -> bool:
        """Generation transactions spend the null outpoint and never carry messages."""
        return (
            len(self.inputs) == 1
            and self.inputs[0].prev_txid == NULL_TXID
            and self.inputs[0].output_index == COINBASE_OUTPUT_INDEX
        )

    @property
    def first_output_address(self) -> str | None:
        if not self.outputs:
            return None
        return self.outputs[0].address


@dataclass(frozen=True)
class UTXO:
    address: str
    txid: str
    output_index: int
    script: str
    satoshis: int
    confirmations: int

    def __post_init__(self) -> None:
        if self.satoshis < 0:
            raise ValueError(f"UTXO amount must be non-negative, got {self.satoshis}")
        if self.confirmations < 0:
            raise ValueError(f"Confirmations must be non-negative, got {self.confirmations}")


@dataclass(frozen=True)
class ScannedMessage:
    """
    An application message found while scanning transactions.

    The message itself is whatever the decoder returned; the remaining
    fields describe the transaction that carried it.
    """

    txid: str
    block_height: int | None
    tip: int
    message: Any
