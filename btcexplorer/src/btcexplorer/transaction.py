"""
Raw Bitcoin transaction parsing.

Backends that only hand out serialized transactions (or scripts in an
alternate encoding) are normalized through these helpers.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import base58
import bech32

from btcexplorer.exceptions import TransactionParseError
from btcexplorer.models import Transaction, TxInput, TxOutput

# OP_PUSHDATA opcodes for pushes that do not fit in a single length byte
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E

P2PKH_VERSION = {False: 0x00, True: 0x6F}
P2SH_VERSION = {False: 0x05, True: 0xC4}
BECH32_HRP = {False: "bc", True: "tb"}


@dataclass
class RawTxInput:
    txid_le: bytes
    vout: int
    script: bytes
    sequence: bytes


@dataclass
class RawTxOutput:
    value: int
    script: bytes


@dataclass
class RawTransaction:
    version: bytes
    marker_flag: bool
    inputs: list[RawTxInput]
    outputs: list[RawTxOutput]
    locktime: bytes
    raw: bytes


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    if first == 0xFD:
        value = int.from_bytes(data[offset : offset + 2], "little")
        return value, offset + 2
    if first == 0xFE:
        value = int.from_bytes(data[offset : offset + 4], "little")
        return value, offset + 4
    value = int.from_bytes(data[offset : offset + 8], "little")
    return value, offset + 8


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def _take(data: bytes, offset: int, length: int) -> tuple[bytes, int]:
    chunk = data[offset : offset + length]
    if len(chunk) != length:
        raise ValueError(f"Truncated data at offset {offset}")
    return chunk, offset + length


def deserialize_transaction(tx_bytes: bytes) -> RawTransaction:
    """
    Parse a serialized transaction (legacy or segwit).

    Raises:
        TransactionParseError: If the bytes are not a complete transaction
    """
    try:
        offset = 0
        version, offset = _take(tx_bytes, offset, 4)

        marker_flag = False
        if tx_bytes[offset] == 0x00 and tx_bytes[offset + 1] == 0x01:
            marker_flag = True
            offset += 2

        input_count, offset = read_varint(tx_bytes, offset)
        inputs: list[RawTxInput] = []

        for _ in range(input_count):
            txid_le, offset = _take(tx_bytes, offset, 32)
            vout_bytes, offset = _take(tx_bytes, offset, 4)
            script_len, offset = read_varint(tx_bytes, offset)
            script, offset = _take(tx_bytes, offset, script_len)
            sequence, offset = _take(tx_bytes, offset, 4)
            inputs.append(
                RawTxInput(txid_le, int.from_bytes(vout_bytes, "little"), script, sequence)
            )

        output_count, offset = read_varint(tx_bytes, offset)
        outputs: list[RawTxOutput] = []

        for _ in range(output_count):
            value_bytes, offset = _take(tx_bytes, offset, 8)
            script_len, offset = read_varint(tx_bytes, offset)
            script, offset = _take(tx_bytes, offset, script_len)
            outputs.append(RawTxOutput(int.from_bytes(value_bytes, "little"), script))

        if marker_flag:
            for _ in range(input_count):
                stack_count, offset = read_varint(tx_bytes, offset)
                for _ in range(stack_count):
                    item_len, offset = read_varint(tx_bytes, offset)
                    _, offset = _take(tx_bytes, offset, item_len)

        locktime, offset = _take(tx_bytes, offset, 4)
        if offset != len(tx_bytes):
            raise ValueError(f"{len(tx_bytes) - offset} trailing bytes")

        return RawTransaction(version, marker_flag, inputs, outputs, locktime, tx_bytes)

    except (IndexError, ValueError) as e:
        raise TransactionParseError(f"Failed to parse transaction: {e}") from e


def serialize_without_witness(tx: RawTransaction) -> bytes:
    data = tx.version + encode_varint(len(tx.inputs))
    for inp in tx.inputs:
        data += inp.txid_le
        data += inp.vout.to_bytes(4, "little")
        data += encode_varint(len(inp.script)) + inp.script
        data += inp.sequence

    data += encode_varint(len(tx.outputs))
    for out in tx.outputs:
        data += out.value.to_bytes(8, "little")
        data += encode_varint(len(out.script)) + out.script

    return data + tx.locktime


def compute_txid(tx: RawTransaction) -> str:
    """Double SHA256 of the non-witness serialization, displayed big-endian."""
    return hash256(serialize_without_witness(tx))[::-1].hex()


def script_to_address(script: bytes, testnet: bool = False) -> str | None:
    """
    Derive the address paid by an output script.

    Handles P2PKH, P2SH, P2WPKH and P2WSH. Anything else (OP_RETURN,
    bare multisig, taproot) has no address here and returns None.
    """
    # P2PKH: OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
    if (
        len(script) == 25
        and script[:3] == bytes([0x76, 0xA9, 0x14])
        and script[23:] == bytes([0x88, 0xAC])
    ):
        return base58.b58encode_check(bytes([P2PKH_VERSION[testnet]]) + script[3:23]).decode()

    # P2SH: OP_HASH160 <20> OP_EQUAL
    if len(script) == 23 and script[:2] == bytes([0xA9, 0x14]) and script[22] == 0x87:
        return base58.b58encode_check(bytes([P2SH_VERSION[testnet]]) + script[2:22]).decode()

    # P2WPKH / P2WSH: OP_0 <20|32>
    if (len(script) == 22 and script[:2] == bytes([0x00, 0x14])) or (
        len(script) == 34 and script[:2] == bytes([0x00, 0x20])
    ):
        return bech32.encode(BECH32_HRP[testnet], 0, script[2:])

    return None


def parse_transaction(
    tx_hex: str,
    txid: str | None = None,
    block_height: int | None = None,
    tip: int = 0,
    testnet: bool = False,
) -> Transaction:
    """
    Build a normalized Transaction from raw hex.

    Args:
        tx_hex: Serialized transaction
        txid: Identifier reported by the backend (computed when omitted)
        block_height: Confirming block, None if unconfirmed
        tip: Fee in satoshis
        testnet: Selects address encodings

    Raises:
        TransactionParseError: If the hex does not decode to a transaction
    """
    try:
        tx_bytes = bytes.fromhex(tx_hex)
    except (TypeError, ValueError) as e:
        raise TransactionParseError(f"Transaction is not hex: {e}") from e

    raw = deserialize_transaction(tx_bytes)

    return Transaction(
        txid=txid or compute_txid(raw),
        inputs=tuple(
            TxInput(
                prev_txid=inp.txid_le[::-1].hex(),
                output_index=inp.vout,
                script=inp.script.hex(),
            )
            for inp in raw.inputs
        ),
        outputs=tuple(
            TxOutput(
                satoshis=out.value,
                script=out.script.hex(),
                address=script_to_address(out.script, testnet),
            )
            for out in raw.outputs
        ),
        block_height=block_height,
        tip=tip,
    )


def push_data(data: bytes) -> bytes:
    """Minimal push opcode for a data element."""
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little") + data


def script_from_pushes(listing: str) -> str:
    """
    Reassemble script hex from a space-separated listing of pushes.

    Some explorers return input scripts as "<sig> <pubkey>" rather than raw
    hex. A lone "0" is OP_0; every other token is pushed as data.

    Raises:
        TransactionParseError: If a token is not valid hex
    """
    script = b""
    for token in listing.split():
        if token == "0":
            script += b"\x00"
            continue
        try:
            script += push_data(bytes.fromhex(token))
        except ValueError as e:
            raise TransactionParseError(f"Invalid script element {token!r}") from e
    return script.hex()
