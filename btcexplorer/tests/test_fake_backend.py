"""
Tests for the in-memory backend.
"""

from __future__ import annotations

import pytest
from conftest import P2PKH_ZERO_ADDRESS, P2PKH_ZERO_SCRIPT, PREV_TXID, serialize_tx

from btcexplorer.backends import FakeBackend
from btcexplorer.exceptions import NoUtxosError, RelayUnacceptedError
from btcexplorer.models import UTXO, Transaction, TxInput, TxOutput


def make_tx(txid: str, address: str, block_height: int | None = None) -> Transaction:
    return Transaction(
        txid=txid,
        inputs=(TxInput(PREV_TXID, 0, ""),),
        outputs=(TxOutput(1_000, "", address),),
        block_height=block_height,
    )


@pytest.fixture
def backend(recording_decoder) -> FakeBackend:
    return FakeBackend(decoder=recording_decoder)


class TestFakeBackend:
    """Tests for FakeBackend."""

    @pytest.mark.asyncio
    async def test_tx_by_id(self, backend) -> None:
        tx = make_tx("a", "1DZx")
        backend.add_transaction(tx)
        assert await backend.tx_by_id("a") == tx
        assert await backend.tx_by_id("unknown") is None

    @pytest.mark.asyncio
    async def test_messages_by_addr_includes_extra_addresses(self, backend) -> None:
        """Transactions are indexed by outputs and any sender address given."""
        backend.add_transaction(make_tx("a", "1DZx"), addresses=["1sender"])
        backend.add_transaction(make_tx("b", "1DZy"))

        by_sender = await backend.messages_by_addr("1sender")
        by_output = await backend.messages_by_addr("1DZy")

        assert [m.txid for m in by_sender] == ["a"]
        assert [m.txid for m in by_output] == ["b"]
        assert await backend.messages_by_addr("1nobody") == []

    @pytest.mark.asyncio
    async def test_messages_in_block(self, backend) -> None:
        backend.add_transaction(make_tx("a", "1DZx", block_height=5))
        backend.add_transaction(make_tx("b", "1DZx", block_height=6))

        messages = await backend.messages_in_block("5")

        assert [(m.txid, m.block_height) for m in messages] == [("a", 5)]

    @pytest.mark.asyncio
    async def test_fast_path_applies(self, backend, recording_decoder) -> None:
        backend.add_transaction(make_tx("a", "1Other"), addresses=["1me"])
        backend.add_transaction(make_tx("b", "1DZx"), addresses=["1me"])

        messages = await backend.messages_by_addr("1me", {"type": "ITCRTE"})

        assert [m.txid for m in messages] == ["b"]
        assert recording_decoder.calls == ["b"]

    @pytest.mark.asyncio
    async def test_utxos(self, backend) -> None:
        utxo = UTXO(
            address="1me", txid=PREV_TXID, output_index=0, script="", satoshis=5, confirmations=1
        )
        with pytest.raises(NoUtxosError):
            await backend.get_utxos("1me")

        backend.add_utxo(utxo)
        assert await backend.get_utxos("1me") == [utxo]

    @pytest.mark.asyncio
    async def test_relay_then_find(self, backend) -> None:
        """A relayed transaction is visible as unconfirmed right away."""
        tx_hex = serialize_tx([(PREV_TXID, 0, b"")], [(1_000, P2PKH_ZERO_SCRIPT)])

        await backend.relay(tx_hex)

        messages = await backend.messages_by_addr(P2PKH_ZERO_ADDRESS)
        assert len(messages) == 1
        assert messages[0].block_height is None
        assert backend.relayed == [tx_hex]
        assert await backend.tx_by_id(messages[0].txid) is not None

    @pytest.mark.asyncio
    async def test_relay_rejects_garbage(self, backend) -> None:
        with pytest.raises(RelayUnacceptedError) as exc_info:
            await backend.relay("not-a-transaction")
        assert exc_info.value.reason.startswith("TX decode failed")

    @pytest.mark.asyncio
    async def test_clear_transactions(self, backend) -> None:
        backend.add_transaction(make_tx("a", "1DZx"))
        backend.clear_transactions()
        assert await backend.tx_by_id("a") is None
        assert await backend.messages_by_addr("1DZx") == []
