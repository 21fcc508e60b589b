"""
Tests for response normalization.
"""

from __future__ import annotations

import json

import pytest

from btcexplorer.exceptions import MalformedResponseError, RelayUnacceptedError
from btcexplorer.normalizer import (
    BareNormalizer,
    EnvelopeNormalizer,
    Malformed,
    Rejected,
    Success,
    expect_accepted,
    expect_payload,
)


class TestEnvelopeNormalizer:
    def test_success(self) -> None:
        body = json.dumps({"status": "success", "data": {"tx_hex": "00"}})
        assert EnvelopeNormalizer().normalize(body, ("tx_hex",)) == Success({"tx_hex": "00"})

    def test_fail_status_is_rejected(self) -> None:
        body = json.dumps({"status": "fail", "data": {"tx_hex": "bad-txns-inputs-spent"}})
        normalizer = EnvelopeNormalizer(reason=lambda data: data["tx_hex"])
        assert normalizer.normalize(body) == Rejected("bad-txns-inputs-spent")

    @pytest.mark.parametrize(
        "body",
        [
            "<html>maintenance</html>",
            json.dumps({"data": {}}),
            json.dumps({"status": "pending", "data": {}}),
            json.dumps({"status": "success", "data": {}}),
            json.dumps(["success"]),
        ],
    )
    def test_malformed(self, body: str) -> None:
        assert isinstance(EnvelopeNormalizer().normalize(body, ("tx_hex",)), Malformed)


class TestBareNormalizer:
    def test_success(self) -> None:
        body = json.dumps({"hash": "abc", "inputs": []})
        assert BareNormalizer().normalize(body, ("hash",)).payload["hash"] == "abc"

    def test_error_field_is_rejected(self) -> None:
        result = BareNormalizer().normalize(json.dumps({"error": "Transaction invalid"}))
        assert result == Rejected("Transaction invalid")

    def test_empty_error_is_ignored(self) -> None:
        result = BareNormalizer().normalize(json.dumps({"error": "", "hash": "abc"}), ("hash",))
        assert isinstance(result, Success)

    def test_list_payload(self) -> None:
        assert BareNormalizer().normalize("[]", expect=list) == Success([])

    def test_wrong_type(self) -> None:
        assert isinstance(BareNormalizer().normalize("{}", expect=list), Malformed)

    def test_missing_fields(self) -> None:
        result = BareNormalizer().normalize(json.dumps({"hash": "abc"}), ("hash", "outputs"))
        assert isinstance(result, Malformed)
        assert "outputs" in result.detail

    def test_field_types(self) -> None:
        """Typed required fields reject null and mistyped values."""
        required = {"transactions": list, "transactions_count": int}
        body = json.dumps({"transactions": None, "transactions_count": "3"})

        result = BareNormalizer().normalize(body, required)

        assert isinstance(result, Malformed)
        assert "transactions (expected list)" in result.detail
        assert "transactions_count (expected int)" in result.detail
        ok = json.dumps({"transactions": [], "transactions_count": 3})
        assert isinstance(BareNormalizer().normalize(ok, required), Success)


class TestExpect:
    def test_expect_payload(self) -> None:
        assert expect_payload(Success(1)) == 1
        with pytest.raises(MalformedResponseError):
            expect_payload(Rejected("nope"))
        with pytest.raises(MalformedResponseError):
            expect_payload(Malformed("broken"))

    def test_expect_accepted(self) -> None:
        with pytest.raises(RelayUnacceptedError) as exc_info:
            expect_accepted(Rejected("insufficient fee"))
        assert exc_info.value.reason == "insufficient fee"

        with pytest.raises(MalformedResponseError):
            expect_accepted(Malformed("broken"))
