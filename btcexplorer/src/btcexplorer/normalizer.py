"""
Response normalization.

Each backend signals success and failure differently. A normalizer turns a
raw body into a tagged result, and the adapter translates that result into
the shared exception taxonomy with expect_payload() / expect_accepted().
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from btcexplorer.exceptions import MalformedResponseError, RelayUnacceptedError


@dataclass(frozen=True)
class Success:
    payload: Any


@dataclass(frozen=True)
class Rejected:
    reason: str


@dataclass(frozen=True)
class Malformed:
    detail: str


ApiResult = Success | Rejected | Malformed


def parse_json(body: str) -> Success | Malformed:
    try:
        return Success(json.loads(body))
    except (json.JSONDecodeError, TypeError) as e:
        return Malformed(f"Response is not JSON: {e}")


RequiredFields = Iterable[str] | Mapping[str, type]


def _has_type(value: Any, expected: type) -> bool:
    # bool is an int subclass but never a valid count
    if expected is int and isinstance(value, bool):
        return False
    return isinstance(value, expected)


def _field_problems(payload: Any, required: RequiredFields) -> list[str]:
    """Required fields that are absent, or present with the wrong type when one is given."""
    if not isinstance(payload, dict):
        return list(required)
    problems = [name for name in required if name not in payload]
    if isinstance(required, Mapping):
        problems += [
            f"{name} (expected {expected.__name__})"
            for name, expected in required.items()
            if name in payload and not _has_type(payload[name], expected)
        ]
    return problems


class EnvelopeNormalizer:
    """
    For services wrapping every payload as {"status": ..., "data": ...}.

    Any status other than success/failure is malformed. A failure status is
    reported as Rejected so that relay can surface the backend's reason;
    other operations treat it as malformed.
    """

    def __init__(
        self,
        status_field: str = "status",
        data_field: str = "data",
        success_status: str = "success",
        failure_status: str = "fail",
        reason: Callable[[Any], str] | None = None,
    ):
        self.status_field = status_field
        self.data_field = data_field
        self.success_status = success_status
        self.failure_status = failure_status
        self.reason = reason or (lambda data: json.dumps(data))

    def normalize(self, body: str, required: RequiredFields = ()) -> ApiResult:
        parsed = parse_json(body)
        if isinstance(parsed, Malformed):
            return parsed

        envelope = parsed.payload
        if not isinstance(envelope, dict) or self.status_field not in envelope:
            return Malformed(f"Missing '{self.status_field}' in response envelope")

        status = envelope[self.status_field]
        data = envelope.get(self.data_field)

        if status == self.failure_status:
            return Rejected(self.reason(data))
        if status != self.success_status:
            return Malformed(f"Unrecognized status {status!r}")

        problems = _field_problems(data, required)
        if problems:
            return Malformed(f"Invalid response data fields: {', '.join(problems)}")
        return Success(data)


class BareNormalizer:
    """
    For services returning the payload directly.

    A present, non-empty error field is a rejection; the absence of expected
    fields (or an unexpected top-level type) is malformed.
    """

    def __init__(self, error_field: str = "error"):
        self.error_field = error_field

    def normalize(
        self,
        body: str,
        required: RequiredFields = (),
        expect: type = dict,
    ) -> ApiResult:
        parsed = parse_json(body)
        if isinstance(parsed, Malformed):
            return parsed

        payload = parsed.payload
        if isinstance(payload, dict) and payload.get(self.error_field):
            return Rejected(str(payload[self.error_field]))

        if not isinstance(payload, expect):
            return Malformed(
                f"Expected {expect.__name__} response, got {type(payload).__name__}"
            )

        problems = _field_problems(payload, required) if expect is dict else []
        if problems:
            return Malformed(f"Invalid response fields: {', '.join(problems)}")
        return Success(payload)


def expect_payload(result: ApiResult) -> Any:
    """Unwrap a successful result; anything else is a malformed response."""
    if isinstance(result, Success):
        return result.payload
    if isinstance(result, Rejected):
        raise MalformedResponseError(f"Backend reported failure: {result.reason}")
    raise MalformedResponseError(result.detail)


def expect_accepted(result: ApiResult) -> Any:
    """Unwrap a relay result, raising RelayUnacceptedError on rejection."""
    if isinstance(result, Rejected):
        raise RelayUnacceptedError(result.reason)
    if isinstance(result, Malformed):
        raise MalformedResponseError(result.detail)
    return result.payload
