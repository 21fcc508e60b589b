"""
Exception hierarchy for explorer backends.

Callers can always tell "no data" (empty result, NoUtxosError) apart from
"could not determine" (MalformedResponseError, TransportError).
"""

from __future__ import annotations


class ExplorerError(Exception):
    """Base exception for btcexplorer."""

    pass


class MalformedResponseError(ExplorerError):
    """The backend answered, but its envelope, status or shape was not understood."""

    pass


class NoUtxosError(ExplorerError):
    """The backend affirmatively reports zero unspent outputs for an address."""

    def __init__(self, address: str = ""):
        self.address = address
        super().__init__(f"No unspent outputs for {address}" if address else "No unspent outputs")


class RelayUnacceptedError(ExplorerError):
    """The backend explicitly rejected a broadcast."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class TransportError(ExplorerError):
    """The request itself could not be completed (network, timeout, non-2xx)."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class RateLimiterError(ExplorerError):
    """A token could not be acquired because the limiter is misconfigured."""

    pass


class ConfigurationError(ExplorerError):
    pass


class DecodeError(ExplorerError):
    """Raised by message decoders on a genuine decode failure."""

    pass


class TransactionParseError(ExplorerError):
    pass
