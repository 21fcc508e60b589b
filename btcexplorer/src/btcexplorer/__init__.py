"""
btcexplorer - Uniform access to Bitcoin blockchain explorer web services

Normalizes transactions, unspent outputs and broadcasts from several
explorer APIs and scans transaction streams for application messages.
"""

__version__ = "0.3.0"

from btcexplorer.backends import (
    BACKENDS,
    ExplorerBackend,
    FakeBackend,
    SoChainBackend,
    ToshiBackend,
    create_backend,
)
from btcexplorer.config import BackendConfig, Settings, get_settings
from btcexplorer.exceptions import (
    ConfigurationError,
    DecodeError,
    ExplorerError,
    MalformedResponseError,
    NoUtxosError,
    RateLimiterError,
    RelayUnacceptedError,
    TransactionParseError,
    TransportError,
)
from btcexplorer.models import (
    UTXO,
    ScannedMessage,
    Transaction,
    TxInput,
    TxOutput,
    to_satoshis,
)
from btcexplorer.paginator import Page, Paginator
from btcexplorer.rate_limiter import RateLimiter
from btcexplorer.scan import (
    RECORD_CREATED_TYPE,
    RESERVED_ADDRESS_PREFIX,
    MessageScanPipeline,
)
from btcexplorer.transport import HTTPTransport

__all__ = [
    "BACKENDS",
    "BackendConfig",
    "ConfigurationError",
    "DecodeError",
    "ExplorerBackend",
    "ExplorerError",
    "FakeBackend",
    "HTTPTransport",
    "MalformedResponseError",
    "MessageScanPipeline",
    "NoUtxosError",
    "Page",
    "Paginator",
    "RECORD_CREATED_TYPE",
    "RESERVED_ADDRESS_PREFIX",
    "RateLimiter",
    "RateLimiterError",
    "RelayUnacceptedError",
    "ScannedMessage",
    "Settings",
    "SoChainBackend",
    "ToshiBackend",
    "Transaction",
    "TransactionParseError",
    "TransportError",
    "TxInput",
    "TxOutput",
    "UTXO",
    "create_backend",
    "get_settings",
    "to_satoshis",
]
