"""
Explorer backend implementations.

Available backends:
- SoChainBackend: chain.so v2 API (enveloped responses, rate limited)
- ToshiBackend: Toshi v0 API (bare JSON, paginated listings)
- FakeBackend: In-memory chain state for tests
"""

from __future__ import annotations

from btcexplorer.backends.base import ExplorerBackend
from btcexplorer.backends.fake import FakeBackend
from btcexplorer.backends.sochain import SoChainBackend
from btcexplorer.backends.toshi import ToshiBackend
from btcexplorer.config import BackendConfig
from btcexplorer.scan import MessageDecoder

BACKENDS: dict[str, type[ExplorerBackend]] = {
    SoChainBackend.name: SoChainBackend,
    ToshiBackend.name: ToshiBackend,
    FakeBackend.name: FakeBackend,
}


def create_backend(
    name: str,
    config: BackendConfig | None = None,
    decoder: MessageDecoder | None = None,
) -> ExplorerBackend:
    """Instantiate a backend by name."""
    try:
        backend_class = BACKENDS[name.lower()]
    except KeyError:
        available = ", ".join(sorted(BACKENDS))
        raise ValueError(f"Unknown backend '{name}'. Available backends: {available}") from None
    return backend_class(config=config, decoder=decoder)


__all__ = [
    "BACKENDS",
    "ExplorerBackend",
    "FakeBackend",
    "SoChainBackend",
    "ToshiBackend",
    "create_backend",
]
