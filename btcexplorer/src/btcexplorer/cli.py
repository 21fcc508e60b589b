"""
btcexplorer CLI - Query explorer backends from the command line.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import typer
from loguru import logger

from btcexplorer.backends import ExplorerBackend, create_backend
from btcexplorer.config import get_settings
from btcexplorer.exceptions import ExplorerError, NoUtxosError

app = typer.Typer(
    name="btcexplorer",
    help="Query Bitcoin blockchain explorer services",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _build_backend(backend_name: str | None, testnet: bool | None) -> ExplorerBackend:
    settings = get_settings()
    config = settings.backend_config()
    if testnet is not None:
        config = config.model_copy(update={"testnet": testnet})
    try:
        return create_backend(backend_name or settings.backend, config=config)
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(1) from e


def _run(backend: ExplorerBackend, call: Callable[[ExplorerBackend], Awaitable[Any]]) -> Any:
    async def runner() -> Any:
        async with backend:
            return await call(backend)

    try:
        return asyncio.run(runner())
    except NoUtxosError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from e
    except (ExplorerError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1) from e


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(value, indent=2))


BackendOption = typer.Option(None, "--backend", "-b", help="Backend: sochain | toshi")
TestnetOption = typer.Option(None, "--testnet/--mainnet", help="Bitcoin network")
LogLevelOption = typer.Option(None, "--log-level", "-l")


@app.command()
def tx(
    txid: str = typer.Argument(..., help="Transaction id"),
    backend: str | None = BackendOption,
    testnet: bool | None = TestnetOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Look up a transaction by id."""
    setup_logging(log_level or get_settings().log_level)

    result = _run(_build_backend(backend, testnet), lambda b: b.tx_by_id(txid))
    if result is None:
        typer.echo(f"Transaction {txid} could not be parsed", err=True)
        raise typer.Exit(1)
    _echo_json(dataclasses.asdict(result))


@app.command()
def utxos(
    address: str = typer.Argument(..., help="Bitcoin address"),
    backend: str | None = BackendOption,
    testnet: bool | None = TestnetOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """List unspent outputs for an address."""
    setup_logging(log_level or get_settings().log_level)

    result = _run(_build_backend(backend, testnet), lambda b: b.get_utxos(address))
    _echo_json([dataclasses.asdict(utxo) for utxo in result])


@app.command()
def relay(
    tx_hex: str = typer.Argument(..., help="Signed raw transaction hex"),
    backend: str | None = BackendOption,
    testnet: bool | None = TestnetOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Broadcast a signed transaction."""
    setup_logging(log_level or get_settings().log_level)

    _run(_build_backend(backend, testnet), lambda b: b.relay(tx_hex))
    typer.echo("Transaction accepted")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
