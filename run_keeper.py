#!/usr/bin/env python3
"""
run_keeper.py - CLI entrypoint for the peg keeper.

Usage:
    python run_keeper.py --once
    python run_keeper.py --config config/keeper.yaml --interval 30
"""

import asyncio
import signal
import sys
from pathlib import Path

import click

from chains.providers import RPCProvider
from chains.signer import NodeSigner
from config import build_keeper_config, build_runtime_settings, load_raw_config
from core.exceptions import ConfigurationError
from core.logging import get_logger, set_global_context, setup_logging
from execution.accounting import TradeLedger
from strategy.peg_keeper import PegKeeper, create_peg_keeper

logger = get_logger("peg_keeper.run")

# Graceful shutdown flag
_shutdown_requested = False


def handle_shutdown(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    global _shutdown_requested
    _shutdown_requested = True
    logger.info("Shutdown requested", extra={"context": {"signal": signum}})


async def keeper_loop(keeper: PegKeeper, interval_seconds: float, once: bool) -> int:
    """
    Call check_and_arbitrage until shutdown (or once).

    Returns:
        Number of executed trades
    """
    cycle_count = 0
    executed = 0

    while not _shutdown_requested:
        cycle_count += 1
        result = await keeper.check_and_arbitrage()
        if result.executed:
            executed += 1

        logger.info(
            f"Check #{cycle_count}: executed={result.executed} profit={result.profit}",
            extra={"context": result.to_dict()},
        )

        if once:
            break

        # Sleep in short slices so a signal stops the loop promptly
        slept = 0.0
        while slept < interval_seconds and not _shutdown_requested:
            step = min(1.0, interval_seconds - slept)
            await asyncio.sleep(step)
            slept += step

    return executed


async def run(
    config_path: str | None,
    interval: float | None,
    once: bool,
    ledger_dir: str | None,
) -> int:
    raw = load_raw_config(config_path)
    config = build_keeper_config(raw)
    settings = build_runtime_settings(raw)

    if not settings.rpc_urls:
        raise ConfigurationError("No RPC endpoints configured (rpc.urls or RPC_URL)")
    if not settings.operator_address:
        raise ConfigurationError("No operator address configured (operator.address or OPERATOR_ADDRESS)")

    set_global_context(operator=settings.operator_address)

    provider = RPCProvider(settings.rpc_urls, timeout_seconds=settings.rpc_timeout_seconds)
    signer = NodeSigner(provider, settings.operator_address)
    ledger = TradeLedger(Path(ledger_dir)) if ledger_dir else None

    try:
        keeper = await create_peg_keeper(
            config,
            provider,
            signer,
            ledger=ledger,
            stablecoin_selector=settings.stablecoin_selector,
        )
        executed = await keeper_loop(
            keeper,
            interval if interval is not None else settings.check_interval_seconds,
            once,
        )
    finally:
        await provider.close()

    if ledger is not None:
        logger.info("Ledger summary", extra={"context": ledger.get_summary()})
    logger.info("RPC stats", extra={"context": provider.get_stats_summary()})
    return executed


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    help="Path to keeper.yaml (default: config/keeper.yaml)",
)
@click.option(
    "--once",
    is_flag=True,
    default=False,
    help="Run a single check and exit",
)
@click.option(
    "--interval",
    "-i",
    default=None,
    type=float,
    help="Seconds between checks (default: timing.check_interval_seconds)",
)
@click.option(
    "--log-level",
    "-l",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON log format",
)
@click.option(
    "--ledger-dir",
    "-o",
    default=None,
    help="Directory for the JSONL trade ledger (disabled if omitted)",
)
def main(
    config_path: str | None,
    once: bool,
    interval: float | None,
    log_level: str,
    json_logs: bool,
    ledger_dir: str | None,
) -> None:
    """
    Peg keeper.

    Checks the stablecoin price and arbitrages it back into the peg band.
    """
    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(
        service="peg-keeper",
        version="0.1.0",
    )

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    logger.info(
        "Starting peg keeper",
        extra={"context": {
            "config": config_path,
            "once": once,
            "interval_s": interval,
            "ledger_dir": ledger_dir,
        }},
    )

    try:
        executed = asyncio.run(run(config_path, interval, once, ledger_dir))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", extra={"context": e.to_dict()})
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Peg keeper interrupted")
        return
    except Exception as e:
        logger.error(
            f"Peg keeper error: {e}",
            extra={"context": {"error": str(e)}},
            exc_info=True,
        )
        sys.exit(1)

    click.echo(f"Peg keeper stopped. Trades executed: {executed}")


if __name__ == "__main__":
    main()
