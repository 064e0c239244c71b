"""CLI handling for cliphub.

This module provides the command-line interface for cliphub, handling
argument parsing via click, logging configuration, and dispatching to
relay (server) or client mode.

Usage:
    cliphub [-v] server [-p PORT] [--bind HOST] [--sync-local]
    cliphub [-v] client HOST[:PORT]
"""

import click
import sys

from cliphub.main_logging import configure_logging
from cliphub.main_options import DEFAULT_PORT, RelayAddress
from cliphub.watcher import DEFAULT_POLL_INTERVAL

_poll_interval_option = click.option(
    "--poll-interval",
    type=click.FloatRange(min=0.05),
    default=DEFAULT_POLL_INTERVAL,
    show_default=True,
    help="Seconds between clipboard polls",
)


@click.group()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase logging verbosity (-v INFO, -vv DEBUG)",
)
def main(verbose: int) -> None:
    """Keep clipboards of several machines in sync through a relay."""
    configure_logging(verbose)


@main.command()
@click.option(
    "-p",
    "--port",
    type=click.IntRange(1, 65535),
    default=DEFAULT_PORT,
    show_default=True,
    help="TCP port to listen on",
)
@click.option(
    "--bind",
    default="0.0.0.0",
    show_default=True,
    help="Address to listen on",
)
@click.option(
    "--sync-local",
    is_flag=True,
    help="Also synchronize this machine's clipboard",
)
@_poll_interval_option
def server(port: int, bind: str, sync_local: bool, poll_interval: float) -> None:
    """Run the relay that forwards clipboard changes between peers."""
    import asyncio
    from cliphub.server import run_server

    try:
        asyncio.run(run_server(port, bind, sync_local, poll_interval))
    except OSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("address", type=RelayAddress())
@_poll_interval_option
def client(address: tuple[str, int], poll_interval: float) -> None:
    """Synchronize this machine's clipboard with the relay at ADDRESS."""
    import asyncio
    from cliphub.client import run_client

    host, port = address
    asyncio.run(run_client(host, port, poll_interval))
