#!/usr/bin/env python3
"""Server (relay) mode implementation for cliphub.

The relay listens on a TCP port and accepts any number of peers. Every
snapshot a peer sends is forwarded unchanged to all other connected peers.
The relay itself keeps no clipboard state, so it can be restarted at any
time; clients reconnect on their own.

With sync_local the relay machine also takes part: a regular client session
for the local clipboard connects to the relay over loopback.

Usage:
    cliphub server -p 5563 [--sync-local]
"""

from __future__ import annotations

import asyncio
import logging
import sys

from cliphub.client import install_shutdown_handlers
from cliphub.relay import Relay
from cliphub.server_handler import handle_peer
from cliphub.watcher import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

# Addresses the local clipboard session uses to reach a relay bound to all
# interfaces. An IPv6 wildcard listener is IPV6_V6ONLY, so it needs ::1.
LOOPBACK_HOST: str = "127.0.0.1"
LOOPBACK_HOST_V6: str = "::1"

_WILDCARD_HOSTS = frozenset({"", "0.0.0.0"})


async def start_relay(host: str, port: int) -> tuple[asyncio.Server, Relay]:
    """Start listening for peers.

    Args:
        host: Address to bind.
        port: TCP port to bind, 0 for an ephemeral port.

    Returns:
        Tuple of (asyncio.Server, Relay).

    Raises:
        OSError: If the address cannot be bound (e.g. port already in use).
    """
    relay = Relay()
    server = await asyncio.start_server(
        lambda r, w: handle_peer(relay, r, w),
        host=host,
        port=port,
    )
    return server, relay


def local_connect_host(bind_host: str) -> str:
    """Return the address a local client should use to reach a relay bound to bind_host."""
    if bind_host == "::":
        return LOOPBACK_HOST_V6
    return LOOPBACK_HOST if bind_host in _WILDCARD_HOSTS else bind_host


def bound_port(server: asyncio.Server) -> int:
    """Return the TCP port the server actually listens on."""
    return server.sockets[0].getsockname()[1]


async def stop_relay(server: asyncio.Server, relay: Relay) -> None:
    """Stop accepting and disconnect every peer, waiting for their handlers to finish."""
    server.close()
    await relay.close_all()
    await relay.wait_closed()
    await server.wait_closed()


def print_startup_message(host: str, port: int) -> None:
    """Print relay startup message to stderr.

    Args:
        host: Bound address.
        port: Bound TCP port.
    """
    print(f"Relay listening on {host}:{port}", file=sys.stderr)
    print(f"Connect peers with: cliphub client HOST:{port}", file=sys.stderr)


async def run_server(
    port: int,
    host: str = "0.0.0.0",
    sync_local: bool = False,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """Run the relay until SIGINT or SIGTERM.

    Args:
        port: TCP port to listen on.
        host: Address to bind.
        sync_local: Also synchronize this machine's clipboard.
        poll_interval: Poll interval for the local clipboard session.

    Raises:
        OSError: If the relay cannot bind its address.
    """
    server, relay = await start_relay(host, port)
    port = bound_port(server)
    print_startup_message(host, port)

    shutdown_requested = asyncio.Event()
    install_shutdown_handlers(shutdown_requested)

    local_task = None
    if sync_local:
        from cliphub.client import build_client_state, run_client_session
        from cliphub.clipboard import SystemClipboard

        state = build_client_state(SystemClipboard(), poll_interval)
        local_task = asyncio.create_task(
            run_client_session(local_connect_host(host), port, state, shutdown_requested)
        )

    try:
        await shutdown_requested.wait()
        logger.info("Shutting down relay")
    finally:
        if local_task is not None:
            local_task.cancel()
            await asyncio.gather(local_task, return_exceptions=True)
        await stop_relay(server, relay)
