#!/usr/bin/env python3
"""Client mode implementation for cliphub.

This module provides the entry points for client mode, which connects to a
cliphub relay over TCP. The client polls the local clipboard and sends
changes to the relay, while also absorbing clipboard updates the relay
forwards from other peers.

See client_retry.py for connection handling.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from cliphub.client_retry import run_client_connection
from cliphub.snapshot import new_origin_id
from cliphub.sync_state import ClientState
from cliphub.watcher import DEFAULT_POLL_INTERVAL, ChangeWatcher

if TYPE_CHECKING:
    from cliphub.clipboard import ClipboardAccess

logger = logging.getLogger(__name__)


def install_shutdown_handlers(shutdown_requested: asyncio.Event) -> None:
    """Set shutdown_requested on SIGINT or SIGTERM.

    Windows event loops do not implement add_signal_handler, so there the
    handlers are installed with signal.signal and hand the event back to the
    loop thread.

    Args:
        shutdown_requested: Event to set when a shutdown signal arrives.
    """
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_requested.set)
        except NotImplementedError:
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(shutdown_requested.set))


def build_client_state(
    clipboard: ClipboardAccess,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> ClientState:
    """Create client state with a fresh origin id watching clipboard.

    Args:
        clipboard: The local clipboard backend.
        poll_interval: Seconds between clipboard polls.

    Returns:
        A disconnected ClientState.
    """
    watcher = ChangeWatcher(clipboard, new_origin_id(), poll_interval)
    return ClientState(watcher=watcher)


async def run_client_session(
    host: str,
    port: int,
    state: ClientState,
    shutdown_requested: asyncio.Event,
) -> None:
    """Run the watcher and the relay connection until shutdown is requested.

    The watcher keeps polling while the connection is down, so local changes
    made during an outage are sent once the connection is back.

    Args:
        host: Relay host name or address.
        port: Relay TCP port.
        state: The client synchronization state.
        shutdown_requested: Event that ends the session when set.
    """
    logger.info("Client %s syncing with %s:%d", state.origin_id, host, port)
    watch_task = asyncio.create_task(state.watcher.run(state.enqueue_local))
    connection_task = asyncio.create_task(run_client_connection(host, port, state))
    shutdown_task = asyncio.create_task(shutdown_requested.wait())
    tasks = {watch_task, connection_task, shutdown_task}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("Client %s stopped", state.origin_id)


async def run_client(host: str, port: int, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
    """Run client mode against the system clipboard.

    Main entry point for client mode. Registers SIGINT/SIGTERM handlers for
    clean shutdown and runs until one of them fires.

    Args:
        host: Relay host name or address.
        port: Relay TCP port.
        poll_interval: Seconds between clipboard polls.
    """
    from cliphub.clipboard import SystemClipboard

    state = build_client_state(SystemClipboard(), poll_interval)

    # Register signal handlers for clean shutdown
    shutdown_requested = asyncio.Event()
    install_shutdown_handlers(shutdown_requested)

    await run_client_session(host, port, state, shutdown_requested)
