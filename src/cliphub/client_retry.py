#!/usr/bin/env python3
"""Client connection and retry logic for cliphub.

This module provides connection handling with automatic retry using
tenacity for exponential backoff. Used by the client module for
establishing and maintaining the connection to the relay.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_never,
    wait_exponential,
)

from cliphub.client_constants import INITIAL_WAIT, MAX_WAIT, WAIT_MULTIPLIER
from cliphub.protocol import ConnectionClosedError, FramingError
from cliphub.sync import ClientState, ConnectionStatus, run_sync_loop

logger = logging.getLogger(__name__)


async def connect_to_relay(
    host: str,
    port: int,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a TCP connection to the relay.

    Args:
        host: Relay host name or address.
        port: Relay TCP port.

    Returns:
        Tuple of (StreamReader, StreamWriter) for the connection.

    Raises:
        ConnectionError: If the connection cannot be established.
    """
    try:
        return await asyncio.open_connection(host, port)
    except OSError as e:
        raise ConnectionError(f"Failed to connect to {host}:{port}: {e}") from e


@retry(
    wait=wait_exponential(
        multiplier=WAIT_MULTIPLIER,
        min=INITIAL_WAIT,
        max=MAX_WAIT,
    ),
    retry=retry_if_exception_type((ConnectionError, OSError, FramingError)),
    stop=stop_never,
    before_sleep=before_sleep_log(logger, logging.DEBUG),
)
async def run_client_connection(
    host: str,
    port: int,
    state: ClientState,
) -> None:
    """Connect to the relay with retry and run the sync loop.

    Every failure (refused connection, dropped connection, framing
    violation from the relay) leaves the state DISCONNECTED and is retried
    after an exponential backoff capped at MAX_WAIT.

    Args:
        host: Relay host name or address.
        port: Relay TCP port.
        state: The client synchronization state.

    Note:
        This function never returns normally - it either runs until
        cancelled or raises an exception that doesn't trigger retry.
    """
    state.set_status(ConnectionStatus.CONNECTING)
    logger.debug("Connecting to relay at %s:%d", host, port)
    try:
        reader, writer = await connect_to_relay(host, port)
    except ConnectionError:
        state.set_status(ConnectionStatus.DISCONNECTED)
        logger.warning("Connection to %s:%d failed, will retry", host, port)
        raise

    state.set_status(ConnectionStatus.CONNECTED)
    logger.info("Connected to relay at %s:%d", host, port)
    try:
        await run_sync_loop(state, reader, writer)
    except ConnectionClosedError:
        logger.warning("Relay closed the connection, will retry")
        raise
    except FramingError as e:
        logger.error("Framing error from relay: %s, reconnecting", e)
        raise
    except (ConnectionError, OSError) as e:
        logger.warning("Connection lost: %s, will retry", e)
        raise
    finally:
        state.set_status(ConnectionStatus.DISCONNECTED)
        writer.close()
        with suppress(OSError):
            await writer.wait_closed()
