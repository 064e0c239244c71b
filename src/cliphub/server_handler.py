#!/usr/bin/env python3
"""Relay peer connection handler.

This module provides the handler for peer connections to the relay. Each
accepted connection is registered as a Peer and serviced by two tasks: a
read loop that validates incoming frames and broadcasts them, and a write
loop that drains the peer's outbound queue. When either loop ends the peer
is unregistered first and its connection closed after, so no broadcast can
target a closed connection.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING

from cliphub.protocol import (
    ConnectionClosedError,
    FramingError,
    decode_snapshot,
    encode_frame,
    read_frame,
)
from cliphub.relay import Peer, make_peer_id

if TYPE_CHECKING:
    from cliphub.relay import Relay

logger = logging.getLogger(__name__)


async def handle_peer(
    relay: Relay,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Service one peer connection until it closes.

    Errors are contained here: a misbehaving or vanished peer is dropped
    without affecting any other peer.

    Args:
        relay: The relay registry to join.
        reader: The asyncio StreamReader for the peer connection.
        writer: The asyncio StreamWriter for the peer connection.
    """
    relay.track(asyncio.current_task())
    peer = Peer(id=make_peer_id(writer.get_extra_info("peername")), writer=writer)
    await relay.register(peer)

    tasks = {
        asyncio.create_task(_read_loop(relay, peer, reader)),
        asyncio.create_task(_write_loop(peer)),
    }
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    except ConnectionClosedError:
        logger.debug("Peer %s closed the connection", peer.id)
    except FramingError as e:
        logger.error("Framing error from %s: %s", peer.id, e)
    except (ConnectionError, OSError) as e:
        logger.warning("Connection error from %s: %s", peer.id, e)
    finally:
        await relay.unregister(peer)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        writer.close()
        with suppress(OSError):
            await writer.wait_closed()


async def _read_loop(relay: Relay, peer: Peer, reader: asyncio.StreamReader) -> None:
    while True:
        body = await read_frame(reader)
        snapshot = decode_snapshot(body)
        logger.debug(
            "Received %s#%d (%d bytes) from %s",
            snapshot.origin_id, snapshot.sequence, len(snapshot.payload), peer.id,
        )
        await relay.broadcast(peer, encode_frame(body))


async def _write_loop(peer: Peer) -> None:
    while True:
        frame = await peer.outbound.get()
        peer.writer.write(frame)
        await peer.writer.drain()
