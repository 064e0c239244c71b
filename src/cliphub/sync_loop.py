#!/usr/bin/env python3
"""Per-connection client synchronization loop.

This module provides run_sync_loop, which runs the send and receive halves
of one relay connection concurrently until either of them fails.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from cliphub.protocol import read_frame
from cliphub.sync_handlers import handle_incoming_frame, handle_local_snapshot

if TYPE_CHECKING:
    from cliphub.sync_state import ClientState


async def run_sync_loop(
    state: ClientState,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Run the synchronization loop for one relay connection.

    Local snapshots are drained from state.outgoing and written to the
    relay while inbound frames are read and absorbed. The first loop to
    raise ends the connection; the other loop is cancelled.

    Args:
        state: The client synchronization state.
        reader: The asyncio StreamReader for the relay connection.
        writer: The asyncio StreamWriter for the relay connection.

    Raises:
        FramingError: On protocol violation from the relay.
        ConnectionError: On connection loss.
    """
    tasks = {
        asyncio.create_task(_send_loop(state, writer)),
        asyncio.create_task(_receive_loop(state, reader)),
    }
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def _send_loop(state: ClientState, writer: asyncio.StreamWriter) -> None:
    while True:
        snapshot = await state.outgoing.get()
        await handle_local_snapshot(state, writer, snapshot)


async def _receive_loop(state: ClientState, reader: asyncio.StreamReader) -> None:
    while True:
        body = await read_frame(reader)
        await handle_incoming_frame(state, body)
