#!/usr/bin/env python3
"""Clipboard synchronization event handlers.

This module provides handlers for client-side synchronization events:
- handle_local_snapshot: encode a local change and send it to the relay
- handle_incoming_frame: decode a relay frame and absorb it locally
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from cliphub.protocol import decode_snapshot, encode_snapshot_frame

if TYPE_CHECKING:
    from cliphub.snapshot import ClipboardSnapshot
    from cliphub.sync_state import ClientState

logger = logging.getLogger(__name__)


async def handle_local_snapshot(
    state: ClientState,
    writer: asyncio.StreamWriter,
    snapshot: ClipboardSnapshot,
) -> None:
    """Send a local clipboard change to the relay.

    A snapshot that cannot be encoded (oversized content, or an origin id
    that does not fit the wire format) is logged and skipped; the
    connection stays up.

    Args:
        state: The client synchronization state.
        writer: The asyncio StreamWriter for the relay connection.
        snapshot: The local snapshot to send.
    """
    try:
        frame = encode_snapshot_frame(snapshot)
    except ValueError as e:
        # PayloadTooLarge is a ValueError
        logger.warning("Not sending local change #%d: %s", snapshot.sequence, e)
        return

    writer.write(frame)
    await writer.drain()
    logger.debug(
        "Sent %s#%d (%d bytes) to relay",
        state.origin_id, snapshot.sequence, len(snapshot.payload),
    )


async def handle_incoming_frame(state: ClientState, body: bytes) -> bool:
    """Apply a frame received from the relay to the local clipboard.

    Snapshots that are not newer than the last one applied from the same
    origin are discarded, so duplicate or reordered delivery never mutates
    the clipboard.

    Args:
        state: The client synchronization state.
        body: Frame body as returned by read_frame.

    Returns:
        True if the clipboard was updated, False if the snapshot was
        discarded or the clipboard write failed.

    Raises:
        FramingError: If the body is malformed.
    """
    snapshot = decode_snapshot(body)
    if not state.is_newer(snapshot):
        logger.debug(
            "Discarding stale %s#%d (last applied %d)",
            snapshot.origin_id, snapshot.sequence,
            state.last_applied.get(snapshot.origin_id, 0),
        )
        return False

    state.record_applied(snapshot)
    applied = await state.watcher.absorb(snapshot.payload)
    if applied:
        logger.debug(
            "Applied %s#%d (%d bytes) from relay",
            snapshot.origin_id, snapshot.sequence, len(snapshot.payload),
        )
    return applied
