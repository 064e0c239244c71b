#!/usr/bin/env python3
"""
Peer registry and fan-out for the relay.

The relay is a pure router: it keeps no clipboard state, only the set of
currently connected peers. A frame received from peer P is queued on every
other peer's outbound queue and never on P's own, which is the relay half
of echo suppression (the client half is ChangeWatcher.absorb).

Registry mutation (register/unregister) and broadcast run under one lock,
so a broadcast never sees the registry mid-change and never targets a peer
that has already been unregistered.
"""
from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, field

from cliphub.outbound import put_dropping_oldest

logger = logging.getLogger(__name__)

# Frames buffered per peer before the oldest is dropped. Bounds memory use
# for a slow or stalled peer without ever blocking the broadcaster.
OUTBOUND_QUEUE_SIZE: int = 32


def _new_outbound_queue() -> asyncio.Queue[bytes]:
    return asyncio.Queue(maxsize=OUTBOUND_QUEUE_SIZE)


def make_peer_id(peername: object) -> str:
    """
    Build a unique peer id from a socket peer address.

    Args:
        peername: Value of writer.get_extra_info("peername"), usually a
            (host, port, ...) tuple, or None.

    Returns:
        "<host>:<port>/<nonce>", or "unknown/<nonce>".
    """
    nonce = secrets.token_hex(4)
    if isinstance(peername, tuple) and len(peername) >= 2:
        return f"{peername[0]}:{peername[1]}/{nonce}"
    return f"unknown/{nonce}"


@dataclass(eq=False)
class Peer:
    """
    One connected peer as seen by the relay.

    Attributes:
        id: Unique id for this connection.
        writer: Stream writer for the peer connection.
        outbound: Frames waiting to be written to this peer.
        dropped: Number of frames dropped because outbound was full.
    """

    id: str
    writer: asyncio.StreamWriter
    outbound: asyncio.Queue[bytes] = field(default_factory=_new_outbound_queue)
    dropped: int = 0


class Relay:
    """Registry of connected peers with broadcast-to-others."""

    def __init__(self) -> None:
        self._peers: dict[str, Peer] = {}
        self._lock = asyncio.Lock()
        self._handlers: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._peers)

    @property
    def peer_ids(self) -> list[str]:
        return list(self._peers)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def track(self, task: asyncio.Task) -> None:
        """Remember a running peer handler so wait_closed() can wait for it."""
        self._handlers.add(task)
        task.add_done_callback(self._handlers.discard)

    async def register(self, peer: Peer) -> None:
        """Add a peer whose connection has just been accepted."""
        async with self._lock:
            self._peers[peer.id] = peer
        logger.info("Peer %s connected (%d connected)", peer.id, len(self._peers))

    async def unregister(self, peer: Peer) -> bool:
        """
        Remove a peer before its connection is torn down.

        Returns:
            True if the peer was registered, False if it was already gone.
        """
        async with self._lock:
            removed = self._peers.pop(peer.id, None) is not None
        if removed:
            logger.info("Peer %s disconnected (%d connected)", peer.id, len(self._peers))
        return removed

    async def broadcast(self, origin: Peer, frame: bytes) -> int:
        """
        Queue a frame for every registered peer except origin.

        A peer whose outbound queue is full loses its oldest pending frame;
        other peers are unaffected.

        Args:
            origin: The peer the frame was received from.
            frame: The complete frame (length prefix and body), forwarded
                unchanged.

        Returns:
            Number of peers the frame was queued for.
        """
        sent = 0
        async with self._lock:
            for peer_id, peer in self._peers.items():
                if peer_id == origin.id:
                    continue
                if put_dropping_oldest(peer.outbound, frame) is not None:
                    peer.dropped += 1
                    logger.warning(
                        "Peer %s is not keeping up, dropped oldest frame (%d dropped)",
                        peer.id, peer.dropped,
                    )
                sent += 1
        logger.debug("Forwarded %d bytes from %s to %d peers", len(frame), origin.id, sent)
        return sent

    async def close_all(self) -> None:
        """Close every registered peer connection.

        Each peer's handler sees end of stream and unregisters itself.
        """
        async with self._lock:
            peers = list(self._peers.values())
        for peer in peers:
            peer.writer.close()

    async def wait_closed(self) -> None:
        """Wait until every tracked peer handler has finished.

        asyncio.Server.wait_closed() only waits for open connections on
        Python 3.12 and later, so the relay waits for its handlers itself.
        """
        if self._handlers:
            await asyncio.wait(set(self._handlers))
