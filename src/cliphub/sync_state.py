#!/usr/bin/env python3
"""Client synchronization state.

This module provides the ClientState dataclass that groups everything the
client needs across reconnects: the watcher, the buffer of local snapshots
waiting to be sent, the per-origin record of applied snapshots, and the
connection status.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cliphub.client_constants import OUTGOING_QUEUE_SIZE
from cliphub.outbound import put_dropping_oldest

if TYPE_CHECKING:
    from cliphub.snapshot import ClipboardSnapshot
    from cliphub.watcher import ChangeWatcher

logger = logging.getLogger(__name__)


class ConnectionStatus(enum.Enum):
    """Client connection lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _new_outgoing_queue() -> asyncio.Queue[ClipboardSnapshot]:
    return asyncio.Queue(maxsize=OUTGOING_QUEUE_SIZE)


@dataclass
class ClientState:
    """State for one client process.

    Attributes:
        watcher: The local clipboard watcher.
        outgoing: Local snapshots waiting to be sent to the relay.
        last_applied: Highest applied sequence number per origin id.
        status: Current connection status.
    """

    watcher: ChangeWatcher
    outgoing: asyncio.Queue[ClipboardSnapshot] = field(default_factory=_new_outgoing_queue)
    last_applied: dict[str, int] = field(default_factory=dict)
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED

    @property
    def origin_id(self) -> str:
        return self.watcher.origin_id

    def set_status(self, status: ConnectionStatus) -> None:
        """Record a connection status transition."""
        if status is not self.status:
            logger.debug("Connection status %s -> %s", self.status.value, status.value)
        self.status = status

    def enqueue_local(self, snapshot: ClipboardSnapshot) -> None:
        """Buffer a local snapshot for sending, dropping the oldest if full."""
        dropped = put_dropping_oldest(self.outgoing, snapshot)
        if dropped is not None:
            logger.warning("Outgoing buffer full, dropped local change #%d", dropped.sequence)

    def is_newer(self, snapshot: ClipboardSnapshot) -> bool:
        """Return True if snapshot is newer than anything applied from its origin."""
        return snapshot.sequence > self.last_applied.get(snapshot.origin_id, 0)

    def record_applied(self, snapshot: ClipboardSnapshot) -> None:
        self.last_applied[snapshot.origin_id] = snapshot.sequence
