#!/usr/bin/env python3
"""
Clipboard change detection and echo suppression.

The watcher is the only authority on "what is the clipboard's current known
value". It polls the clipboard at a fixed interval and emits exactly one
snapshot per genuine local change.

Echo suppression: when content arrives from the relay, absorb() records it
as the last known content *before* writing it to the clipboard. The next
poll then sees no difference and stays silent, so a remote update is never
re-detected as a local change and re-broadcast.

poll() and absorb() are serialized by a lock. Without it a poll that read
the clipboard just before an absorb could compare stale content against the
freshly absorbed value and report it as a change.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cliphub.clipboard import ClipboardAccessError
from cliphub.snapshot import ClipboardSnapshot

if TYPE_CHECKING:
    from cliphub.clipboard import ClipboardAccess

logger = logging.getLogger(__name__)

# Seconds between clipboard polls. Trades propagation latency against the
# cost of spawning the platform clipboard tool on every poll.
DEFAULT_POLL_INTERVAL: float = 0.4


@dataclass
class WatcherState:
    """
    Last observed clipboard value and the sequence of the last emission.

    Attributes:
        last_known_content: Content seen by the last poll or absorb, or None
            before the first poll.
        last_sequence: Sequence number of the most recent emitted snapshot.
    """

    last_known_content: bytes | None = None
    last_sequence: int = 0


class ChangeWatcher:
    """Poll a clipboard and report local changes as snapshots."""

    def __init__(
        self,
        clipboard: ClipboardAccess,
        origin_id: str,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.clipboard = clipboard
        self.origin_id = origin_id
        self.interval = interval
        self.state = WatcherState()
        self._lock = asyncio.Lock()

    async def poll(self) -> ClipboardSnapshot | None:
        """
        Read the clipboard once and return a snapshot if it changed.

        Empty content is remembered but never emitted. Read failures are
        logged and treated as "no change" for this cycle.

        Returns:
            A new ClipboardSnapshot, or None if nothing should be sent.
        """
        async with self._lock:
            try:
                content = await asyncio.to_thread(self.clipboard.get)
            except ClipboardAccessError as e:
                logger.warning("Clipboard read failed, skipping poll: %s", e)
                return None
            if content == self.state.last_known_content:
                return None
            self.state.last_known_content = content
            if not content:
                logger.debug("Clipboard became empty, not emitting")
                return None
            self.state.last_sequence += 1
            snapshot = ClipboardSnapshot(
                payload=content,
                sequence=self.state.last_sequence,
                origin_id=self.origin_id,
            )
        logger.debug("Local clipboard change #%d (%d bytes)", snapshot.sequence, len(content))
        return snapshot

    async def absorb(self, payload: bytes) -> bool:
        """
        Apply remote content to the clipboard without emitting a change.

        CRITICAL: last_known_content is updated before the clipboard write,
        under the same lock poll() holds, so the next poll stays silent.

        If the clipboard already holds payload the write is skipped. If the
        write fails the previous last known content is restored, since the
        clipboard still holds it.

        Args:
            payload: Content received from the relay.

        Returns:
            True if the clipboard now holds payload, False on write failure.
        """
        async with self._lock:
            previous = self.state.last_known_content
            self.state.last_known_content = payload
            try:
                current = await asyncio.to_thread(self.clipboard.get)
            except ClipboardAccessError as e:
                logger.debug("Clipboard read before write failed: %s", e)
                current = None
            if current == payload:
                logger.debug("Clipboard already holds received content")
                return True
            try:
                await asyncio.to_thread(self.clipboard.set, payload)
            except ClipboardAccessError as e:
                self.state.last_known_content = previous
                logger.error("Failed to set clipboard: %s", e)
                return False
        return True

    async def run(self, emit: Callable[[ClipboardSnapshot], None]) -> None:
        """
        Poll forever, passing each new snapshot to emit.

        Args:
            emit: Called synchronously with every emitted snapshot.
        """
        while True:
            snapshot = await self.poll()
            if snapshot is not None:
                emit(snapshot)
            await asyncio.sleep(self.interval)
