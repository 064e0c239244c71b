"""Bounded queue helper shared by the relay and the client."""

from __future__ import annotations

import asyncio
from typing import TypeVar

T = TypeVar("T")


def put_dropping_oldest(queue: asyncio.Queue[T], item: T) -> T | None:
    """Enqueue item without blocking, evicting the oldest entry if full.

    Only safe when called from the event loop thread that owns the queue,
    which makes the full() check and the put atomic.

    Args:
        queue: A bounded asyncio.Queue.
        item: The item to enqueue.

    Returns:
        The evicted item, or None if nothing was dropped.
    """
    dropped = None
    if queue.full():
        dropped = queue.get_nowait()
    queue.put_nowait(item)
    return dropped
