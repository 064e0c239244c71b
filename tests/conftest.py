#!/usr/bin/env python3
"""Pytest fixtures for cliphub tests.

Provides in-memory clipboards, watchers, client state and stream helpers
so that no test touches the real system clipboard.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cliphub.clipboard import MemoryClipboard
from cliphub.sync_state import ClientState
from cliphub.watcher import ChangeWatcher


@pytest.fixture
def memory_clipboard() -> MemoryClipboard:
    """Create an empty in-memory clipboard."""
    return MemoryClipboard()


@pytest.fixture
def watcher(memory_clipboard: MemoryClipboard) -> ChangeWatcher:
    """Create a watcher over the in-memory clipboard."""
    return ChangeWatcher(memory_clipboard, "local-origin", interval=0.01)


@pytest.fixture
def client_state(watcher: ChangeWatcher) -> ClientState:
    """Create a fresh ClientState around the watcher."""
    return ClientState(watcher=watcher)


@pytest.fixture
def mock_writer() -> MagicMock:
    """Create a mock StreamWriter recording written bytes."""
    writer = MagicMock()
    writer.write = MagicMock()
    writer.drain = AsyncMock()
    writer.close = MagicMock()
    writer.wait_closed = AsyncMock()
    writer.get_extra_info = MagicMock(return_value=("10.0.0.2", 40000))
    return writer


def make_reader(data: bytes) -> asyncio.StreamReader:
    """Create a StreamReader with the given data followed by EOF."""
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader
