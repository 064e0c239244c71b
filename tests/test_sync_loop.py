#!/usr/bin/env python3
"""Tests for the per-connection client sync loop."""
import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import make_reader
from cliphub.clipboard import MemoryClipboard
from cliphub.protocol import ConnectionClosedError, FramingError, decode_snapshot, encode_snapshot_frame
from cliphub.snapshot import ClipboardSnapshot
from cliphub.sync_loop import run_sync_loop
from cliphub.sync_state import ClientState


@pytest.mark.asyncio
async def test_run_sync_loop_applies_frames_then_raises_on_eof(
    client_state: ClientState, mock_writer: MagicMock, memory_clipboard: MemoryClipboard
) -> None:
    """Test inbound frames are applied and EOF ends the loop."""
    reader = make_reader(encode_snapshot_frame(ClipboardSnapshot(b"remote", 1, "peer")))

    with pytest.raises(ConnectionClosedError):
        await run_sync_loop(client_state, reader, mock_writer)

    assert memory_clipboard.content == b"remote"


@pytest.mark.asyncio
async def test_run_sync_loop_sends_queued_local_snapshots(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    """Test snapshots buffered before connecting are sent on the connection."""
    snapshot = ClipboardSnapshot(b"local", 1, "local-origin")
    client_state.enqueue_local(snapshot)
    reader = asyncio.StreamReader()

    task = asyncio.create_task(run_sync_loop(client_state, reader, mock_writer))
    await asyncio.sleep(0.05)
    reader.feed_eof()
    with pytest.raises(ConnectionClosedError):
        await task

    frame = mock_writer.write.call_args.args[0]
    assert decode_snapshot(frame[4:]) == snapshot


@pytest.mark.asyncio
async def test_run_sync_loop_raises_framing_error(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    """Test a malformed frame from the relay ends the loop with FramingError."""
    reader = make_reader(b"\x00\x00\x00\x02\x09\x09")
    with pytest.raises(FramingError):
        await run_sync_loop(client_state, reader, mock_writer)


@pytest.mark.asyncio
async def test_run_sync_loop_write_failure_ends_loop(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    """Test a send failure ends the loop even while the reader is idle."""
    mock_writer.drain.side_effect = ConnectionResetError("reset")
    client_state.enqueue_local(ClipboardSnapshot(b"local", 1, "local-origin"))

    with pytest.raises(ConnectionResetError):
        await run_sync_loop(client_state, asyncio.StreamReader(), mock_writer)
