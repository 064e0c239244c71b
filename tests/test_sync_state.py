#!/usr/bin/env python3
"""Tests for ClientState bookkeeping."""
import logging

import pytest

from cliphub.client_constants import OUTGOING_QUEUE_SIZE
from cliphub.snapshot import ClipboardSnapshot
from cliphub.sync_state import ClientState, ConnectionStatus


def test_client_state_starts_disconnected(client_state: ClientState) -> None:
    """Test a new state is DISCONNECTED with nothing applied."""
    assert client_state.status is ConnectionStatus.DISCONNECTED
    assert client_state.last_applied == {}
    assert client_state.outgoing.empty()
    assert client_state.origin_id == "local-origin"


def test_set_status_logs_transition(
    client_state: ClientState, caplog: pytest.LogCaptureFixture
) -> None:
    """Test status transitions are recorded and logged at DEBUG."""
    with caplog.at_level(logging.DEBUG):
        client_state.set_status(ConnectionStatus.CONNECTING)
    assert client_state.status is ConnectionStatus.CONNECTING
    assert "disconnected -> connecting" in caplog.text


def test_enqueue_local_drops_oldest_when_full(
    client_state: ClientState, caplog: pytest.LogCaptureFixture
) -> None:
    """Test the outgoing buffer keeps the newest snapshots."""
    with caplog.at_level(logging.WARNING):
        for sequence in range(1, OUTGOING_QUEUE_SIZE + 2):
            client_state.enqueue_local(ClipboardSnapshot(b"x", sequence, "local-origin"))

    assert client_state.outgoing.qsize() == OUTGOING_QUEUE_SIZE
    assert client_state.outgoing.get_nowait().sequence == 2
    assert "dropped local change #1" in caplog.text


def test_is_newer_per_origin(client_state: ClientState) -> None:
    """Test is_newer compares against the last applied sequence per origin."""
    snapshot = ClipboardSnapshot(b"x", 3, "peer")
    assert client_state.is_newer(snapshot) is True
    client_state.record_applied(snapshot)
    assert client_state.is_newer(snapshot) is False
    assert client_state.is_newer(ClipboardSnapshot(b"x", 2, "peer")) is False
    assert client_state.is_newer(ClipboardSnapshot(b"x", 4, "peer")) is True
    assert client_state.is_newer(ClipboardSnapshot(b"x", 1, "other")) is True
