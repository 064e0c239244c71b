#!/usr/bin/env python3
"""End-to-end synchronization tests over loopback TCP.

A real relay and real clients run in one event loop; each client uses an
in-memory clipboard so the tests never touch the system clipboard.
"""

import asyncio
from collections.abc import Callable

import pytest

from cliphub.client import build_client_state, run_client_session
from cliphub.clipboard import MemoryClipboard
from cliphub.server import bound_port, start_relay, stop_relay
from cliphub.sync_state import ClientState, ConnectionStatus

pytestmark = pytest.mark.integration

POLL_INTERVAL = 0.05


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Wait until predicate() is true or fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met within timeout")
        await asyncio.sleep(0.01)


class Cluster:
    """A relay plus any number of in-memory clients."""

    def __init__(self) -> None:
        self.server = None
        self.relay = None
        self.port = 0
        self.sessions: dict[str, tuple[MemoryClipboard, ClientState, asyncio.Event, asyncio.Task]] = {}

    async def start(self) -> None:
        self.server, self.relay = await start_relay("127.0.0.1", 0)
        self.port = bound_port(self.server)

    async def add_client(self, name: str) -> MemoryClipboard:
        clipboard = MemoryClipboard()
        state = build_client_state(clipboard, POLL_INTERVAL)
        shutdown = asyncio.Event()
        task = asyncio.create_task(run_client_session("127.0.0.1", self.port, state, shutdown))
        self.sessions[name] = (clipboard, state, shutdown, task)
        await wait_until(lambda: state.status is ConnectionStatus.CONNECTED)
        return clipboard

    def state(self, name: str) -> ClientState:
        return self.sessions[name][1]

    async def stop_client(self, name: str) -> None:
        _, _, shutdown, task = self.sessions.pop(name)
        shutdown.set()
        await asyncio.wait_for(task, timeout=2.0)

    async def stop(self) -> None:
        for name in list(self.sessions):
            await self.stop_client(name)
        await stop_relay(self.server, self.relay)


@pytest.fixture
async def cluster():
    """Start a relay on an ephemeral loopback port."""
    cluster = Cluster()
    await cluster.start()
    yield cluster
    await cluster.stop()


@pytest.mark.asyncio
async def test_hello_world_scenario(cluster: Cluster) -> None:
    """Test the two-client hello/world exchange converges both ways."""
    x = await cluster.add_client("x")
    y = await cluster.add_client("y")
    await wait_until(lambda: len(cluster.relay) == 2)

    x.content = b"hello"
    await wait_until(lambda: x.content == y.content == b"hello")

    y.content = b"world"
    await wait_until(lambda: x.content == y.content == b"world")

    # Let many poll cycles pass; "hello" must not come back
    await asyncio.sleep(POLL_INTERVAL * 10)
    assert x.content == y.content == b"world"
    assert b"hello" not in x.writes
    assert y.writes == [b"hello"]
    assert x.writes == [b"world"]


@pytest.mark.asyncio
async def test_image_content_is_forwarded_unchanged(cluster: Cluster) -> None:
    """Test PNG image bytes reach the other peer byte for byte."""
    import io

    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), "orange").save(buffer, format="PNG")
    png = buffer.getvalue()

    x = await cluster.add_client("x")
    y = await cluster.add_client("y")
    await wait_until(lambda: len(cluster.relay) == 2)

    x.content = png
    await wait_until(lambda: y.content == png)
    assert y.writes == [png]


@pytest.mark.asyncio
async def test_no_echo_loop(cluster: Cluster) -> None:
    """Test a single change is emitted once by its origin and never by others."""
    clipboards = [await cluster.add_client(name) for name in ("a", "b", "c")]
    await wait_until(lambda: len(cluster.relay) == 3)

    clipboards[0].content = b"value"
    await wait_until(lambda: all(c.content == b"value" for c in clipboards))
    await asyncio.sleep(POLL_INTERVAL * 20)

    assert cluster.state("a").watcher.state.last_sequence == 1
    assert cluster.state("b").watcher.state.last_sequence == 0
    assert cluster.state("c").watcher.state.last_sequence == 0
    assert clipboards[0].writes == []
    assert clipboards[1].writes == [b"value"]
    assert clipboards[2].writes == [b"value"]


@pytest.mark.asyncio
async def test_convergence_within_bounded_polls(cluster: Cluster) -> None:
    """Test every peer converges within a few poll intervals."""
    clipboards = [await cluster.add_client(name) for name in ("a", "b", "c", "d")]
    await wait_until(lambda: len(cluster.relay) == 4)

    clipboards[2].content = b"converge"
    await wait_until(
        lambda: all(c.content == b"converge" for c in clipboards),
        timeout=POLL_INTERVAL * 2 + 0.5,
    )


@pytest.mark.asyncio
async def test_disconnect_isolation(cluster: Cluster) -> None:
    """Test closing one peer does not interrupt the others."""
    a = await cluster.add_client("a")
    b = await cluster.add_client("b")
    await cluster.add_client("c")
    await wait_until(lambda: len(cluster.relay) == 3)

    await cluster.stop_client("c")
    await wait_until(lambda: len(cluster.relay) == 2)

    a.content = b"after disconnect"
    await wait_until(lambda: b.content == b"after disconnect")


@pytest.mark.asyncio
async def test_client_reconnects_after_relay_restart() -> None:
    """Test a client reconnects with backoff and resumes syncing."""
    server, relay = await start_relay("127.0.0.1", 0)
    port = bound_port(server)

    clipboard = MemoryClipboard()
    state = build_client_state(clipboard, POLL_INTERVAL)
    shutdown = asyncio.Event()
    task = asyncio.create_task(run_client_session("127.0.0.1", port, state, shutdown))
    try:
        await wait_until(lambda: state.status is ConnectionStatus.CONNECTED)
        await stop_relay(server, relay)
        await wait_until(lambda: state.status is not ConnectionStatus.CONNECTED)

        # A change made during the outage is delivered after reconnecting
        clipboard.content = b"while offline"
        await asyncio.sleep(POLL_INTERVAL * 3)

        server, relay = await start_relay("127.0.0.1", port)
        listener_clipboard = MemoryClipboard()
        listener = build_client_state(listener_clipboard, POLL_INTERVAL)
        listener_shutdown = asyncio.Event()
        listener_task = asyncio.create_task(
            run_client_session("127.0.0.1", port, listener, listener_shutdown)
        )
        await wait_until(lambda: listener.status is ConnectionStatus.CONNECTED)
        await wait_until(lambda: state.status is ConnectionStatus.CONNECTED, timeout=6.0)
        await wait_until(lambda: listener_clipboard.content == b"while offline")

        listener_shutdown.set()
        await listener_task
    finally:
        shutdown.set()
        await asyncio.wait_for(task, timeout=2.0)
        await stop_relay(server, relay)
