#!/usr/bin/env python3
"""Client-side synchronization coordination.

This module re-exports synchronization components from submodules for
convenient imports. The actual implementations are in:
- sync_state: ClientState dataclass and ConnectionStatus
- sync_handlers: handle_local_snapshot, handle_incoming_frame
- sync_loop: run_sync_loop
"""

from cliphub.sync_handlers import handle_incoming_frame, handle_local_snapshot
from cliphub.sync_loop import run_sync_loop
from cliphub.sync_state import ClientState, ConnectionStatus

__all__ = [
    "ClientState",
    "ConnectionStatus",
    "handle_incoming_frame",
    "handle_local_snapshot",
    "run_sync_loop",
]
