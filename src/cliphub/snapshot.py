#!/usr/bin/env python3
"""Clipboard snapshot value type.

A snapshot is one clipboard value tagged with the origin that produced it
and a per-origin sequence number. The pair (origin_id, sequence) identifies
a snapshot for deduplication and ordering.
"""

from __future__ import annotations

import secrets
import socket
from dataclasses import dataclass

# Leaves room for the "-" and nonce suffix within the 255-byte origin limit.
_MAX_HOSTNAME_BYTES: int = 200


@dataclass(frozen=True)
class ClipboardSnapshot:
    """One clipboard value as seen by a single origin.

    Attributes:
        payload: Raw clipboard content bytes.
        sequence: Monotonic per-origin counter, starting at 1.
        origin_id: Identifier of the client process that produced it.
    """

    payload: bytes
    sequence: int
    origin_id: str

    @property
    def key(self) -> tuple[str, int]:
        """Return the (origin_id, sequence) identity of this snapshot."""
        return (self.origin_id, self.sequence)


def new_origin_id() -> str:
    """Generate an origin identifier unique to this process.

    Combines the host name with a random nonce so that two clients on the
    same machine, or a restarted client, never share an origin.

    Returns:
        String of the form "<hostname>-<8 hex chars>".
    """
    hostname = socket.gethostname() or "host"
    # Truncate on UTF-8 bytes; the origin length is a single byte on the wire
    hostname = hostname.encode("utf-8")[:_MAX_HOSTNAME_BYTES].decode("utf-8", errors="ignore")
    return f"{hostname or 'host'}-{secrets.token_hex(4)}"
