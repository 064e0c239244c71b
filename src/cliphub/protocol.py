#!/usr/bin/env python3
"""
Length-prefixed framing for clipboard snapshots.

Every message on the wire is a frame: a 4-byte big-endian unsigned length
followed by that many body bytes. The body carries one snapshot in a fixed
layout (version 1):

    version: u8 | origin_len: u8 | origin: utf-8 | sequence: u64 | content

Example: origin "a", sequence 1, content b"hi" encodes to
b"\\x00\\x00\\x00\\x0d" + b"\\x01\\x01a" + b"\\x00" * 7 + b"\\x01" + b"hi".

The declared length is checked against MAX_FRAME_SIZE before any body bytes
are read, so a corrupt or hostile peer cannot make us allocate a huge
buffer. There is no resynchronization: after a FramingError the connection
must be closed.
"""
from __future__ import annotations

import asyncio
import struct

from cliphub.snapshot import ClipboardSnapshot

# Current body layout version. Both ends must agree; there is no negotiation.
PROTOCOL_VERSION: int = 1

# Maximum size of clipboard content in bytes (10 MB).
MAX_CONTENT_SIZE: int = 10485760

# Origin length is a single byte on the wire.
MAX_ORIGIN_LENGTH: int = 255

_LENGTH_PREFIX = struct.Struct(">I")
_BODY_HEADER = struct.Struct(">BB")
_SEQUENCE = struct.Struct(">Q")

# Largest body a well-formed peer can produce.
MAX_FRAME_SIZE: int = (
    _BODY_HEADER.size + MAX_ORIGIN_LENGTH + _SEQUENCE.size + MAX_CONTENT_SIZE
)


class FramingError(Exception):
    """
    Exception raised for malformed or oversized frames.

    The connection a FramingError was read from is no longer trusted and
    must be closed by the caller.
    """

    pass


class PayloadTooLarge(ValueError):
    """Raised at encode time when clipboard content exceeds MAX_CONTENT_SIZE."""

    pass


class ConnectionClosedError(ConnectionError):
    """Raised when the remote end closes the stream at a frame boundary."""

    pass


def validate_content_size(data: bytes) -> bool:
    """
    Check if content size is within the allowed limit.

    Args:
        data: Raw clipboard content bytes to validate.

    Returns:
        True if len(data) <= MAX_CONTENT_SIZE, False otherwise.
    """
    return len(data) <= MAX_CONTENT_SIZE


def encode_snapshot(snapshot: ClipboardSnapshot) -> bytes:
    """
    Encode a snapshot into a frame body (without the length prefix).

    Args:
        snapshot: The snapshot to encode.

    Returns:
        Body bytes in the version 1 layout.

    Raises:
        PayloadTooLarge: If the payload exceeds MAX_CONTENT_SIZE.
        ValueError: If the origin is empty or longer than MAX_ORIGIN_LENGTH.
    """
    if not validate_content_size(snapshot.payload):
        raise PayloadTooLarge(
            f"Content size {len(snapshot.payload)} exceeds limit {MAX_CONTENT_SIZE}"
        )
    origin = snapshot.origin_id.encode("utf-8")
    if not origin or len(origin) > MAX_ORIGIN_LENGTH:
        raise ValueError(f"Origin id must be 1-{MAX_ORIGIN_LENGTH} bytes, got {len(origin)}")
    return (
        _BODY_HEADER.pack(PROTOCOL_VERSION, len(origin))
        + origin
        + _SEQUENCE.pack(snapshot.sequence)
        + snapshot.payload
    )


def decode_snapshot(body: bytes) -> ClipboardSnapshot:
    """
    Decode a frame body into a snapshot.

    Args:
        body: Frame body as returned by read_frame.

    Returns:
        The decoded ClipboardSnapshot.

    Raises:
        FramingError: If the body does not follow the version 1 layout.
    """
    if len(body) < _BODY_HEADER.size:
        raise FramingError(f"Frame body too short for header: {len(body)} bytes")
    version, origin_len = _BODY_HEADER.unpack_from(body)
    if version != PROTOCOL_VERSION:
        raise FramingError(f"Unsupported protocol version {version}")
    if origin_len == 0:
        raise FramingError("Empty origin id")
    origin_end = _BODY_HEADER.size + origin_len
    if len(body) < origin_end + _SEQUENCE.size:
        raise FramingError("Frame body truncated before sequence number")
    try:
        origin_id = body[_BODY_HEADER.size:origin_end].decode("utf-8")
    except UnicodeDecodeError as e:
        raise FramingError(f"Origin id is not valid UTF-8: {e}") from e
    (sequence,) = _SEQUENCE.unpack_from(body, origin_end)
    content = bytes(body[origin_end + _SEQUENCE.size:])
    if not validate_content_size(content):
        raise FramingError(f"Content size {len(content)} exceeds limit {MAX_CONTENT_SIZE}")
    return ClipboardSnapshot(payload=content, sequence=sequence, origin_id=origin_id)


def encode_frame(body: bytes) -> bytes:
    """
    Prefix a body with its 4-byte big-endian length.

    Args:
        body: Frame body bytes.

    Returns:
        Complete frame ready to write to a stream.
    """
    return _LENGTH_PREFIX.pack(len(body)) + body


def encode_snapshot_frame(snapshot: ClipboardSnapshot) -> bytes:
    """Encode a snapshot as a complete frame (length prefix and body)."""
    return encode_frame(encode_snapshot(snapshot))


async def read_frame(reader: asyncio.StreamReader) -> bytes:
    """
    Read one frame from an async stream and return its body.

    Args:
        reader: asyncio StreamReader to read from.

    Returns:
        The frame body bytes, not yet decoded.

    Raises:
        ConnectionClosedError: If the stream ends cleanly before a new frame.
        FramingError: On oversize length or stream end inside a frame.
    """
    try:
        prefix = await reader.readexactly(_LENGTH_PREFIX.size)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            raise ConnectionClosedError("Connection closed by remote") from e
        raise FramingError(
            f"Connection closed after {len(e.partial)} of {_LENGTH_PREFIX.size} length bytes"
        ) from e
    (length,) = _LENGTH_PREFIX.unpack(prefix)
    if length > MAX_FRAME_SIZE:
        raise FramingError(f"Frame size {length} exceeds limit {MAX_FRAME_SIZE}")
    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise FramingError(
            f"Connection closed after {len(e.partial)} of {length} frame bytes"
        ) from e
