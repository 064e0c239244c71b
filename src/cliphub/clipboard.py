"""Clipboard access backends.

The sync engine only needs two operations on the local clipboard: read the
current content and replace it. This module defines that capability as the
ClipboardAccess protocol and provides two implementations:

- SystemClipboard: the system clipboard, images via Pillow and text via
  pyperclip
- MemoryClipboard: an in-process clipboard, used for tests and headless
  peers

Payloads stay opaque bytes. Images travel as PNG and text as UTF-8; the PNG
signature starts with byte 0x89, which never begins valid UTF-8, so the
kind of a payload is always recoverable from its first bytes.

A notification-driven backend can be added later as another implementation
of the same protocol; the Watcher does not care how content is obtained.
"""

from __future__ import annotations

import hashlib
import io
import logging
import os
import shutil
import subprocess
import sys
import tempfile
from typing import Protocol

import pyperclip
from PIL import Image, ImageGrab

logger = logging.getLogger(__name__)

PNG_SIGNATURE: bytes = b"\x89PNG\r\n\x1a\n"

# Seconds to wait for the platform tool that places an image on the clipboard.
IMAGE_WRITE_TIMEOUT: float = 5.0


class ClipboardAccessError(Exception):
    """Raised when the local clipboard cannot be read or written."""

    pass


class ClipboardAccess(Protocol):
    """Get/set capability over a clipboard."""

    def get(self) -> bytes:
        """Return the current clipboard content."""
        ...

    def set(self, data: bytes) -> None:
        """Replace the clipboard content with data."""
        ...


def content_kind(data: bytes) -> str:
    """Return "image" for PNG payloads and "text" for everything else."""
    return "image" if data.startswith(PNG_SIGNATURE) else "text"


def _image_fingerprint(image: Image.Image) -> str:
    rgba = image.convert("RGBA")
    digest = hashlib.sha256(rgba.tobytes())
    digest.update(repr(rgba.size).encode("ascii"))
    return digest.hexdigest()


def _encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _image_write_command() -> list[str]:
    """Return the command that reads PNG bytes on stdin into the clipboard.

    Raises:
        ClipboardAccessError: If this platform has no supported tool.
    """
    if sys.platform.startswith("linux") or "bsd" in sys.platform:
        if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-copy"):
            return ["wl-copy", "--type", "image/png"]
        if shutil.which("xclip"):
            return ["xclip", "-selection", "clipboard", "-t", "image/png", "-i"]
        raise ClipboardAccessError("Writing images needs wl-copy or xclip")
    raise ClipboardAccessError(f"Writing images is not supported on {sys.platform}")


class SystemClipboard:
    """System clipboard backed by Pillow (images) and pyperclip (text).

    Reading tries ImageGrab first and falls back to text. An image grabbed
    back after we wrote it is reported with exactly the PNG bytes we were
    given, since re-encoding a round-tripped image may not be byte-identical
    and would otherwise look like a new local change.
    """

    def __init__(self) -> None:
        self._written_image: tuple[str, bytes] | None = None

    def get(self) -> bytes:
        """Read the clipboard as PNG bytes or UTF-8 text bytes.

        Raises:
            ClipboardAccessError: If no clipboard mechanism is available or
                the read fails.
        """
        image = self._grab_image()
        if image is not None:
            if self._written_image is not None:
                fingerprint, png = self._written_image
                if _image_fingerprint(image) == fingerprint:
                    return png
            return _encode_png(image)
        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException as e:
            raise ClipboardAccessError(f"Failed to read clipboard: {e}") from e
        return (text or "").encode("utf-8")

    def set(self, data: bytes) -> None:
        """Write PNG bytes as an image, anything else as UTF-8 text.

        Raises:
            ClipboardAccessError: If data is neither, or the write fails.
        """
        if content_kind(data) == "image":
            self._set_image(data)
            return
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ClipboardAccessError(f"Content is not UTF-8 text: {e}") from e
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise ClipboardAccessError(f"Failed to write clipboard: {e}") from e

    def _grab_image(self) -> Image.Image | None:
        try:
            grabbed = ImageGrab.grabclipboard()
        except (OSError, NotImplementedError) as e:
            # No image tool, or the clipboard holds no image
            logger.debug("Image clipboard read unavailable: %s", e)
            return None
        # Windows returns a list of file names for copied files
        return grabbed if isinstance(grabbed, Image.Image) else None

    def _set_image(self, png: bytes) -> None:
        try:
            with Image.open(io.BytesIO(png)) as image:
                fingerprint = _image_fingerprint(image)
        except OSError as e:
            raise ClipboardAccessError(f"Content is not a valid PNG image: {e}") from e

        if sys.platform == "darwin":
            self._set_image_macos(png)
        else:
            command = _image_write_command()
            try:
                subprocess.run(
                    command,
                    input=png,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    close_fds=True,
                    check=True,
                    timeout=IMAGE_WRITE_TIMEOUT,
                )
            except (OSError, subprocess.SubprocessError) as e:
                raise ClipboardAccessError(f"Failed to write image with {command[0]}: {e}") from e
        self._written_image = (fingerprint, png)

    def _set_image_macos(self, png: bytes) -> None:
        with tempfile.NamedTemporaryFile(suffix=".png") as handle:
            handle.write(png)
            handle.flush()
            script = f'set the clipboard to (read (POSIX file "{handle.name}") as «class PNGf»)'
            try:
                subprocess.run(
                    ["osascript", "-e", script],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    check=True,
                    timeout=IMAGE_WRITE_TIMEOUT,
                )
            except (OSError, subprocess.SubprocessError) as e:
                raise ClipboardAccessError(f"Failed to write image with osascript: {e}") from e


class MemoryClipboard:
    """Clipboard held in process memory.

    Attributes:
        content: Current clipboard bytes.
        writes: Every value passed to set(), in order.
    """

    def __init__(self, content: bytes = b"") -> None:
        self.content = content
        self.writes: list[bytes] = []

    def get(self) -> bytes:
        return self.content

    def set(self, data: bytes) -> None:
        self.writes.append(data)
        self.content = data
