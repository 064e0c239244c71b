#!/usr/bin/env python3
"""Tests for relay address parsing."""
import pytest

from cliphub.main_options import DEFAULT_PORT, parse_address


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("127.0.0.1:5563", ("127.0.0.1", 5563)),
        ("relay.lan:6000", ("relay.lan", 6000)),
        ("relay.lan", ("relay.lan", DEFAULT_PORT)),
        ("[::1]:7000", ("::1", 7000)),
        ("[fe80::1]", ("fe80::1", DEFAULT_PORT)),
        ("::1", ("::1", DEFAULT_PORT)),
        ("  host:1  ", ("host", 1)),
    ],
)
def test_parse_address_valid(text: str, expected: tuple[str, int]) -> None:
    """Test accepted address forms."""
    assert parse_address(text) == expected


@pytest.mark.parametrize(
    ("text", "message"),
    [
        (":5563", "Missing host"),
        ("host:abc", "Invalid port"),
        ("host:0", "out of range"),
        ("host:70000", "out of range"),
        ("[::1", "Unterminated"),
        ("[::1]x", "Unexpected text"),
    ],
)
def test_parse_address_invalid(text: str, message: str) -> None:
    """Test rejected address forms raise ValueError."""
    with pytest.raises(ValueError, match=message):
        parse_address(text)
