#!/usr/bin/env python3
"""Constants for client mode retry configuration.

These constants control the exponential backoff behavior for client
reconnection when the connection to the relay is lost or cannot be made.
"""

# Retry parameters for exponential backoff reconnection.
# Shortest delay between connection attempts in seconds.
INITIAL_WAIT: float = 0.5

# Maximum delay between connection attempts in seconds.
MAX_WAIT: float = 5.0

# Delay before attempt n is WAIT_MULTIPLIER * 2 ** (n - 1), clamped to
# [INITIAL_WAIT, MAX_WAIT]: 0.5, 1, 2, 4, 5, 5, ...
WAIT_MULTIPLIER: float = 0.5

# Local snapshots buffered while the relay is unreachable or slow.
# The oldest pending snapshot is dropped when the buffer is full.
OUTGOING_QUEUE_SIZE: int = 16
