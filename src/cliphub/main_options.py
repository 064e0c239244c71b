"""Click parameter helpers for relay addresses."""
import click

# Default relay TCP port for both server and client.
DEFAULT_PORT: int = 5563


def parse_address(value: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split "host[:port]" into host and port.

    IPv6 literals must be bracketed when a port is given: "[::1]:5563".

    Args:
        value: Address text from the command line.
        default_port: Port used when value has none.

    Returns:
        Tuple of (host, port).

    Raises:
        ValueError: If the host is empty or the port is not 1-65535.
    """
    value = value.strip()
    if value.startswith("["):
        host, sep, rest = value[1:].partition("]")
        if not sep:
            raise ValueError(f"Unterminated IPv6 address: {value}")
        if rest and not rest.startswith(":"):
            raise ValueError(f"Unexpected text after IPv6 address: {rest}")
        port_text = rest[1:] if rest else ""
    elif value.count(":") == 1:
        host, _, port_text = value.partition(":")
    else:
        host, port_text = value, ""

    if not host:
        raise ValueError(f"Missing host in address: {value!r}")
    if not port_text:
        return host, default_port
    if not port_text.isdigit():
        raise ValueError(f"Invalid port: {port_text!r}")
    port = int(port_text)
    if not 1 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    return host, port


class RelayAddress(click.ParamType):
    """Click parameter type accepting "host[:port]"."""

    name = "host[:port]"

    def convert(self, value, param, ctx):
        """Convert command-line text to a (host, port) tuple."""
        if isinstance(value, tuple):
            return value
        try:
            return parse_address(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)
