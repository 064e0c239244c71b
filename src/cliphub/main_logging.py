"""Logging configuration for cliphub CLI."""
import logging

_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(verbosity: int) -> None:
    """Configure logging level based on verbosity count.

    Args:
        verbosity: 0 for WARNING, 1 for INFO, 2 or more for DEBUG.

    Errors are always printed to stderr regardless of verbosity.
    """
    level = _LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)]
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
