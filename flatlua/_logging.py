"""Logging configuration for flatlua.

The library logs through the ``flatlua`` logger, which carries a NullHandler
so nothing is printed unless the application (or the CLI's ``--verbose`` flag)
configures it.

Example:
    import logging
    from flatlua import configure_logging

    configure_logging(level=logging.DEBUG)
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("flatlua")
logger.addHandler(logging.NullHandler())


def configure_logging(
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """Configure the ``flatlua`` logger.

    Args:
        level: Logging level (default: INFO)
        handler: Custom handler (default: RichHandler writing to stderr)
    """
    flatlua_logger = logging.getLogger("flatlua")
    flatlua_logger.setLevel(level)

    for h in flatlua_logger.handlers[:]:
        if not isinstance(h, logging.NullHandler):
            flatlua_logger.removeHandler(h)

    if handler is None:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))

    handler.setLevel(level)
    flatlua_logger.addHandler(handler)
