"""Root logger setup for the fleetrecon daemon and CLI."""

from __future__ import annotations

import logging

# client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "hishel")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger for long-running sync output.

    Timestamps carry the date since the scheduler runs for days. Request-level
    chatter from the HTTP stack is only shown when ``level`` is DEBUG.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
