"""Process-wide Rich logging setup shared by the CLI and bulk runs."""
from __future__ import annotations

import logging
from typing import Optional

from rich.logging import RichHandler

_LOGGER_CONFIGURED = False

# Transport libraries log every request at INFO; keep them out of operator output.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(debug: bool = False, *, level: Optional[int] = None) -> None:
    """Install a RichHandler on the root logger once per process."""
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return

    resolved_level = level or (logging.DEBUG if debug else logging.INFO)
    logging.basicConfig(
        level=resolved_level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=debug, show_path=debug)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)
    _LOGGER_CONFIGURED = True
