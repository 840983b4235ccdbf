"""Logging setup for crema.

Library modules log through ``LOGGER``; only the CLI attaches handlers.
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOGGER = logging.getLogger("crema")


def setup_logging(level: str | None = None) -> None:
    """Route log records through Rich on stderr.

    *level* defaults to the ``LOG_LEVEL`` environment variable, then INFO.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=False,
            )
        ],
    )
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
