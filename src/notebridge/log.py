# SPDX-License-Identifier: MIT

import logging
import os
from typing import Optional

from rich.logging import RichHandler

LOG_LEVEL_ENV = "NOTEBRIDGE_LOG_LEVEL"

_handler_attached = False
_configured_level: Optional[str] = None


def set_log_level(level_name: Optional[str]) -> None:
    """Set the level used by every notebridge logger (env variable wins)."""
    global _configured_level
    _configured_level = level_name
    logging.getLogger("notebridge").setLevel(_resolve_level())


def _resolve_level() -> int:
    level_name = os.getenv(LOG_LEVEL_ENV) or _configured_level or "INFO"
    return getattr(logging, level_name.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, attaching a single rich handler on first use."""
    global _handler_attached

    if not _handler_attached:
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        package_logger = logging.getLogger("notebridge")
        package_logger.addHandler(handler)
        package_logger.setLevel(_resolve_level())
        _handler_attached = True

    return logging.getLogger(name)
