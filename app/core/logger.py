import logging
from typing import Optional

from app.core.config import get_settings

_configured = False


def _configure_root_logger() -> None:
    global _configured
    if _configured:
        return
    level_name = get_settings().LOG_LEVEL.upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module logger with consistent formatting.

    The root logger is configured on first use, at the level named by
    ``LOG_LEVEL``.
    """
    _configure_root_logger()
    return logging.getLogger(name or "scribe")
