"""
Logging helpers for html-formgen.

Library modules only create module-level loggers; applications and the
debugging entry points call configure_logging() to see them.
"""

import logging
from typing import Optional

from html_formgen.protocols import get_form_config

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package root logger.

    Calling it twice does not add a second handler.

    Args:
        level: Logging level for the package logger
        fmt: Optional format string, DEFAULT_FORMAT when omitted

    Returns:
        The configured package logger
    """
    config = get_form_config()
    root = logging.getLogger(config.logger_name)
    root.setLevel(level)

    if not any(getattr(h, "_html_formgen_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        handler._html_formgen_handler = True
        root.addHandler(handler)
        logger.debug(f"Attached stream handler to logger '{config.logger_name}'")

    return root
