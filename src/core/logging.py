"""
logging.py - Logger factory
"""

import logging
from rich.logging import RichHandler


def setup_logger(name: str = "print_shop", level: int = logging.INFO) -> logging.Logger:
    """Return a logger that renders through rich"""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    return logger
