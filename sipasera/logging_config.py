"""
Central logging setup for the sipasera application.

Console output always, plus an optional log file. Every ledger module logs
through ``get_logger(__name__)`` so the format stays the same everywhere.
"""

import logging
import sys


def setup_logging(level="INFO", log_file=None):
    """
    Configures the root logger once per process.

    Args:
        level (str): Level name, e.g. ``"INFO"`` or ``"DEBUG"``.
        log_file (str | None): Path of an additional log file.
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=log_format,
        handlers=handlers,
    )

    # SQL echo only on explicit request
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def get_logger(name):
    """Returns the logger for a module, normally called with ``__name__``."""
    return logging.getLogger(name)
