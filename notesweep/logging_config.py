"""
Logging configuration for notesweep.

Quiet by default; --verbose or NOTESWEEP_VERBOSE=1 turns on debug output.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Keep library chatter out of command output.

    Args:
        quiet: If True, suppress warnings and HTTP client request logs.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    for name in ("notesweep", "httpx"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(home):
    """Configure a persistent operations log in the notesweep home.

    Writes to {home}/notesweep-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose, so every
    delete and wipe leaves a record of its counts.
    Returns the handler so it can be removed on close().
    """
    log_path = Path(home) / "notesweep-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    sweep_logger = logging.getLogger("notesweep")
    sweep_logger.addHandler(handler)
    # Ensure INFO gets through even in quiet mode
    if sweep_logger.level == logging.NOTSET or sweep_logger.level > logging.INFO:
        sweep_logger.setLevel(logging.INFO)

    return handler
