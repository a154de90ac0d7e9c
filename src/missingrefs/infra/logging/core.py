from __future__ import annotations

"""
Logging Core Orchestrator.

Idempotent lifecycle management of the root logger. Records are pushed
through a QueueHandler and written by a QueueListener thread, so a long
scan on the calling thread never waits on file I/O.
"""

import atexit
import logging
import os
import queue
from logging.handlers import QueueHandler, QueueListener
from typing import List, Optional

from missingrefs.infra.fs import get_user_data_dir
from missingrefs.infra.logging.config import LoggingConfig, parse_level
from missingrefs.infra.logging.handlers import (
    create_console_handler,
    create_rotating_file_handler,
    is_our_handler,
    tag_handler,
)

_CONFIGURED_FLAG_ATTR: str = "_missingrefs_configured"
_QUEUE_LISTENER_ATTR: str = "_missingrefs_queue_listener"


# ==============================================================================
# PUBLIC API
# ==============================================================================

def get_default_log_path(file_name: str = "missingrefs.log") -> str:
    """Return the persistent log path inside the user data directory."""
    return os.path.join(get_user_data_dir(), "logs", file_name)


def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """
    Configure the root logger once, unless re-configuration is forced.

    Args:
        cfg: Logging settings.
        force: Replace previously installed handlers.

    Returns:
        logging.Logger: The root logger.
    """
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG_ATTR, False) and not force:
        return root

    level_int = parse_level(cfg.level)
    root.setLevel(level_int)
    shutdown_logging(root)

    handlers: List[logging.Handler] = []
    if cfg.console:
        handlers.append(create_console_handler(level_int, logging.Formatter(cfg.console_fmt)))
    if cfg.log_file:
        fh = create_rotating_file_handler(
            cfg.log_file,
            level_int,
            logging.Formatter(cfg.file_fmt, datefmt=cfg.datefmt),
            cfg.max_bytes,
            cfg.backup_count,
        )
        if fh:
            handlers.append(fh)

    if not handlers:
        return root

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(-1)
    listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()

    root.addHandler(tag_handler(QueueHandler(log_queue)))
    setattr(root, _QUEUE_LISTENER_ATTR, listener)
    setattr(root, _CONFIGURED_FLAG_ATTR, True)

    atexit.register(_stop_listener, listener)
    return root


def shutdown_logging(root: Optional[logging.Logger] = None) -> None:
    """Detach this package's handlers and stop the active queue listener, flushing pending records."""
    root = root or logging.getLogger()

    listener = getattr(root, _QUEUE_LISTENER_ATTR, None)
    if listener is not None:
        _stop_listener(listener)
        setattr(root, _QUEUE_LISTENER_ATTR, None)

    for h in list(root.handlers):
        if is_our_handler(h):
            root.removeHandler(h)
            h.close()

    setattr(root, _CONFIGURED_FLAG_ATTR, False)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _stop_listener(listener: QueueListener) -> None:
    # stop() on an already stopped listener fails on its joined thread
    if getattr(listener, "_thread", None) is not None:
        listener.stop()
