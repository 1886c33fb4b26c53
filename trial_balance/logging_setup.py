"""
Logging bootstrap for the Trial Balance engine.

Modules log through ``get_logger("<module>")`` under the ``trial_balance``
namespace.  ``TrialBalanceExtractor`` calls ``configure_logging`` when it
is constructed; handlers are attached only on the first call, later calls
just move the level.  The log doubles as the extraction audit trail:
chosen header row, resolved columns, fallbacks taken.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

NAMESPACE = "trial_balance"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_handlers: list[logging.Handler] = []


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the namespace logger.

    Parameters
    ----------
    level:
        Minimum severity to emit.
    log_file:
        Extra ``FileHandler`` target; honoured on the first call only.
    """
    root = logging.getLogger(NAMESPACE)
    root.setLevel(level)

    if not _handlers:
        root.propagate = False
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        _handlers.append(console)

        if log_file:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setFormatter(formatter)
            _handlers.append(fh)

        for handler in _handlers:
            root.addHandler(handler)

    for handler in _handlers:
        handler.setLevel(level)
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{NAMESPACE}.{name}")
