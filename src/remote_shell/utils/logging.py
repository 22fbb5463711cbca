"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGING_CONFIGURED = False

TRANSPORT_LOGGER = "paramiko"


def get_logger(name: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=level,
            format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        )
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)


def bridge_transport_logging(level: int = logging.WARNING) -> logging.Logger:
    """Cap paramiko's own log output at ``level``.

    paramiko logs every negotiation step at DEBUG/INFO; commands run through
    this package only need to see its warnings and errors next to their own
    records.
    """
    transport_logger = logging.getLogger(TRANSPORT_LOGGER)
    transport_logger.setLevel(level)
    transport_logger.propagate = True
    return transport_logger
