"""Logging and stream helpers."""

from .logging import bridge_transport_logging, get_logger
from .streams import LogStream, TeeStream, dead_input

__all__ = [
    "bridge_transport_logging",
    "get_logger",
    "LogStream",
    "TeeStream",
    "dead_input",
]
