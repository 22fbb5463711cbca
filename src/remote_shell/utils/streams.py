"""Byte streams used to wire commands to logs and buffers."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO


def dead_input() -> BinaryIO:
    """Return an input stream that is already exhausted."""
    return io.BytesIO(b"")


class LogStream(io.RawIOBase):
    """Writable byte stream that turns each written line into a log record.

    A trailing partial line is kept until the next newline, ``flush()`` or
    ``close()``.
    """

    def __init__(
        self,
        logger: logging.Logger,
        level: int = logging.INFO,
        encoding: str = "utf-8",
    ) -> None:
        super().__init__()
        self._logger = logger
        self._level = level
        self._encoding = encoding
        self._pending = bytearray()

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("write to closed log stream")
        chunk = bytes(data)
        self._pending.extend(chunk)
        while True:
            newline = self._pending.find(b"\n")
            if newline < 0:
                break
            line = bytes(self._pending[:newline])
            del self._pending[: newline + 1]
            self._emit(line)
        return len(chunk)

    def flush(self) -> None:
        if self._pending:
            line = bytes(self._pending)
            self._pending.clear()
            self._emit(line)
        super().flush()

    def _emit(self, line: bytes) -> None:
        text = line.decode(self._encoding, errors="replace").rstrip("\r")
        self._logger.log(self._level, "%s", text)


class TeeStream(io.RawIOBase):
    """Writable byte stream that duplicates every write into a second stream.

    Bytes go to ``primary`` first and then to ``copy``. Closing the tee closes
    only ``copy``; ``primary`` belongs to whoever handed it in.
    """

    def __init__(self, primary: BinaryIO, copy: BinaryIO) -> None:
        super().__init__()
        self._primary = primary
        self._copy = copy

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:  # type: ignore[override]
        chunk = bytes(data)
        self._primary.write(chunk)
        self._copy.write(chunk)
        return len(chunk)

    def flush(self) -> None:
        self._primary.flush()
        self._copy.flush()
        super().flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            self._copy.close()
