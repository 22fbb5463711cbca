"""Quoting of arguments for remote shell command lines."""

from __future__ import annotations


def escape(arg: str) -> str:
    """Wrap ``arg`` in single quotes so a POSIX shell reads it as one word.

    Embedded single quotes close the quoted run, add an escaped quote and
    reopen it, so ``it's`` becomes ``'it'\\''s'``.
    """
    return "'" + arg.replace("'", "'\\''") + "'"
