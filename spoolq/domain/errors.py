"""
Exception hierarchy for spoolq.

SpoolError
├── CodecError         — payload bytes could not be encoded or decoded
└── EventSourceError   — filesystem watcher could not be started

Plain I/O failures are not wrapped: OSError (and subclasses such as
FileNotFoundError or PermissionError) propagates unchanged to the caller.
"""

from __future__ import annotations

from pathlib import Path


class SpoolError(Exception):
    """Base class for all spoolq exceptions."""


class CodecError(SpoolError):
    """
    Raised when an item cannot be encoded, or a spool file cannot be decoded.

    Attributes
    ----------
    path  : Path | None
        The spool file that failed to decode (None for encode failures).
    cause : Exception
        The original exception raised by the codec.
    """

    def __init__(self, message: str, cause: Exception, path: Path | None = None) -> None:
        self.cause = cause
        self.path = path
        where = f" ({path.name})" if path is not None else ""
        super().__init__(f"{message}{where}: {cause}")


class EventSourceError(SpoolError):
    """Wraps a failure to start a filesystem change listener."""

    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")
