"""
EventSource — change notifications that drive QueueStream.

QueueStream depends only on this Protocol. Two adapters ship with spoolq:

  - NullEventSource     — watches nothing; the stream polls the spool on
                          every call (plain polling)
  - WatchdogEventSource — debounced filesystem notifications; the stream
                          only scans the spool after a change was observed

drain()
  - Non-blocking. Returns the number of notifications received since the
    previous drain() that are ready to be acted upon (0 if none).

close()
  - Releases the listener. Afterwards `closed` is True and the stream
    reports end-of-sequence.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EventSource(Protocol):
    @property
    def watches(self) -> bool:
        """True if drain() reflects real change notifications."""
        ...

    @property
    def closed(self) -> bool: ...

    def drain(self) -> int: ...

    def close(self) -> None: ...
