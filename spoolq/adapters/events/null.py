"""
NullEventSource — no notifications at all.

A QueueStream built on this source scans the spool on every poll() (plain
polling). Zero dependencies, no threads.
"""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass
class NullEventSource:
    _closed: bool = dataclasses.field(default=False, init=False, repr=False)

    @property
    def watches(self) -> bool:
        return False

    @property
    def closed(self) -> bool:
        return self._closed

    def drain(self) -> int:
        return 0

    def close(self) -> None:
        self._closed = True
