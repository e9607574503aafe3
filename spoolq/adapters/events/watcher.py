"""
WatchdogEventSource — debounced filesystem notifications for one spool.

A watchdog Observer thread watches the spool directory (non-recursively)
and records every event that makes an item Visible:

  - a file created under a Visible name
  - a rename whose destination is a Visible name (push commit, recover)

Renames to .consumed / .corrupt and writes to .incoming files are ignored,
so a consumer's own pops do not wake it up again.

Debouncing
----------
drain() only reports pending events once `debounce` has elapsed since the
first of them arrived. A burst of pushes is therefore coalesced into one
wake-up, and the delay any single item waits is bounded by `debounce`.

Thread model
------------
The observer thread only appends timestamps to a queue.SimpleQueue; drain()
runs on the caller's thread and never blocks.
"""

from __future__ import annotations

import logging
import os
import queue
import time
from datetime import timedelta
from pathlib import Path
from types import TracebackType

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from spoolq.domain.errors import EventSourceError
from spoolq.domain.models import ItemName, ItemState

logger = logging.getLogger(__name__)


def _is_visible(path: bytes | str) -> bool:
    name = ItemName.parse(os.path.basename(os.fsdecode(path)))
    return name is not None and name.state is ItemState.VISIBLE


class _SpoolEventHandler(FileSystemEventHandler):
    """Pushes a monotonic timestamp for every event that publishes an item."""

    def __init__(self, events: queue.SimpleQueue[float]) -> None:
        super().__init__()
        self._events = events

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and _is_visible(event.src_path):
            self._events.put(time.monotonic())

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory and _is_visible(event.dest_path):
            self._events.put(time.monotonic())


class WatchdogEventSource:
    """
    Filesystem change listener for a spool directory.

        source = WatchdogEventSource(path).start()
        try:
            ...
        finally:
            source.close()

    Parameters
    ----------
    path     : spool directory to watch (must exist)
    debounce : coalescing window for bursts of events (default 100 ms)
    """

    def __init__(
        self,
        path: str | Path,
        debounce: timedelta = timedelta(milliseconds=100),
    ) -> None:
        self.path = Path(path)
        self.debounce = debounce
        self._events: queue.SimpleQueue[float] = queue.SimpleQueue()
        self._observer: Observer | None = None
        self._closed = False
        self._pending = 0
        self._first: float | None = None

    def __repr__(self) -> str:
        return f"WatchdogEventSource(path={str(self.path)!r}, debounce={self.debounce!r})"

    def __enter__(self) -> "WatchdogEventSource":
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def watches(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        if self._closed:
            return True
        # Observer thread died underneath us.
        return self._observer is not None and not self._observer.is_alive()

    def start(self) -> "WatchdogEventSource":
        """Start the observer thread. Raises EventSourceError on failure."""
        if self._closed:
            raise EventSourceError(f"Cannot restart watcher for {self.path}", RuntimeError("closed"))
        if self._observer is not None:
            return self

        observer = Observer()
        try:
            observer.schedule(
                _SpoolEventHandler(self._events), str(self.path), recursive=False
            )
            observer.start()
        except Exception as exc:
            raise EventSourceError(f"Failed to watch {self.path}", exc) from exc
        self._observer = observer
        logger.info("Watching spool %s", self.path)
        return self

    def drain(self) -> int:
        """
        Collect queued notifications without blocking.

        Returns how many arrived, once the debounce window of the oldest
        has elapsed; 0 otherwise.
        """
        while True:
            try:
                stamp = self._events.get_nowait()
            except queue.Empty:
                break
            self._pending += 1
            if self._first is None:
                self._first = stamp

        if self._first is None:
            return 0
        if time.monotonic() - self._first < self.debounce.total_seconds():
            return 0
        count = self._pending
        self._pending = 0
        self._first = None
        return count

    def close(self) -> None:
        """Stop and join the observer thread. Idempotent."""
        if self._closed:
            return
        self._closed = True
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5.0)
        logger.info("Stopped watching spool %s", self.path)
