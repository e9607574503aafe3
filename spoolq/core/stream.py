"""
QueueStream — a SpoolQueue as a lazily-produced, never-ending sequence.

poll() is the primitive. It never blocks on the queue being empty:

    Ready(item)  — an item was popped
    NotReady()   — nothing to hand out right now; poll again later
    End()        — the event source was closed; the stream is finished

The stream never completes on its own while the event source is open.

Plain polling (NullEventSource)
-------------------------------
Every poll() performs one pop().

Watch-assisted polling (WatchdogEventSource)
--------------------------------------------
poll() first drains pending change notifications. A new stream starts
dirty, so its first polls drain whatever backlog is already on disk (for
example items put back by recover() before the watcher started). After
that the spool is only scanned once a notification has been seen; the
stream then keeps popping on each poll until the spool comes up empty, and
goes back to waiting for the next notification. A debounced burst of N
pushes therefore still yields all N items, and an idle spool costs no
directory scans.

Acknowledgement is not the stream's job: items arrive via pop(), so they
sit as .consumed until the caller runs queue.flush() (or queue.recover()).

Usage
-----
    with QueueStream.watching("/var/spool/jobs") as stream:
        for item in stream:
            handle(item)
            stream.queue.flush()

    async with QueueStream(queue) as stream:
        async for item in stream:
            await handle(item)
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import AsyncIterator, Iterator
from datetime import timedelta
from pathlib import Path
from types import TracebackType
from typing import Any, Generic, TypeVar

from spoolq.adapters.events.null import NullEventSource
from spoolq.adapters.events.watcher import WatchdogEventSource
from spoolq.core.settings import SpoolSettings
from spoolq.core.spool import SpoolQueue
from spoolq.ports.codec import PayloadCodec
from spoolq.ports.events import EventSource

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class Ready(Generic[T]):
    item: T


@dataclasses.dataclass(frozen=True)
class NotReady:
    pass


@dataclasses.dataclass(frozen=True)
class End:
    pass


PollResult = Ready[T] | NotReady | End


@dataclasses.dataclass
class QueueStream(Generic[T]):
    """
    Pollable stream over a SpoolQueue.

    Parameters
    ----------
    queue         : the SpoolQueue to pop from
    events        : change notifications (default: NullEventSource, plain polling)
    poll_interval : seconds to sleep after NotReady when iterating
    """

    queue: SpoolQueue[T]
    events: EventSource = dataclasses.field(default_factory=NullEventSource)
    poll_interval: float = 0.05

    _dirty: bool = dataclasses.field(default=True, init=False, repr=False)

    @classmethod
    def watching(
        cls,
        path: str | Path,
        codec: PayloadCodec[Any] | None = None,
        *,
        debounce: timedelta = timedelta(milliseconds=100),
        poll_interval: float = 0.05,
        **queue_kwargs: Any,
    ) -> "QueueStream[Any]":
        """Open (or create) a spool and stream it with a started watcher."""
        if codec is not None:
            queue_kwargs["codec"] = codec
        queue: SpoolQueue[Any] = SpoolQueue(Path(path), **queue_kwargs)
        events = WatchdogEventSource(queue.path, debounce=debounce).start()
        return cls(queue=queue, events=events, poll_interval=poll_interval)

    @classmethod
    def from_settings(
        cls,
        settings: SpoolSettings | None = None,
        codec: PayloadCodec[Any] | None = None,
    ) -> "QueueStream[Any]":
        settings = settings or SpoolSettings()
        queue = SpoolQueue.from_settings(settings, codec)
        events: EventSource = NullEventSource()
        if settings.watch:
            events = WatchdogEventSource(queue.path, debounce=settings.debounce).start()
        return cls(queue=queue, events=events, poll_interval=settings.poll_interval)

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        self.events.close()

    def __enter__(self) -> "QueueStream[T]":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    async def __aenter__(self) -> "QueueStream[T]":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Polling                                                              #
    # ------------------------------------------------------------------ #

    def poll(self) -> PollResult[T]:
        """
        Try to produce the next item without waiting.

        OSError and CodecError from the underlying pop() propagate.
        """
        if self.events.closed:
            return End()
        if self.events.watches:
            if self.events.drain():
                self._dirty = True
            if not self._dirty:
                return NotReady()

        item = self.queue.pop()
        if item is None:
            self._dirty = False
            return NotReady()
        return Ready(item)

    def __iter__(self) -> Iterator[T]:
        while True:
            match self.poll():
                case Ready(item=item):
                    yield item
                case NotReady():
                    time.sleep(self.poll_interval)
                case End():
                    return

    def __aiter__(self) -> AsyncIterator[T]:
        return self._aiter()

    async def _aiter(self) -> AsyncIterator[T]:
        while True:
            match await asyncio.to_thread(self.poll):
                case Ready(item=item):
                    yield item
                case NotReady():
                    await asyncio.sleep(self.poll_interval)
                case End():
                    return
