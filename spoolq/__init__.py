"""
spoolq — a durable, crash-recoverable queue with one file per item.

Each pushed item is written to its own file in a spool directory. Exclusive
create and atomic rename are the only synchronization and durability
mechanisms: no database, no lock files, no index. Queued work survives
process crashes, and several processes on one host may share a spool.

Quick start
-----------
    from spoolq import SpoolQueue

    queue = SpoolQueue("/var/spool/jobs")
    queue.push({"to": "user@example.com"})

    item = queue.pop()          # claimed: file renamed to *.consumed
    send_email(item)
    queue.flush()               # acknowledged: *.consumed files deleted

After a crash, queue.recover() puts every claimed-but-unacknowledged item
back in the queue (at-least-once delivery).

Selection policies
------------------
  - pop()  — unordered and fast (directory order), ledgered, safe with many
             concurrent consumers. SpoolQueue(selection=Selection.ORDERED)
             makes pop() FIFO at O(n log n) per call.
  - pull() — FIFO by name, delete-on-read, single consumer only.

Streams
-------
QueueStream wraps a queue as a pollable, endless sequence, optionally woken
by filesystem notifications (watchdog) instead of scanning on every poll:

    with QueueStream.watching("/var/spool/jobs") as stream:
        for item in stream:
            ...

Architecture
------------
Follows the Ports & Adapters pattern:
  domain/   — pure value types (ItemName, ItemState, SpoolStats) and errors
  ports/    — Protocol interfaces (PayloadCodec, EventSource)
  core/     — naming, selection, SpoolQueue, QueueStream, codecs, settings
  adapters/ — event sources (NullEventSource, WatchdogEventSource)
"""
from __future__ import annotations

from spoolq.adapters.events.null import NullEventSource
from spoolq.adapters.events.watcher import WatchdogEventSource
from spoolq.core.codec import JsonCodec, PydanticCodec
from spoolq.core.naming import NameAllocator, OrderKey
from spoolq.core.selection import CorruptPolicy, Selection
from spoolq.core.settings import SpoolSettings
from spoolq.core.spool import SpoolQueue
from spoolq.core.stream import End, NotReady, PollResult, QueueStream, Ready
from spoolq.domain.errors import CodecError, EventSourceError, SpoolError
from spoolq.domain.models import ItemName, ItemState, SpoolStats
from spoolq.ports.codec import PayloadCodec
from spoolq.ports.events import EventSource

__all__ = [
    # Domain models
    "ItemName",
    "ItemState",
    "SpoolStats",
    # Errors
    "SpoolError",
    "CodecError",
    "EventSourceError",
    # Ports (for typing custom codecs / event sources)
    "PayloadCodec",
    "EventSource",
    # Queue API
    "SpoolQueue",
    "NameAllocator",
    "OrderKey",
    "Selection",
    "CorruptPolicy",
    "SpoolSettings",
    # Codecs
    "JsonCodec",
    "PydanticCodec",
    # Streams
    "QueueStream",
    "PollResult",
    "Ready",
    "NotReady",
    "End",
    # Event sources
    "NullEventSource",
    "WatchdogEventSource",
]
