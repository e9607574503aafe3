"""
SpoolQueue — a durable queue with one file per item.

Every operation is a single filesystem primitive on a single file; there are
no locks and no index. Concurrency control and crash safety come entirely
from two guarantees of a local POSIX filesystem:

  - O_CREAT | O_EXCL fails if the name already exists
  - rename() within one directory is atomic

Item lifecycle
--------------
  push:     write  <key>-<nonce>.incoming   (invisible to every selector)
            rename <key>-<nonce>.incoming -> <key>-<nonce>
  pop:      rename <key>-<nonce> -> <key>-<nonce>.consumed, then read
  flush:    unlink every *.consumed                       (acknowledge)
  recover:  rename every *.consumed back to <key>-<nonce> (redeliver)
  pull:     read the smallest <key>-<nonce>, then unlink it

pop() renames *before* reading. Two consumers racing for the same file both
try the rename; exactly one succeeds and the loser sees FileNotFoundError,
which pop() treats as "taken" and moves on to the next candidate.

Delivery is at-least-once across crashes: anything popped but not flushed
is still on disk as *.consumed and comes back with recover(). Only use
recover() with idempotent consumers.

pull() reads and then deletes in two separate steps. It is only safe with a
single consumer per spool.

A writer that crashes mid-push leaves a *.incoming orphan behind. Nothing
removes these implicitly; see sweep_incoming().
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import os
import time
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from typing import Any, Generic, TypeVar

from spoolq.core.codec import JsonCodec
from spoolq.core.naming import NameAllocator, OrderKey, default_nonce
from spoolq.core.selection import CorruptPolicy, Selection, candidates, scan
from spoolq.core.settings import SpoolSettings
from spoolq.domain.errors import CodecError
from spoolq.domain.models import ItemName, ItemState, SpoolStats
from spoolq.ports.codec import PayloadCodec

T = TypeVar("T")

logger = logging.getLogger(__name__)

DIR_MODE: int = 0o700
FILE_MODE: int = 0o600


@dataclasses.dataclass
class SpoolQueue(Generic[T]):
    """
    Handle on one spool directory.

    Parameters
    ----------
    path          : spool directory (it and missing parents created with mode 0o700)
    codec         : PayloadCodec for the item type (default: JsonCodec)
    order_key     : COUNTER (per-handle, resets on restart) or TIMESTAMP
    selection     : order in which pop() tries Visible items
    on_corrupt    : SKIP quarantines undecodable files, RAISE surfaces CodecError
    fsync         : fsync item files and the directory on push
    nonce_factory : callable returning a unique token for each name

    A handle is cheap and holds no open resources. It is not meant to be
    shared between processes; open one handle per process instead.
    """

    path: Path
    codec: PayloadCodec[T] = dataclasses.field(default_factory=JsonCodec)
    order_key: OrderKey = OrderKey.COUNTER
    selection: Selection = Selection.UNORDERED
    on_corrupt: CorruptPolicy = CorruptPolicy.SKIP
    fsync: bool = True
    nonce_factory: Callable[[], str] = dataclasses.field(
        default=default_nonce, repr=False
    )

    skipped: int = dataclasses.field(default=0, init=False)
    _names: NameAllocator = dataclasses.field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        _make_spool_dir(self.path)
        self._names = NameAllocator(
            order_key=self.order_key, nonce_factory=self.nonce_factory
        )

    @classmethod
    def from_settings(
        cls,
        settings: SpoolSettings | None = None,
        codec: PayloadCodec[Any] | None = None,
    ) -> "SpoolQueue[Any]":
        settings = settings or SpoolSettings()
        return cls(
            path=settings.path,
            codec=codec or JsonCodec(),
            order_key=settings.order_key,
            selection=settings.selection,
            on_corrupt=settings.on_corrupt,
            fsync=settings.fsync,
        )

    @property
    def seq(self) -> int:
        """Items pushed through this handle (the next COUNTER key)."""
        return self._names.seq

    # ------------------------------------------------------------------ #
    # Producer                                                             #
    # ------------------------------------------------------------------ #

    def push(self, item: T) -> ItemName:
        """
        Durably add an item. Returns the name it was published under.

        Raises CodecError if the item cannot be encoded (nothing is written),
        or OSError if the write fails (an .incoming orphan may remain).
        """
        try:
            data = self.codec.encode(item)
        except Exception as exc:
            raise CodecError("Failed to encode item", exc) from exc

        name = self._names.allocate()
        incoming = self.path / name.filename
        fd = os.open(incoming, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_MODE)
        with open(fd, "wb") as fh:
            fh.write(data)
            if self.fsync:
                fh.flush()
                os.fsync(fh.fileno())

        visible = name.with_state(ItemState.VISIBLE)
        os.rename(incoming, self.path / visible.filename)
        if self.fsync:
            self._fsync_dir()
        self._names.commit(visible)
        logger.debug("Pushed %s (%d bytes)", visible.filename, len(data))
        return visible

    # ------------------------------------------------------------------ #
    # Consumers                                                            #
    # ------------------------------------------------------------------ #

    def pop(self) -> T | None:
        """
        Claim one Visible item and return its payload, or None if there is none.

        The file stays on disk as .consumed until flush() or recover().
        """
        with contextlib.closing(candidates(self.path, self.selection)) as names:
            for name in names:
                claimed = name.with_state(ItemState.CONSUMED)
                try:
                    os.rename(self.path / name.filename, self.path / claimed.filename)
                except FileNotFoundError:
                    # Lost the race to another consumer.
                    continue
                logger.debug("Claimed %s", name.filename)
                try:
                    return self._load(claimed)
                except CodecError as exc:
                    self._reject(claimed, exc)
        return None

    def pull(self) -> T | None:
        """
        Remove and return the item with the smallest name, or None.

        FIFO when all items were pushed through one COUNTER handle, or by
        TIMESTAMP writers with synchronised clocks. Not ledgered: the file is
        deleted as soon as it has been decoded. Single consumer only.
        """
        with contextlib.closing(candidates(self.path, Selection.ORDERED)) as names:
            for name in names:
                try:
                    item = self._load(name)
                except FileNotFoundError:
                    continue
                except CodecError as exc:
                    self._reject(name, exc)
                    continue
                (self.path / name.filename).unlink(missing_ok=True)
                return item
        return None

    # ------------------------------------------------------------------ #
    # Ledger                                                               #
    # ------------------------------------------------------------------ #

    def flush(self) -> int:
        """
        Acknowledge: permanently delete every .consumed file.

        Only call once every item returned by pop() since the last flush has
        been fully processed. Returns the number of files deleted.
        """
        removed = 0
        for name in list(scan(self.path, ItemState.CONSUMED)):
            try:
                (self.path / name.filename).unlink()
            except FileNotFoundError:
                continue
            removed += 1
        if removed:
            logger.debug("Flushed %d consumed item(s)", removed)
        return removed

    def recover(self) -> int:
        """
        Return every .consumed file to the queue. Returns the number restored.

        Items that were fully processed before a crash are delivered again.
        """
        restored = 0
        for name in list(scan(self.path, ItemState.CONSUMED)):
            visible = name.with_state(ItemState.VISIBLE)
            try:
                os.rename(self.path / name.filename, self.path / visible.filename)
            except FileNotFoundError:
                continue
            restored += 1
        if restored:
            logger.debug("Recovered %d consumed item(s)", restored)
        return restored

    def sweep_incoming(self, older_than: timedelta) -> int:
        """
        Delete .incoming orphans whose last write is older than `older_than`.

        Never called implicitly. Choose a cutoff well above the longest push
        you expect, or a live writer's file will be removed mid-write.
        """
        cutoff = time.time() - older_than.total_seconds()
        swept = 0
        for name in list(scan(self.path, ItemState.INCOMING)):
            orphan = self.path / name.filename
            try:
                if orphan.stat().st_mtime >= cutoff:
                    continue
                orphan.unlink()
            except FileNotFoundError:
                continue
            logger.warning("Removed abandoned incoming file %s", name.filename)
            swept += 1
        return swept

    def stats(self) -> SpoolStats:
        """Count the spool files in each state."""
        counts = dict.fromkeys(ItemState, 0)
        with os.scandir(self.path) as entries:
            for entry in entries:
                name = ItemName.parse(entry.name)
                if name is not None and entry.is_file(follow_symlinks=False):
                    counts[name.state] += 1
        return SpoolStats(
            incoming=counts[ItemState.INCOMING],
            visible=counts[ItemState.VISIBLE],
            consumed=counts[ItemState.CONSUMED],
            corrupt=counts[ItemState.CORRUPT],
        )

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _load(self, name: ItemName) -> T:
        path = self.path / name.filename
        with open(path, "rb") as fh:
            data = fh.read()
        try:
            return self.codec.decode(data)
        except Exception as exc:
            raise CodecError("Failed to decode spool file", exc, path=path) from exc

    def _reject(self, name: ItemName, exc: CodecError) -> None:
        """Apply the corrupt-entry policy to a file the codec rejected."""
        if self.on_corrupt is CorruptPolicy.RAISE:
            raise exc
        quarantined = name.with_state(ItemState.CORRUPT)
        try:
            os.rename(self.path / name.filename, self.path / quarantined.filename)
        except FileNotFoundError:
            # Flushed or recovered by another process in the meantime.
            return
        self.skipped += 1
        logger.warning("Quarantined %s: %s", quarantined.filename, exc.cause)

    def _fsync_dir(self) -> None:
        fd = os.open(self.path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)


def _make_spool_dir(path: Path) -> None:
    """Create `path` and every missing parent with DIR_MODE."""
    missing = [p for p in (path, *path.parents) if not p.exists()]
    for directory in reversed(missing):
        directory.mkdir(mode=DIR_MODE, exist_ok=True)
