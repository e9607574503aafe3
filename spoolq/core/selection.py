"""
Item selection — which spool files a consumer may claim, and in what order.

Selection.UNORDERED
  One pass of os.scandir, yielding Visible regular files in whatever order
  the filesystem returns them. The first usable entry is normally near the
  front, so a pop costs O(1) expected; it degrades only when many suffixed
  entries precede the usable ones. No ordering guarantee.

Selection.ORDERED
  Lists every Visible regular file and sorts by name. With fixed-width order
  keys this is FIFO. O(n log n) per call, so it slows down as the queue grows.

Incoming, Consumed, Corrupt and foreign entries are never yielded.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from enum import Enum
from pathlib import Path

from spoolq.domain.models import ItemName, ItemState


class Selection(str, Enum):
    UNORDERED = "unordered"
    ORDERED = "ordered"


class CorruptPolicy(str, Enum):
    """What pop/pull do with a file the codec rejects."""

    SKIP = "skip"    # quarantine as .corrupt, count it, keep scanning
    RAISE = "raise"  # surface CodecError, leave the file where it is


def scan(path: Path, state: ItemState) -> Iterator[ItemName]:
    """Yield names of regular files in `state`, in directory order."""
    with os.scandir(path) as entries:
        for entry in entries:
            name = ItemName.parse(entry.name)
            if name is None or name.state is not state:
                continue
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
            except FileNotFoundError:
                continue
            yield name


def candidates(path: Path, selection: Selection) -> Iterator[ItemName]:
    """Visible items in the order a consumer should try to claim them."""
    if selection is Selection.UNORDERED:
        yield from scan(path, ItemState.VISIBLE)
    else:
        yield from sorted(scan(path, ItemState.VISIBLE), key=lambda n: n.filename)
