"""
NameAllocator — unique, optionally order-preserving spool file names.

Every name is `<order-key>-<nonce>`. The order key is always 16 lowercase
hex digits so that lexicographic order equals numeric order:

  OrderKey.COUNTER   — per-handle sequence starting at 0 on construction.
                       FIFO holds for items pushed through one handle only;
                       the counter is not persisted and restarts at 0.
  OrderKey.TIMESTAMP — time.time_ns(), forced strictly increasing within the
                       handle. Writers in different processes sharing one
                       spool should all use this policy.

The nonce keeps names distinct between writers whose keys coincide.
"""

from __future__ import annotations

import dataclasses
import secrets
import time
from collections.abc import Callable
from enum import Enum

from spoolq.domain.models import ItemName, ItemState

KEY_WIDTH: int = 16


class OrderKey(str, Enum):
    """Source of the sortable file-name prefix."""

    COUNTER = "counter"
    TIMESTAMP = "timestamp"


def default_nonce() -> str:
    """32 URL-safe characters (24 random bytes)."""
    return secrets.token_urlsafe(24)


@dataclasses.dataclass
class NameAllocator:
    """
    Allocates Incoming names and tracks the per-handle order key.

    allocate() has no side effects; commit() advances the sequence once the
    item has actually been published, so a failed push does not leave a gap.
    """

    order_key: OrderKey = OrderKey.COUNTER
    nonce_factory: Callable[[], str] = default_nonce

    seq: int = dataclasses.field(default=0, init=False)
    _last_ts: int = dataclasses.field(default=-1, init=False, repr=False)

    def allocate(self) -> ItemName:
        nonce = self.nonce_factory()
        if not nonce or "." in nonce or "/" in nonce:
            raise ValueError(f"nonce {nonce!r} is not usable in a file name")
        return ItemName(
            order_key=format(self._next_key(), f"0{KEY_WIDTH}x"),
            nonce=nonce,
            state=ItemState.INCOMING,
        )

    def commit(self, name: ItemName) -> None:
        """Record that `name` was published."""
        match self.order_key:
            case OrderKey.COUNTER:
                self.seq += 1
            case OrderKey.TIMESTAMP:
                self._last_ts = int(name.order_key, 16)

    def _next_key(self) -> int:
        if self.order_key is OrderKey.COUNTER:
            return self.seq
        return max(time.time_ns(), self._last_ts + 1)
