"""
Domain models for spoolq — backed by Pydantic v2.

A spool file name carries all of an item's durable metadata:

    <order-key>-<nonce>[.<state-suffix>]

    0000000000000003-hK2v...Qw            visible, ready to be selected
    0000000000000003-hK2v...Qw.incoming   mid-write, never selected
    0000000000000003-hK2v...Qw.consumed   popped, awaiting flush or recover
    0000000000000003-hK2v...Qw.corrupt    failed to decode, quarantined

All models are frozen (immutable). State changes return new instances via
with_state(), mirroring the rename that performs the transition on disk.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ItemState(str, Enum):
    """Lifecycle states for a spool file. The value is the file-name suffix."""

    INCOMING = "incoming"
    VISIBLE = ""
    CONSUMED = "consumed"
    CORRUPT = "corrupt"


_SUFFIXES: dict[str, ItemState] = {state.value: state for state in ItemState if state.value}


class ItemName(BaseModel):
    """
    A parsed spool file name.

    order_key — fixed-width sortable prefix (counter or timestamp)
    nonce     — random token preventing collisions between writers
    state     — lifecycle state encoded by the suffix
    """

    model_config = ConfigDict(frozen=True)

    order_key: str
    nonce: str = ""
    state: ItemState = ItemState.VISIBLE

    @property
    def stem(self) -> str:
        """The state-independent part of the name."""
        if not self.nonce:
            return self.order_key
        return f"{self.order_key}-{self.nonce}"

    @property
    def filename(self) -> str:
        if self.state is ItemState.VISIBLE:
            return self.stem
        return f"{self.stem}.{self.state.value}"

    @classmethod
    def parse(cls, filename: str) -> "ItemName | None":
        """
        Parse a directory entry name. Returns None for foreign entries.

        Hidden names and names with an unknown suffix are foreign: no spool
        operation ever touches them.
        """
        if not filename or filename.startswith("."):
            return None
        stem, dot, suffix = filename.partition(".")
        if not dot:
            state = ItemState.VISIBLE
        else:
            state = _SUFFIXES.get(suffix)
            if state is None:
                return None
        order_key, _, nonce = stem.partition("-")
        return cls(order_key=order_key, nonce=nonce, state=state)

    def with_state(self, state: ItemState) -> "ItemName":
        """Return the name this item will carry in another state."""
        return self.model_copy(update={"state": state})


class SpoolStats(BaseModel):
    """Point-in-time count of spool files per state (foreign entries excluded)."""

    model_config = ConfigDict(frozen=True)

    incoming: int = 0
    visible: int = 0
    consumed: int = 0
    corrupt: int = 0

    @property
    def total(self) -> int:
        return self.incoming + self.visible + self.consumed + self.corrupt
