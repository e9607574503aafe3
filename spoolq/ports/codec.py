"""
PayloadCodec — the port between spool files and item values.

Any object with encode/decode methods satisfies this structural Protocol.
No base class or registration is required.

Codec contract
--------------
encode(item) -> bytes
  - Returns the full file body for one item. One file holds one record,
    so no framing is needed.

decode(data) -> item
  - Inverse of encode.
  - Must raise on malformed input (any exception). SpoolQueue wraps it in
    CodecError and applies the handle's corrupt-entry policy.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class PayloadCodec(Protocol[T]):
    """
    Serialize and deserialize a single queue item.

    Implementing codecs (built-in):
      - JsonCodec      — stdlib json, for plain dict/list/scalar items
      - PydanticCodec  — any type Pydantic can validate (models, dataclasses, ...)
    """

    def encode(self, item: T) -> bytes: ...

    def decode(self, data: bytes) -> T: ...
