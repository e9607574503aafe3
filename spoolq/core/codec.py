"""
Codecs — serialize one queue item to the bytes of one spool file.

Two implementations of the PayloadCodec port:

JsonCodec
---------
stdlib json, UTF-8, compact separators. Suitable for plain dict / list /
scalar items:

    {"i":3,"b":true,"s":"#3"}

PydanticCodec
-------------
Any type Pydantic v2 can validate, via a TypeAdapter. Models, dataclasses,
TypedDicts and builtin containers all work. The wire format is exactly
what model_dump_json produces (ISO-8601 datetimes, enum values, ...).

Both raise on malformed input; SpoolQueue turns that into CodecError.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class JsonCodec:
    """UTF-8 JSON for items made of dicts, lists, strings, numbers and bools."""

    def encode(self, item: Any) -> bytes:
        return json.dumps(item, separators=(",", ":")).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class PydanticCodec(Generic[T]):
    """
    Validating codec for any type Pydantic understands.

        codec = PydanticCodec(Foo)
        queue = SpoolQueue(path, codec)
    """

    def __init__(self, item_type: type[T]) -> None:
        self.item_type = item_type
        self._adapter: TypeAdapter[T] = TypeAdapter(item_type)

    def __repr__(self) -> str:
        return f"PydanticCodec({self.item_type!r})"

    def encode(self, item: T) -> bytes:
        return self._adapter.dump_json(item)

    def decode(self, data: bytes) -> T:
        return self._adapter.validate_json(data)
