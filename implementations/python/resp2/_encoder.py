"""RESP2 encoder — the mirror of the decoder.

`Serializer` exposes one hook per frame shape (`serialize_int`,
`serialize_simple_string`, `serialize_bytes`, `serialize_seq`, ...) and a
generic `serialize()` that picks the hook from the Python type:

    Value instances      → their own frame (via __resp_serialize__)
    bool / int           → `:`   (bool as 1/0)
    str                  → `$`   (UTF-8 payload)
    bytes-like           → `$`
    None                 → `$-1`
    list / tuple         → `*`
    float                → ERR_UNEXPECTED_TYPE (no float frame in RESP2)
    dict, set, objects   → ERR_UNEXPECTED_TYPE

Any class can take part by defining `__resp_serialize__(self, ser)` and
calling the hooks itself, which is exactly what the Value classes do.
"""

from __future__ import annotations

import io
from typing import Any, BinaryIO, Callable

from ._constants import (
    CRLF,
    INT64_MAX,
    INT64_MIN,
    MAX_DEPTH,
    NULL_ARRAY,
    NULL_BULK_STRING,
    SIGN_ARRAY,
    SIGN_BULK_STRING,
    SIGN_ERROR,
    SIGN_INTEGER,
    SIGN_SIMPLE_STRING,
)
from ._errors import (
    ERR_INTEGER_OVERFLOW,
    ERR_UNEXPECTED_TYPE,
    ERR_UTF8,
    RespError,
)


def _utf8(text: str) -> bytes:
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise RespError(ERR_UTF8, "text is not encodable as utf-8: {}".format(e.reason)) from None


def _header(sign: int, n: int) -> bytes:
    # int() first: str() of an IntEnum member is its name before 3.11.
    return bytes([sign]) + str(int(n)).encode("ascii") + CRLF


class Serializer:
    """Writes RESP frames to `sink`, anything with a `write(bytes)` method."""

    def __init__(self, sink: BinaryIO) -> None:
        self.sink = sink
        self.depth = 0

    # ── scalar hooks ──────────────────────────────────────────

    def serialize_int(self, value: int) -> None:
        if value < INT64_MIN or value > INT64_MAX:
            raise RespError(ERR_INTEGER_OVERFLOW,
                            "integer {} does not fit in a signed 64-bit frame".format(value))
        self.sink.write(_header(SIGN_INTEGER, value))

    def serialize_bool(self, value: bool) -> None:
        self.serialize_int(1 if value else 0)

    def serialize_float(self, value: float) -> None:
        raise RespError(ERR_UNEXPECTED_TYPE, "float {!r} has no RESP2 frame".format(value))

    def serialize_simple_string(self, text: str) -> None:
        # No escaping: the Value model already refused CR in the text.
        self.sink.write(bytes([SIGN_SIMPLE_STRING]) + _utf8(text) + CRLF)

    def serialize_error(self, text: str) -> None:
        self.sink.write(bytes([SIGN_ERROR]) + _utf8(text) + CRLF)

    def serialize_bytes(self, data: bytes) -> None:
        self.sink.write(_header(SIGN_BULK_STRING, len(data)))
        self.sink.write(bytes(data))
        self.sink.write(CRLF)

    def serialize_str(self, text: str) -> None:
        """Plain text goes out as a bulk string, never as `+`."""
        self.serialize_bytes(_utf8(text))

    def serialize_none(self) -> None:
        self.sink.write(NULL_BULK_STRING)

    def serialize_null_array(self) -> None:
        self.sink.write(NULL_ARRAY)

    # ── sequences ─────────────────────────────────────────────

    def serialize_seq(self, length: int) -> "SerializeSeq":
        """Open an array; `end()` on the returned writer closes it."""
        if self.depth + 1 > MAX_DEPTH:
            raise RespError.too_deep()
        self.depth += 1
        self.sink.write(_header(SIGN_ARRAY, length))
        return SerializeSeq(self, length)

    # ── generic dispatch ──────────────────────────────────────

    def serialize(self, value: Any) -> None:
        hook = getattr(type(value), "__resp_serialize__", None)
        if hook is not None:
            hook(value, self)
            return

        # bool before int: bool is an int subclass.
        if isinstance(value, bool):
            self.serialize_bool(value)
            return

        if isinstance(value, int):
            self.serialize_int(value)
            return

        if isinstance(value, float):
            self.serialize_float(value)
            return

        if isinstance(value, str):
            self.serialize_str(value)
            return

        if isinstance(value, (bytes, bytearray, memoryview)):
            self.serialize_bytes(bytes(value))
            return

        if value is None:
            self.serialize_none()
            return

        if isinstance(value, (list, tuple)):
            seq = self.serialize_seq(len(value))
            for item in value:
                seq.serialize_element(item)
            seq.end()
            return

        raise RespError(ERR_UNEXPECTED_TYPE,
                        "unsupported type: {}".format(type(value).__name__))


class SerializeSeq:
    """Element writer returned by `Serializer.serialize_seq`.

    The header already promised `length` elements; `end()` checks the
    promise was kept.
    """

    __slots__ = ("_ser", "_length", "_written")

    def __init__(self, ser: Serializer, length: int) -> None:
        self._ser = ser
        self._length = length
        self._written = 0

    def serialize_element(self, value: Any) -> None:
        self._written += 1
        self._ser.serialize(value)

    def serialize_element_with(self, write: Callable[[Serializer], None]) -> None:
        """Write one element by handing the serializer to `write`."""
        self._written += 1
        write(self._ser)

    def end(self) -> None:
        self._ser.depth -= 1
        if self._written != self._length:
            raise RespError.custom("array header declared {} elements, {} were written"
                                   .format(self._length, self._written))


def to_bytes(value: Any) -> bytes:
    """Encode one value into a fresh buffer.  Nothing is returned on error."""
    buf = io.BytesIO()
    Serializer(buf).serialize(value)
    return buf.getvalue()
