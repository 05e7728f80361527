"""RESP2 value model — the closed sum of the six wire-level cases.

    SimpleString  (+)   — text without CR
    Error         (-)   — same shape as SimpleString; an error *reply*
    Integer       (:)   — signed 64-bit
    BulkString    ($)   — length-prefixed bytes
    Array         (*)   — ordered Values, recursively
    Null                — `$-1` or `*-1`; one marker for both

Every case is a frozen dataclass, so a Value never changes after it is
built.  Bulk payloads are always owned `bytes`: decoding copies them out
of the input buffer instead of keeping a view into it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple, Union

from ._constants import INT64_MAX, INT64_MIN
from ._errors import ERR_INTEGER_OVERFLOW, ERR_MESSAGE, ERR_UNEXPECTED_TYPE, RespError


def _check_line_text(kind: str, text: Any) -> None:
    if not isinstance(text, str):
        raise RespError(ERR_UNEXPECTED_TYPE,
                        "{} text must be str, got {}".format(kind, type(text).__name__))
    # The decoder rejects a CR that is not part of the terminating CRLF,
    # so text carrying one could never round-trip.
    if "\r" in text:
        raise RespError(ERR_MESSAGE, "{} text must not contain CR".format(kind))


@dataclass(frozen=True)
class SimpleString:
    text: str

    def __post_init__(self) -> None:
        _check_line_text("SimpleString", self.text)

    def __resp_serialize__(self, ser: Any) -> None:
        ser.serialize_simple_string(self.text)


@dataclass(frozen=True)
class Error:
    """An error reply (`-ERR ...`).  Data, not an exception."""

    text: str

    def __post_init__(self) -> None:
        _check_line_text("Error", self.text)

    def __resp_serialize__(self, ser: Any) -> None:
        ser.serialize_error(self.text)


@dataclass(frozen=True)
class Integer:
    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int):
            raise RespError(ERR_UNEXPECTED_TYPE,
                            "Integer value must be int, got {}".format(type(self.value).__name__))
        if self.value < INT64_MIN or self.value > INT64_MAX:
            raise RespError(ERR_INTEGER_OVERFLOW,
                            "integer {} outside int64 range".format(self.value))
        # bool is an int subclass; normalise so Integer(True) == Integer(1).
        object.__setattr__(self, "value", int(self.value))

    def __resp_serialize__(self, ser: Any) -> None:
        ser.serialize_int(self.value)


@dataclass(frozen=True)
class BulkString:
    data: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise RespError(ERR_UNEXPECTED_TYPE,
                            "BulkString payload must be bytes-like, got {}"
                            .format(type(self.data).__name__))
        object.__setattr__(self, "data", bytes(self.data))

    def __resp_serialize__(self, ser: Any) -> None:
        ser.serialize_bytes(self.data)


@dataclass(frozen=True)
class Array:
    items: Tuple["Value", ...]

    def __post_init__(self) -> None:
        items = tuple(self.items)
        for item in items:
            if not isinstance(item, VALUE_TYPES):
                raise RespError(ERR_UNEXPECTED_TYPE,
                                "Array element must be a Value, got {}"
                                .format(type(item).__name__))
        object.__setattr__(self, "items", items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index: int) -> "Value":
        return self.items[index]

    def __resp_serialize__(self, ser: Any) -> None:
        seq = ser.serialize_seq(len(self.items))
        for item in self.items:
            seq.serialize_element(item)
        seq.end()


@dataclass(frozen=True)
class Null:
    """The null marker.  All instances compare equal; use `NULL`."""

    def __resp_serialize__(self, ser: Any) -> None:
        ser.serialize_none()


NULL = Null()

Value = Union[SimpleString, Error, Integer, BulkString, Array, Null]

VALUE_TYPES = (SimpleString, Error, Integer, BulkString, Array, Null)


# ── Constructors ──────────────────────────────────────────────

def simple(text: str) -> SimpleString:
    return SimpleString(text)


def err(text: str) -> Error:
    return Error(text)


def i64(n: int) -> Integer:
    return Integer(n)


def bulk(data: Union[str, bytes, bytearray, memoryview]) -> BulkString:
    """Build a BulkString; `str` input is encoded as UTF-8."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return BulkString(data)


def array(*items: Value) -> Array:
    return Array(items)


def none() -> Null:
    return NULL
