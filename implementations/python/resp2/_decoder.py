"""RESP2 decoder — tag dispatch, frame parsers, and the visitor protocol.

The decoder never builds values itself.  It parses one frame and hands the
payload to a *visitor* through a small, closed set of hooks:

    visit_int(n)        `:` frame
    visit_str(text)     `+` frame
    visit_error(text)   `-` frame
    visit_bytes(data)   `$` frame with a payload
    visit_seq(access)   `*` frame; `access.elements(v)` decodes the items
    visit_none()        `$-1` or `*-1`
    visit_some(de)      non-null frame under `deserialize_option`

`ValueVisitor` turns those calls into the Value model; `_mapping` builds
visitors for plain Python type hints.  Anything else can subclass
`Visitor` and override only the hooks it accepts.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterator, Optional

from ._constants import (
    CRLF,
    INT64_MAX,
    INT64_MIN,
    MAX_BULK_STRING_SIZE,
    MAX_DEPTH,
    NULL_ARRAY,
    NULL_BULK_STRING,
    NULL_LENGTH_LINE,
    SIGN_ARRAY,
    SIGN_BULK_STRING,
    SIGN_ERROR,
    SIGN_INTEGER,
    SIGN_SIMPLE_STRING,
)
from ._cursor import BytesLike, Cursor
from ._errors import (
    ERR_BULK_STRING_OVERFLOW,
    ERR_PARSE_INT,
    ERR_TRAILING_CHARACTERS,
    ERR_UTF8,
    RespError,
)
from ._value import NULL, Array, BulkString, Error, Integer, SimpleString, Value

logger = logging.getLogger(__name__)

# Same grammar as a base-10 i64 literal: optional sign, ASCII digits only.
# int() alone would also accept whitespace, underscores and non-ASCII digits.
_INT_RE = re.compile(rb"[+-]?[0-9]+")


# ── Visitor protocol ──────────────────────────────────────────

class Visitor:
    """Base visitor: every hook rejects its input.

    Subclasses override the hooks for the shapes they accept and set
    `expecting` so rejections read well.
    """

    expecting = "a RESP value"

    def _invalid(self, what: str) -> RespError:
        return RespError.custom("invalid type: {}, expected {}".format(what, self.expecting))

    def visit_int(self, value: int) -> Any:
        raise self._invalid("integer {}".format(value))

    def visit_str(self, text: str) -> Any:
        raise self._invalid("simple string")

    def visit_error(self, text: str) -> Any:
        raise self._invalid("error")

    def visit_bytes(self, data: bytes) -> Any:
        raise self._invalid("bulk string")

    def visit_seq(self, access: "SeqAccess") -> Any:
        raise self._invalid("array")

    def visit_none(self) -> Any:
        raise self._invalid("null")

    def visit_some(self, de: "Deserializer") -> Any:
        return de.deserialize_any(self)


class ValueVisitor(Visitor):
    """Builds the Value model.  Both null frames become `NULL`."""

    expecting = "data matching the Redis serialization protocol"

    def visit_int(self, value: int) -> Value:
        return Integer(value)

    def visit_str(self, text: str) -> Value:
        return SimpleString(text)

    def visit_error(self, text: str) -> Value:
        return Error(text)

    def visit_bytes(self, data: bytes) -> Value:
        return BulkString(data)

    def visit_seq(self, access: "SeqAccess") -> Value:
        return Array(access.elements(self))

    def visit_none(self) -> Value:
        return NULL


class SeqAccess:
    """Hands out the elements of one array frame, in order.

    The element count comes from the header and is trusted only as an
    upper bound on work: a truncated stream fails with EOF on the first
    missing element, never by pre-allocating `size` slots.
    """

    __slots__ = ("_de", "size", "remaining")

    def __init__(self, de: "Deserializer", size: int) -> None:
        self._de = de
        self.size = size
        self.remaining = size

    def next_element(self, visitor: Visitor) -> Any:
        if self.remaining <= 0:
            raise RespError.custom("array has no more elements")
        self.remaining -= 1
        return self._de.deserialize_any(visitor)

    def next_element_seed(self, seed: Callable[["Deserializer"], Any]) -> Any:
        """Decode the next element by handing the deserializer to `seed`."""
        if self.remaining <= 0:
            raise RespError.custom("array has no more elements")
        self.remaining -= 1
        return seed(self._de)

    def elements(self, visitor: Visitor) -> Iterator[Any]:
        while self.remaining > 0:
            yield self.next_element(visitor)


# ── Deserializer ──────────────────────────────────────────────

class Deserializer:
    """Parses frames off a Cursor and drives visitors."""

    def __init__(self, cursor: Cursor) -> None:
        self.cursor = cursor
        self.depth = 0

    @classmethod
    def from_bytes(cls, data: BytesLike) -> "Deserializer":
        return cls(Cursor(data))

    def end(self) -> None:
        """Require that the root frame consumed the whole input."""
        if not self.cursor.at_end:
            logger.debug("root frame ends at byte %d, %d bytes left over",
                         self.cursor.offset, self.cursor.remaining)
            raise RespError(ERR_TRAILING_CHARACTERS, pos=self.cursor.offset)

    # ── frame parsers ────────────────────────────────────────
    # Each parser starts at a sign byte, checks it against what the
    # caller expects, and consumes the complete frame.

    def _expect_sign(self, sign: int) -> None:
        found = self.cursor.peek()
        if found != sign:
            raise RespError.unexpected_sign(sign, found, self.cursor.offset)
        self.cursor.advance()

    def _read_i64(self) -> int:
        """Read one line and parse it as a signed 64-bit integer."""
        pos = self.cursor.offset
        return self._parse_i64(self.cursor.read_line(), pos)

    @staticmethod
    def _parse_i64(line: bytes, pos: int) -> int:
        if not _INT_RE.fullmatch(line):
            raise RespError(ERR_PARSE_INT,
                            "invalid digit in integer {!r}".format(line), pos=pos)
        value = int(line)
        if value < INT64_MIN or value > INT64_MAX:
            raise RespError(ERR_PARSE_INT,
                            "number too large to fit in target type: {}".format(line.decode("ascii")),
                            pos=pos)
        return value

    def _read_length(self) -> Optional[int]:
        """Read a `$`/`*` length line.  -1 means null; no other negative."""
        pos = self.cursor.offset
        line = self.cursor.read_line()
        # Only the literal `-1` is null, the same bytes deserialize_option
        # matches.  `-01` and friends are malformed lengths.
        if line == NULL_LENGTH_LINE:
            return None
        n = self._parse_i64(line, pos)
        if n < 0:
            raise RespError(ERR_PARSE_INT,
                            "invalid negative length {}".format(line.decode("ascii")), pos=pos)
        return n

    def _read_text(self) -> str:
        pos = self.cursor.offset
        line = self.cursor.read_line()
        try:
            return line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RespError(ERR_UTF8, "invalid utf-8 in line: {}".format(e.reason),
                            pos=pos + e.start) from None

    def parse_int(self) -> int:
        self._expect_sign(SIGN_INTEGER)
        return self._read_i64()

    def parse_simple_string(self) -> str:
        self._expect_sign(SIGN_SIMPLE_STRING)
        return self._read_text()

    def parse_error(self) -> str:
        self._expect_sign(SIGN_ERROR)
        return self._read_text()

    def parse_bytes(self) -> Optional[bytes]:
        """Parse a bulk string.  Returns None for `$-1`."""
        self._expect_sign(SIGN_BULK_STRING)
        pos = self.cursor.offset
        n = self._read_length()
        if n is None:
            return None
        if n > MAX_BULK_STRING_SIZE:
            raise RespError(ERR_BULK_STRING_OVERFLOW,
                            "bulk string of {} bytes exceeds {} bytes".format(n, MAX_BULK_STRING_SIZE),
                            pos=pos)
        start = self.cursor.offset
        data = self.cursor.take(n)
        if self.cursor.remaining < len(CRLF):
            raise RespError.eof()
        if not self.cursor.startswith(CRLF):
            # Declared length disagrees with where the payload really ends.
            end = self.cursor.find(CRLF, start + n)
            if end < 0:
                raise RespError.eof()
            raise RespError.wrong_size(n, end - start)
        self.cursor.take(len(CRLF))
        return data

    def parse_array_len(self) -> Optional[int]:
        """Parse an array header.  Returns None for `*-1`."""
        self._expect_sign(SIGN_ARRAY)
        return self._read_length()

    # ── visitor entry points ─────────────────────────────────

    def deserialize_any(self, visitor: Visitor) -> Any:
        sign = self.cursor.peek()
        if sign == SIGN_SIMPLE_STRING:
            return self.deserialize_str(visitor)
        if sign == SIGN_ERROR:
            return self.deserialize_error(visitor)
        if sign == SIGN_INTEGER:
            return self.deserialize_int(visitor)
        if sign == SIGN_BULK_STRING:
            return self.deserialize_bytes(visitor)
        if sign == SIGN_ARRAY:
            return self.deserialize_seq(visitor)
        raise RespError.expected_sign(self.cursor.offset)

    def deserialize_int(self, visitor: Visitor) -> Any:
        return visitor.visit_int(self.parse_int())

    def deserialize_str(self, visitor: Visitor) -> Any:
        return visitor.visit_str(self.parse_simple_string())

    def deserialize_error(self, visitor: Visitor) -> Any:
        return visitor.visit_error(self.parse_error())

    def deserialize_text(self, visitor: Visitor) -> Any:
        """Text may arrive as `+` or as `$`; any other sign is reported
        against `$`, the frame text is encoded as."""
        if self.cursor.peek() == SIGN_SIMPLE_STRING:
            return self.deserialize_str(visitor)
        return self.deserialize_bytes(visitor)

    def deserialize_bytes(self, visitor: Visitor) -> Any:
        data = self.parse_bytes()
        if data is None:
            return visitor.visit_none()
        return visitor.visit_bytes(data)

    def deserialize_seq(self, visitor: Visitor) -> Any:
        pos = self.cursor.offset
        n = self.parse_array_len()
        if n is None:
            return visitor.visit_none()
        if self.depth + 1 > MAX_DEPTH:
            raise RespError.too_deep(pos)
        access = SeqAccess(self, n)
        self.depth += 1
        try:
            result = visitor.visit_seq(access)
        finally:
            self.depth -= 1
        if access.remaining:
            raise RespError.custom(
                "array of {} elements: visitor left {} unconsumed".format(n, access.remaining))
        return result

    def deserialize_option(self, visitor: Visitor) -> Any:
        """Null frames go to `visit_none`; anything else to `visit_some`."""
        if self.cursor.startswith(NULL_BULK_STRING) or self.cursor.startswith(NULL_ARRAY):
            self.cursor.take(len(NULL_BULK_STRING))
            return visitor.visit_none()
        return visitor.visit_some(self)

