"""Forward-only cursor over a fully buffered RESP input.

The cursor is the only thing in the decoder that touches raw positions.
Every error it raises carries offsets relative to the start of the
original input, never relative to the current line.
"""

from __future__ import annotations

from typing import Union

from ._constants import CR, CRLF
from ._errors import RespError

BytesLike = Union[bytes, bytearray, memoryview]


class Cursor:
    """Byte cursor with a running offset.

    `peek`/`advance` work one byte at a time, so the offset is always a
    byte count.  `take` and `read_line` return `bytes` copies; the input
    buffer itself is never mutated.
    """

    __slots__ = ("_buf", "_pos")

    def __init__(self, data: BytesLike) -> None:
        self._buf = bytes(data)
        self._pos = 0

    @property
    def offset(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._buf)

    def peek(self) -> int:
        """Return the next byte without consuming it."""
        if self._pos >= len(self._buf):
            raise RespError.eof()
        return self._buf[self._pos]

    def advance(self) -> int:
        b = self.peek()
        self._pos += 1
        return b

    def take(self, n: int) -> bytes:
        """Consume exactly `n` bytes."""
        if n < 0 or self.remaining < n:
            raise RespError.eof()
        start = self._pos
        self._pos += n
        return self._buf[start:self._pos]

    def startswith(self, prefix: bytes) -> bool:
        return self._buf.startswith(prefix, self._pos)

    def find(self, needle: bytes, start: int) -> int:
        """Absolute index of `needle` at or after absolute offset `start`, or -1."""
        return self._buf.find(needle, start)

    def read_line(self) -> bytes:
        """Consume up to the next CRLF and return the span before it.

        The CRLF is consumed too.  A CR that is not part of that CRLF is a
        protocol violation, located exactly; a missing CRLF is plain EOF.
        """
        end = self._buf.find(CRLF, self._pos)
        if end < 0:
            raise RespError.eof()
        bare_cr = self._buf.find(bytes([CR]), self._pos, end)
        if bare_cr >= 0:
            raise RespError.unexpected_cr(bare_cr)
        line = self._buf[self._pos:end]
        self._pos = end + len(CRLF)
        return line
