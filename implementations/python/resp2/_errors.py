"""RESP2 error codes and the exception class shared by both directions.

Every failure in the codec surfaces as a `RespError` whose `.code` is one
of the ERR_* strings below.  Positional context (`pos`, `expected`,
`found`) is attached where the failure has a meaningful location; `pos`
is always a byte offset from the start of the original input.
"""

from __future__ import annotations

from typing import Optional, Union

from ._constants import MAX_DEPTH

# ── Error codes ──────────────────────────────────────────────
# Grep-friendly; tests and the conformance vectors compare against these.

ERR_EOF: str = "ERR_EOF"                                  # input exhausted mid-frame
ERR_UNEXPECTED_CR: str = "ERR_UNEXPECTED_CR"              # bare CR before CRLF
ERR_UNEXPECTED_SIGN: str = "ERR_UNEXPECTED_SIGN"          # valid sign, wrong for context
ERR_EXPECTED_SIGN: str = "ERR_EXPECTED_SIGN"              # no valid sign at all
ERR_TRAILING_CHARACTERS: str = "ERR_TRAILING_CHARACTERS"  # bytes after the root frame
ERR_BULK_STRING_OVERFLOW: str = "ERR_BULK_STRING_OVERFLOW"
ERR_WRONG_SIZE_OF_BULK_STRING: str = "ERR_WRONG_SIZE_OF_BULK_STRING"
ERR_PARSE_INT: str = "ERR_PARSE_INT"                      # bad `:` payload or length
ERR_UTF8: str = "ERR_UTF8"                                # text required, not UTF-8
ERR_IO: str = "ERR_IO"                                    # reading the source stream
ERR_UNEXPECTED_TYPE: str = "ERR_UNEXPECTED_TYPE"          # float, map, struct, ...
ERR_INTEGER_OVERFLOW: str = "ERR_INTEGER_OVERFLOW"        # outside signed 64 bits
ERR_MESSAGE: str = "ERR_MESSAGE"                          # custom, from visitors
ERR_LIMIT_DEPTH: str = "ERR_LIMIT_DEPTH"                  # arrays nested past MAX_DEPTH

ALL_CODES = (
    ERR_EOF,
    ERR_UNEXPECTED_CR,
    ERR_UNEXPECTED_SIGN,
    ERR_EXPECTED_SIGN,
    ERR_TRAILING_CHARACTERS,
    ERR_BULK_STRING_OVERFLOW,
    ERR_WRONG_SIZE_OF_BULK_STRING,
    ERR_PARSE_INT,
    ERR_UTF8,
    ERR_IO,
    ERR_UNEXPECTED_TYPE,
    ERR_INTEGER_OVERFLOW,
    ERR_MESSAGE,
    ERR_LIMIT_DEPTH,
)

_DEFAULT_MESSAGES = {
    ERR_EOF: "unexpected end of input",
    ERR_TRAILING_CHARACTERS: "trailing characters",
    ERR_BULK_STRING_OVERFLOW: "bulk string overflow",
    ERR_UNEXPECTED_TYPE: "unexpected type",
    ERR_INTEGER_OVERFLOW: "integer overflow",
    ERR_LIMIT_DEPTH: "arrays nested too deeply",
}


def _sign_repr(sign: Union[int, str, None]) -> Optional[str]:
    if sign is None or isinstance(sign, str):
        return sign
    return chr(sign)


class RespError(Exception):
    """Exception for RESP encode/decode failures.

    The `.code` attribute is one of the ERR_* strings above.  `pos` is the
    byte offset of the offending byte when known.  For ERR_UNEXPECTED_SIGN,
    `expected` and `found` are the one-character signs; for
    ERR_WRONG_SIZE_OF_BULK_STRING they are the declared and actual byte
    counts.
    """

    def __init__(
        self,
        code: str,
        msg: str = "",
        *,
        pos: Optional[int] = None,
        expected: Union[int, str, None] = None,
        found: Union[int, str, None] = None,
    ) -> None:
        super().__init__(msg or _DEFAULT_MESSAGES.get(code, code))
        self.code = code
        self.pos = pos
        self.expected = expected
        self.found = found

    @classmethod
    def custom(cls, msg: str) -> "RespError":
        """Error raised by visitors and user hooks in the generic path."""
        return cls(ERR_MESSAGE, msg)

    @classmethod
    def eof(cls) -> "RespError":
        return cls(ERR_EOF)

    @classmethod
    def unexpected_cr(cls, pos: int) -> "RespError":
        return cls(ERR_UNEXPECTED_CR,
                   "meet unexpected '\\r' in {}th bytes".format(pos), pos=pos)

    @classmethod
    def expected_sign(cls, pos: int) -> "RespError":
        return cls(ERR_EXPECTED_SIGN,
                   "expect one of these signs: + - : $ * in {}th bytes".format(pos),
                   pos=pos)

    @classmethod
    def unexpected_sign(cls, expected: int, found: int, pos: int) -> "RespError":
        exp, fnd = _sign_repr(expected), _sign_repr(found)
        return cls(ERR_UNEXPECTED_SIGN,
                   "expect {!r} but found {!r} in {}th bytes".format(exp, fnd, pos),
                   pos=pos, expected=exp, found=fnd)

    @classmethod
    def wrong_size(cls, expected: int, found: int) -> "RespError":
        return cls(ERR_WRONG_SIZE_OF_BULK_STRING,
                   "wrong size of bulk string: expected {} bytes, found {} bytes"
                   .format(expected, found),
                   expected=expected, found=found)

    @classmethod
    def too_deep(cls, pos: Optional[int] = None) -> "RespError":
        msg = "arrays nested deeper than {} levels".format(MAX_DEPTH)
        if pos is not None:
            msg += " at {}th bytes".format(pos)
        return cls(ERR_LIMIT_DEPTH, msg, pos=pos)
