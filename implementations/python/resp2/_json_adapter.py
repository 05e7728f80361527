"""JSON ⇄ RESP2 adapter, used by the command-line tool.

JSON → RESP type mapping:
    JSON array   → Array
    JSON string  → BulkString (UTF-8)
    JSON integer → Integer          (out of int64 range → ERR_INTEGER_OVERFLOW)
    JSON boolean → Integer 1 / 0
    JSON null    → null bulk string (`$-1`)
    JSON float   → ERR_UNEXPECTED_TYPE
    JSON object  → ERR_UNEXPECTED_TYPE

The float check happens at the token level: json.loads() turns "1.0" into
float(1.0), which is integral but still has no RESP2 frame.  The parse
hooks see the raw token before Python coerces it.

RESP → JSON (`value_to_json`) is for display only and is lossy: simple
strings and bulk strings both come out as JSON strings, non-UTF-8 bulk
payloads as {"bytes_b64": ...}, and error replies as {"error": ...}.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from ._constants import INT64_MAX, INT64_MIN, MAX_DEPTH
from ._encoder import to_bytes
from ._errors import (
    ERR_INTEGER_OVERFLOW,
    ERR_MESSAGE,
    ERR_UNEXPECTED_TYPE,
    ERR_UTF8,
    RespError,
)
from ._value import NULL, Array, BulkString, Error, Integer, Null, SimpleString, Value


class _FloatToken:
    """Placeholder for a JSON float token, rejected during conversion."""
    __slots__ = ("token",)

    def __init__(self, token: str):
        self.token = token


def _intercept_int(s: str) -> int:
    val = int(s)
    if val < INT64_MIN or val > INT64_MAX:
        raise RespError(ERR_INTEGER_OVERFLOW, "integer overflow: {}".format(s))
    return val


def _reject_object(pairs: list) -> Any:
    raise RespError(ERR_UNEXPECTED_TYPE, "JSON object has no RESP2 frame")


def json_parse(raw: bytes) -> Any:
    """Parse raw JSON bytes, keeping float tokens distinguishable."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise RespError(ERR_UTF8, "invalid UTF-8 in JSON input") from None

    try:
        return json.loads(
            text,
            object_pairs_hook=_reject_object,
            parse_float=_FloatToken,
            parse_int=_intercept_int,
            parse_constant=lambda c: _FloatToken(c),
        )
    except json.JSONDecodeError as e:
        raise RespError(ERR_MESSAGE, "JSON parse error: {}".format(e)) from None
    except RecursionError:
        # The scanner recurses once per bracket.
        raise RespError.too_deep() from None


def json_to_value(x: Any, depth: int = 0) -> Value:
    """Convert parsed JSON into the Value model.  `depth` counts the
    arrays enclosing `x`."""
    if isinstance(x, list):
        if depth + 1 > MAX_DEPTH:
            raise RespError.too_deep()
        return Array([json_to_value(v, depth + 1) for v in x])

    if isinstance(x, str):
        try:
            return BulkString(x.encode("utf-8"))
        except UnicodeEncodeError:
            raise RespError(ERR_UTF8, "lone surrogate in JSON string") from None

    # bool before int: bool is an int subclass.
    if isinstance(x, bool):
        return Integer(1 if x else 0)

    if isinstance(x, int):
        return Integer(x)

    if x is None:
        return NULL

    if isinstance(x, _FloatToken):
        raise RespError(ERR_UNEXPECTED_TYPE, "JSON float not allowed: {}".format(x.token))

    raise RespError(ERR_UNEXPECTED_TYPE, "unexpected JSON type: {}".format(type(x).__name__))


def encode_json(raw: bytes) -> bytes:
    """Encode raw JSON bytes as one RESP frame."""
    return to_bytes(json_to_value(json_parse(raw)))


def value_to_json(value: Value) -> Any:
    """Render a Value as JSON-compatible data (display only, lossy)."""
    if isinstance(value, SimpleString):
        return value.text
    if isinstance(value, Error):
        return {"error": value.text}
    if isinstance(value, Integer):
        return value.value
    if isinstance(value, BulkString):
        try:
            return value.data.decode("utf-8")
        except UnicodeDecodeError:
            return {"bytes_b64": base64.b64encode(value.data).decode("ascii")}
    if isinstance(value, Array):
        return [value_to_json(v) for v in value.items]
    if isinstance(value, Null):
        return None
    raise RespError(ERR_UNEXPECTED_TYPE, "not a RESP value: {}".format(type(value).__name__))
