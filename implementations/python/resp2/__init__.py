"""resp2 — a bidirectional codec for the Redis Serialization Protocol (v2).

Decode bytes into the Value model, or into plain Python types, and encode
either back into byte-exact RESP frames.

Quick start:
    >>> from resp2 import decode, encode, array, i64, simple, bulk
    >>> decode(b"*2\\r\\n:32\\r\\n+foobar\\r\\n")
    Array(items=(Integer(value=32), SimpleString(text='foobar')))
    >>> encode(array(i64(32), simple("foobar"), bulk("really bulk")))
    b'*3\\r\\n:32\\r\\n+foobar\\r\\n$11\\r\\nreally bulk\\r\\n'

Plain Python values go through encode_into / decode_into:
    >>> from typing import List, Optional
    >>> from resp2 import decode_into, encode_into
    >>> encode_into(["SET", "key", 42])
    b'*3\\r\\n$3\\r\\nSET\\r\\n$3\\r\\nkey\\r\\n:42\\r\\n'
    >>> decode_into(b"*2\\r\\n$1\\r\\na\\r\\n$-1\\r\\n", List[Optional[str]])
    ['a', None]

Only the five classic frame types exist here: no RESP3, no transport.
"""

from __future__ import annotations

import io
from typing import Any, BinaryIO, Union

from ._constants import MAX_BULK_STRING_SIZE, MAX_DEPTH
from ._cursor import Cursor
from ._decoder import Deserializer, SeqAccess, ValueVisitor, Visitor
from ._encoder import Serializer, SerializeSeq
from ._errors import (
    ERR_BULK_STRING_OVERFLOW,
    ERR_EOF,
    ERR_EXPECTED_SIGN,
    ERR_INTEGER_OVERFLOW,
    ERR_IO,
    ERR_LIMIT_DEPTH,
    ERR_MESSAGE,
    ERR_PARSE_INT,
    ERR_TRAILING_CHARACTERS,
    ERR_UNEXPECTED_CR,
    ERR_UNEXPECTED_SIGN,
    ERR_UNEXPECTED_TYPE,
    ERR_UTF8,
    ERR_WRONG_SIZE_OF_BULK_STRING,
    RespError,
)
from ._json_adapter import encode_json, value_to_json
from ._mapping import deserialize, serialize
from ._value import (
    NULL,
    Array,
    BulkString,
    Error,
    Integer,
    Null,
    SimpleString,
    Value,
    array,
    bulk,
    err,
    i64,
    none,
    simple,
)

__version__ = "0.2.0"

__all__ = [
    # Public API functions
    "decode",
    "decode_into",
    "decode_from",
    "encode",
    "encode_into",
    "encode_to",
    "encode_json",
    "value_to_json",
    # Value model
    "Value",
    "SimpleString",
    "Error",
    "Integer",
    "BulkString",
    "Array",
    "Null",
    "NULL",
    "simple",
    "err",
    "i64",
    "bulk",
    "array",
    "none",
    # Generic mapping layer
    "Cursor",
    "Deserializer",
    "SeqAccess",
    "Serializer",
    "SerializeSeq",
    "Visitor",
    "ValueVisitor",
    # Exception
    "RespError",
    # Error codes
    "ERR_EOF",
    "ERR_UNEXPECTED_CR",
    "ERR_UNEXPECTED_SIGN",
    "ERR_EXPECTED_SIGN",
    "ERR_TRAILING_CHARACTERS",
    "ERR_BULK_STRING_OVERFLOW",
    "ERR_WRONG_SIZE_OF_BULK_STRING",
    "ERR_PARSE_INT",
    "ERR_UTF8",
    "ERR_IO",
    "ERR_UNEXPECTED_TYPE",
    "ERR_INTEGER_OVERFLOW",
    "ERR_MESSAGE",
    "ERR_LIMIT_DEPTH",
    "MAX_BULK_STRING_SIZE",
    "MAX_DEPTH",
]

BytesInput = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesInput) -> Union[bytes, bytearray, memoryview]:
    # str input is accepted for convenience; offsets are still in bytes.
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


# ── Decoding ──────────────────────────────────────────────────

def decode(data: BytesInput) -> Value:
    """Decode exactly one frame into the Value model.

    Fails with ERR_TRAILING_CHARACTERS if anything follows the frame.
    """
    return decode_into(data, Value)


def decode_into(data: BytesInput, target: Any) -> Any:
    """Decode exactly one frame into `target`.

    `target` is a Visitor instance, a class with `__resp_deserialize__`,
    or a type hint understood by the mapping layer (int, str, bytes,
    List[...], Tuple[...], Optional[...], Any, Value).
    """
    de = Deserializer.from_bytes(_as_bytes(data))
    result = deserialize(de, target)
    de.end()
    return result


def decode_from(reader: BinaryIO, target: Any = Value) -> Any:
    """Read `reader` to completion, then decode one frame from it."""
    try:
        data = reader.read()
    except OSError as e:
        raise RespError(ERR_IO, str(e)) from e
    if data is None:
        raise RespError(ERR_IO, "non-blocking reader returned no data")
    return decode_into(data, target)


# ── Encoding ──────────────────────────────────────────────────
# Every encoder renders into a private buffer first, so a value that is
# rejected halfway through never leaves partial bytes anywhere.

def encode(value: Value) -> bytes:
    """Encode a Value into RESP bytes."""
    return encode_into(value, Value)


def encode_into(value: Any, shape: Any = None) -> bytes:
    """Encode any supported Python value; `shape` disambiguates nulls."""
    buf = io.BytesIO()
    serialize(Serializer(buf), value, shape)
    return buf.getvalue()


def encode_to(value: Any, writer: BinaryIO, shape: Any = None) -> None:
    """Encode `value` and write the whole frame to `writer`."""
    payload = encode_into(value, shape)
    try:
        writer.write(payload)
    except OSError as e:
        raise RespError(ERR_IO, str(e)) from e
