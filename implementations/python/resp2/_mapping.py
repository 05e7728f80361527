"""Type-hint driven mapping between RESP frames and plain Python values.

`decode_into` and `encode_into` accept a *target* or *shape* that says
what the caller expects on the wire:

    Value                    any frame, as the Value model
    SimpleString, ...        that one Value case, else ERR_MESSAGE
    Any                      any frame, as plain Python data
    int                      `:`
    bool                     `:` carrying 0 or 1
    str                      `+` or `$` (UTF-8) when decoding; `$` when encoding
    bytes                    `$`
    List[X] / Tuple[X, ...]  `*` of X
    Tuple[X, Y, ...]         `*` of exactly those elements
    Optional[X]              X, or a null frame

Null frames are ambiguous once decoded (both become None), so encoding
picks the frame from the shape: a sequence shape under Optional writes
`*-1`, everything else writes `$-1`.  Without a shape, None is `$-1`.

Classes can opt out of all this by defining `__resp_deserialize__(de)`
as a classmethod and/or `__resp_serialize__(self, ser)`.
"""

from __future__ import annotations

import types
import typing
from typing import Any, Callable, List, Optional, Tuple, Union

from ._decoder import Deserializer, SeqAccess, ValueVisitor, Visitor
from ._encoder import Serializer
from ._errors import ERR_UNEXPECTED_TYPE, ERR_UTF8, RespError
from ._value import VALUE_TYPES, Error

Seed = Callable[[Deserializer], Any]

_NoneType = type(None)
_UnionType = getattr(types, "UnionType", None)  # `X | Y`, Python 3.10+


# ── Hint inspection ───────────────────────────────────────────

def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is Union or (_UnionType is not None and origin is _UnionType)


def _unwrap_optional(tp: Any) -> Tuple[Any, bool]:
    """Split Optional[X] into (X, True); anything else is (tp, False)."""
    if not _is_union(tp):
        return tp, False
    args = typing.get_args(tp)
    if _NoneType not in args:
        return tp, False
    rest = tuple(a for a in args if a is not _NoneType)
    if len(rest) == 1:
        return rest[0], True
    return Union[rest], True


def _is_value_union(tp: Any) -> bool:
    return _is_union(tp) and set(typing.get_args(tp)) == set(VALUE_TYPES)


def _sequence_args(tp: Any) -> Optional[Tuple[type, Tuple[Any, ...]]]:
    """For list/tuple hints return (container, element hints), else None.

    A homogeneous tuple or list reports one element hint followed by
    Ellipsis; a fixed tuple reports each position.
    """
    if tp is list:
        return list, (Any, Ellipsis)
    if tp is tuple:
        return tuple, (Any, Ellipsis)
    origin = typing.get_origin(tp)
    if origin is list:
        args = typing.get_args(tp) or (Any,)
        return list, (args[0], Ellipsis)
    if origin is tuple:
        args = typing.get_args(tp)
        if not args:
            return tuple, (Any, Ellipsis)
        if args == ((),):
            return tuple, ()
        return tuple, args
    return None


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


# ── Decoding ──────────────────────────────────────────────────

class _PlainVisitor(Visitor):
    """Any frame to plain Python data.  Error replies stay `Error`
    values so they are never mistaken for ordinary strings."""

    expecting = "any RESP value"

    def visit_int(self, value: int) -> int:
        return value

    def visit_str(self, text: str) -> str:
        return text

    def visit_error(self, text: str) -> Error:
        return Error(text)

    def visit_bytes(self, data: bytes) -> bytes:
        return data

    def visit_seq(self, access: SeqAccess) -> List[Any]:
        return list(access.elements(self))

    def visit_none(self) -> None:
        return None


class _IntVisitor(Visitor):
    expecting = "an integer"

    def visit_int(self, value: int) -> int:
        return value


class _BoolVisitor(Visitor):
    expecting = "an integer 0 or 1"

    def visit_int(self, value: int) -> bool:
        if value not in (0, 1):
            raise RespError.custom("invalid value: integer {}, expected {}".format(value, self.expecting))
        return value == 1


class _StrVisitor(Visitor):
    expecting = "a string"

    def visit_str(self, text: str) -> str:
        return text

    def visit_bytes(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RespError(ERR_UTF8, "bulk string is not utf-8: {}".format(e.reason)) from None


class _BytesVisitor(Visitor):
    expecting = "a bulk string"

    def visit_bytes(self, data: bytes) -> bytes:
        return data


class _SeqVisitor(Visitor):
    def __init__(self, container: type, elements: Tuple[Any, ...]) -> None:
        self.container = container
        if len(elements) == 2 and elements[1] is Ellipsis:
            self.fixed: Optional[List[Seed]] = None
            self.each: Optional[Seed] = seed_for(elements[0])
            self.expecting = "an array"
        else:
            self.fixed = [seed_for(e) for e in elements]
            self.each = None
            self.expecting = "an array of {} elements".format(len(elements))

    def visit_seq(self, access: SeqAccess) -> Any:
        if self.fixed is not None:
            if access.size != len(self.fixed):
                raise RespError.custom("invalid length {}, expected {}".format(access.size, self.expecting))
            items = [access.next_element_seed(seed) for seed in self.fixed]
        else:
            items = []
            while access.remaining:
                items.append(access.next_element_seed(self.each))
        return self.container(items)


class _OptionVisitor(Visitor):
    def __init__(self, inner: Seed) -> None:
        self.inner = inner

    def visit_none(self) -> None:
        return None

    def visit_some(self, de: Deserializer) -> Any:
        return self.inner(de)


def _value_seed(tp: Any) -> Seed:
    visitor = ValueVisitor()
    if _is_value_union(tp):
        return lambda de: de.deserialize_any(visitor)

    def seed(de: Deserializer) -> Any:
        value = de.deserialize_any(visitor)
        if not isinstance(value, tp):
            raise RespError.custom("invalid type: {}, expected {}"
                                   .format(type(value).__name__, tp.__name__))
        return value
    return seed


def seed_for(tp: Any) -> Seed:
    """Build a function that decodes one frame into the hinted type."""
    if tp is Any:
        visitor = _PlainVisitor()
        return lambda de: de.deserialize_any(visitor)

    if _is_value_union(tp) or tp in VALUE_TYPES:
        return _value_seed(tp)

    inner, optional = _unwrap_optional(tp)
    if optional:
        option = _OptionVisitor(seed_for(inner))
        return lambda de: de.deserialize_option(option)

    hook = getattr(tp, "__resp_deserialize__", None)
    if hook is not None:
        return hook

    # bool before int, same as the encoder.
    if tp is bool:
        bool_visitor = _BoolVisitor()
        return lambda de: de.deserialize_int(bool_visitor)
    if tp is int:
        int_visitor = _IntVisitor()
        return lambda de: de.deserialize_int(int_visitor)
    if tp is str:
        str_visitor = _StrVisitor()
        return lambda de: de.deserialize_text(str_visitor)
    if tp is bytes:
        bytes_visitor = _BytesVisitor()
        return lambda de: de.deserialize_bytes(bytes_visitor)

    seq = _sequence_args(tp)
    if seq is not None:
        seq_visitor = _SeqVisitor(*seq)
        return lambda de: de.deserialize_seq(seq_visitor)

    raise RespError(ERR_UNEXPECTED_TYPE, "cannot decode into {}".format(_type_name(tp)))


def deserialize(de: Deserializer, target: Any) -> Any:
    """Decode one frame into `target`: a Visitor instance or a type hint."""
    if isinstance(target, Visitor):
        return de.deserialize_any(target)
    return seed_for(target)(de)


# ── Encoding ──────────────────────────────────────────────────

def _mismatch(value: Any, shape: Any) -> RespError:
    return RespError(ERR_UNEXPECTED_TYPE,
                     "value of type {} does not match shape {}"
                     .format(type(value).__name__, _type_name(shape)))


def serialize(ser: Serializer, value: Any, shape: Any = None) -> None:
    """Write `value`, using `shape` to pick frames where Python types alone
    are ambiguous (null bulk vs null array, bool vs int)."""
    if shape is None or shape is Any:
        ser.serialize(value)
        return

    if _is_value_union(shape) or shape in VALUE_TYPES:
        if not isinstance(value, VALUE_TYPES if _is_value_union(shape) else shape):
            raise _mismatch(value, shape)
        ser.serialize(value)
        return

    inner, optional = _unwrap_optional(shape)
    if optional:
        if value is None:
            if _sequence_args(inner) is not None:
                ser.serialize_null_array()
            else:
                ser.serialize_none()
            return
        serialize(ser, value, inner)
        return

    if getattr(shape, "__resp_serialize__", None) is not None:
        if not isinstance(value, shape):
            raise _mismatch(value, shape)
        ser.serialize(value)
        return

    if shape is bool:
        if not isinstance(value, bool):
            raise _mismatch(value, shape)
        ser.serialize_bool(value)
        return
    if shape is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _mismatch(value, shape)
        ser.serialize_int(value)
        return
    if shape is str:
        if not isinstance(value, str):
            raise _mismatch(value, shape)
        ser.serialize_str(value)
        return
    if shape is bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise _mismatch(value, shape)
        ser.serialize_bytes(bytes(value))
        return

    seq = _sequence_args(shape)
    if seq is not None:
        if not isinstance(value, (list, tuple)):
            raise _mismatch(value, shape)
        _container, elements = seq
        if len(elements) == 2 and elements[1] is Ellipsis:
            hints = [elements[0]] * len(value)
        else:
            if len(value) != len(elements):
                raise RespError.custom("invalid length {}, expected {} elements"
                                       .format(len(value), len(elements)))
            hints = list(elements)
        out = ser.serialize_seq(len(value))
        for item, hint in zip(value, hints):
            out.serialize_element_with(lambda s, item=item, hint=hint: serialize(s, item, hint))
        out.end()
        return

    raise RespError(ERR_UNEXPECTED_TYPE, "cannot encode as {}".format(_type_name(shape)))
