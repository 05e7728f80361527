"""Unit tests for the resp2 public API.

Organized by feature area.  Conformance testing against golden vectors
is in test_conformance.py; the type-hint mapping layer is covered in
test_mapping.py.
"""

from __future__ import annotations

import dataclasses
import enum
import io
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from resp2 import (
    NULL,
    Array,
    BulkString,
    Error,
    Integer,
    Null,
    RespError,
    SimpleString,
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
    ERR_UNEXPECTED_TYPE,
    ERR_UTF8,
    ERR_WRONG_SIZE_OF_BULK_STRING,
    MAX_DEPTH,
    array,
    bulk,
    decode,
    decode_from,
    encode,
    encode_into,
    encode_to,
    err,
    i64,
    none,
    simple,
)


# ── Decoding: one frame of each type ──────────────────────────

class TestDecodeFrames(unittest.TestCase):
    def test_simple_string(self):
        self.assertEqual(decode(b"+hello\r\n"), SimpleString("hello"))

    def test_error(self):
        self.assertEqual(decode(b"-Err unknown error\r\n"), Error("Err unknown error"))

    def test_integer(self):
        self.assertEqual(decode(b":114514\r\n"), Integer(114514))

    def test_negative_and_signed_integers(self):
        self.assertEqual(decode(b":-7\r\n"), Integer(-7))
        self.assertEqual(decode(b":+7\r\n"), Integer(7))

    def test_int64_bounds(self):
        self.assertEqual(decode(b":9223372036854775807\r\n"), Integer(2**63 - 1))
        self.assertEqual(decode(b":-9223372036854775808\r\n"), Integer(-(2**63)))

    def test_bulk_string(self):
        self.assertEqual(decode(b"$13\r\nhello, world!\r\n"), BulkString(b"hello, world!"))

    def test_empty_bulk_string(self):
        self.assertEqual(decode(b"$0\r\n\r\n"), BulkString(b""))

    def test_bulk_string_is_binary_safe(self):
        """CRLF inside the payload is data; only the declared length counts."""
        self.assertEqual(decode(b"$4\r\na\r\nb\r\n"), BulkString(b"a\r\nb"))

    def test_array(self):
        raw = b"*3\r\n:32\r\n+foobar\r\n$11\r\nreally bulk\r\n"
        self.assertEqual(decode(raw), Array([
            Integer(32),
            SimpleString("foobar"),
            BulkString(b"really bulk"),
        ]))

    def test_empty_array(self):
        self.assertEqual(decode(b"*0\r\n"), Array(()))

    def test_nested_array(self):
        raw = b"*2\r\n*1\r\n:1\r\n$-1\r\n"
        self.assertEqual(decode(raw), array(array(i64(1)), NULL))

    def test_null_bulk_string(self):
        self.assertEqual(decode(b"$-1\r\n"), NULL)

    def test_null_array(self):
        self.assertIsInstance(decode(b"*-1\r\n"), Null)

    def test_lone_lf_in_simple_string(self):
        self.assertEqual(decode(b"+a\nb\r\n"), SimpleString("a\nb"))

    def test_str_input(self):
        self.assertEqual(decode("+OK\r\n"), SimpleString("OK"))

    def test_memoryview_input(self):
        self.assertEqual(decode(memoryview(b":1\r\n")), Integer(1))


# ── Decoding: error kinds and positions ───────────────────────

class TestDecodeErrors(unittest.TestCase):
    def assertDecodeError(self, raw, code, pos=None):
        with self.assertRaises(RespError) as ctx:
            decode(raw)
        self.assertEqual(ctx.exception.code, code)
        if pos is not None:
            self.assertEqual(ctx.exception.pos, pos)
        return ctx.exception

    def test_empty_input(self):
        self.assertDecodeError(b"", ERR_EOF)

    def test_bulk_shorter_than_declared(self):
        self.assertDecodeError(b"$6\r\nhello\r\n", ERR_EOF)

    def test_missing_terminator(self):
        self.assertDecodeError(b"+OK", ERR_EOF)
        self.assertDecodeError(b"+OK\r", ERR_EOF)

    def test_truncated_array(self):
        self.assertDecodeError(b"*3\r\n:1\r\n", ERR_EOF)

    def test_unexpected_cr(self):
        self.assertDecodeError(b"+123\r124\r\n", ERR_UNEXPECTED_CR, pos=4)

    def test_unexpected_cr_in_length_line(self):
        self.assertDecodeError(b"$1\r2\r\nab\r\n", ERR_UNEXPECTED_CR, pos=2)

    def test_expected_sign_in_array(self):
        self.assertDecodeError(b"*2\r\n+514\r\n12\r\n", ERR_EXPECTED_SIGN, pos=10)

    def test_unknown_leading_sign(self):
        # RESP3 null: not part of the classic five.
        self.assertDecodeError(b"_\r\n", ERR_EXPECTED_SIGN, pos=0)

    def test_integer_overflow(self):
        self.assertDecodeError(b":99999999999999999999\r\n", ERR_PARSE_INT)
        self.assertDecodeError(b":11111111111111111111111\r\n", ERR_PARSE_INT)

    def test_integer_not_numeric(self):
        for raw in [b":abc\r\n", b":\r\n", b": 12\r\n", b":1_000\r\n", b":12 \r\n", b":--1\r\n"]:
            with self.subTest(raw=raw):
                self.assertDecodeError(raw, ERR_PARSE_INT)

    def test_non_ascii_digits_rejected(self):
        """int() would accept Arabic-Indic digits; the wire grammar doesn't."""
        self.assertDecodeError(":١٢\r\n".encode("utf-8"), ERR_PARSE_INT)

    def test_bad_lengths(self):
        for raw in [b"$-2\r\n", b"*-5\r\n", b"$x\r\n", b"*\r\n"]:
            with self.subTest(raw=raw):
                self.assertDecodeError(raw, ERR_PARSE_INT)

    def test_null_length_must_be_literal(self):
        """`-01` is numerically -1 but only the text `-1` marks a null."""
        for raw in [b"$-01\r\n", b"*-01\r\n", b"$-001\r\n"]:
            with self.subTest(raw=raw):
                self.assertDecodeError(raw, ERR_PARSE_INT, pos=1)

    def test_bulk_string_overflow_checked_before_payload(self):
        """No payload bytes are present; the header alone is rejected."""
        e = self.assertDecodeError(b"$536870913\r\n", ERR_BULK_STRING_OVERFLOW)
        self.assertEqual(e.pos, 1)

    def test_bulk_string_at_limit_is_only_eof(self):
        self.assertDecodeError(b"$536870912\r\n", ERR_EOF)

    def test_wrong_size_of_bulk_string(self):
        e = self.assertDecodeError(b"$3\r\nhello\r\n", ERR_WRONG_SIZE_OF_BULK_STRING)
        self.assertEqual(e.expected, 3)
        self.assertEqual(e.found, 5)

    def test_trailing_characters(self):
        self.assertDecodeError(b"+OK\r\n+OK\r\n", ERR_TRAILING_CHARACTERS, pos=5)

    def test_trailing_garbage_after_null(self):
        self.assertDecodeError(b"$-1\r\nx", ERR_TRAILING_CHARACTERS)

    def test_invalid_utf8_in_simple_string(self):
        self.assertDecodeError(b"+ok\xff\r\n", ERR_UTF8, pos=3)

    def test_invalid_utf8_in_error(self):
        self.assertDecodeError(b"-\xc3\x28\r\n", ERR_UTF8)

    def test_bulk_payload_need_not_be_utf8(self):
        self.assertEqual(decode(b"$2\r\n\xff\xfe\r\n"), BulkString(b"\xff\xfe"))


# ── Encoding ──────────────────────────────────────────────────

class TestEncode(unittest.TestCase):
    def test_simple_string(self):
        self.assertEqual(encode(SimpleString("hello world")), b"+hello world\r\n")

    def test_bulk_string(self):
        self.assertEqual(encode(BulkString(b"Hello, world!")), b"$13\r\nHello, world!\r\n")

    def test_error(self):
        self.assertEqual(encode(Error("Err some errors")), b"-Err some errors\r\n")

    def test_integer(self):
        self.assertEqual(encode(Integer(114514)), b":114514\r\n")
        self.assertEqual(encode(Integer(-42)), b":-42\r\n")

    def test_array(self):
        value = Array([Integer(32), SimpleString("foobar"), BulkString(b"really bulk")])
        self.assertEqual(encode(value), b"*3\r\n:32\r\n+foobar\r\n$11\r\nreally bulk\r\n")

    def test_null(self):
        self.assertEqual(encode(NULL), b"$-1\r\n")

    def test_non_utf8_bulk(self):
        self.assertEqual(encode(BulkString(b"\x00\xff")), b"$2\r\n\x00\xff\r\n")

    def test_rejects_non_value(self):
        with self.assertRaises(RespError) as ctx:
            encode(5)
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)

    def test_int_enum(self):
        class Color(enum.IntEnum):
            RED = 1

        self.assertEqual(encode_into(Color.RED), b":1\r\n")
        self.assertEqual(encode_into([Color.RED]), b"*1\r\n:1\r\n")
        self.assertEqual(encode(i64(Color.RED)), b":1\r\n")

    def test_encode_to_writer(self):
        out = io.BytesIO()
        encode_to(array(bulk("GET"), bulk("k")), out)
        self.assertEqual(out.getvalue(), b"*2\r\n$3\r\nGET\r\n$1\r\nk\r\n")


class TestEncodeRejections(unittest.TestCase):
    def test_float_rejected(self):
        with self.assertRaises(RespError) as ctx:
            encode_into(1.5)
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)

    def test_float_leaves_writer_untouched(self):
        """The float sits after valid elements; none of them may leak out."""
        out = io.BytesIO()
        with self.assertRaises(RespError) as ctx:
            encode_to(["a", 1, 2.0], out)
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)
        self.assertEqual(out.getvalue(), b"")

    def test_unsigned_overflow(self):
        for n in [2**63, 2**64 - 1, -(2**63) - 1]:
            with self.subTest(n=n):
                with self.assertRaises(RespError) as ctx:
                    encode_into(n)
                self.assertEqual(ctx.exception.code, ERR_INTEGER_OVERFLOW)

    def test_map_rejected(self):
        with self.assertRaises(RespError) as ctx:
            encode_into({"a": 1})
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)

    def test_set_rejected(self):
        with self.assertRaises(RespError) as ctx:
            encode_into({1, 2})
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)

    def test_struct_rejected(self):
        @dataclasses.dataclass
        class Point:
            x: int
            y: int

        with self.assertRaises(RespError) as ctx:
            encode_into(Point(1, 2))
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)


# ── Nesting limit ─────────────────────────────────────────────

def _nested_list(depth: int):
    value = 1
    for _ in range(depth):
        value = [value]
    return value


def _nested_array(depth: int):
    value = i64(1)
    for _ in range(depth):
        value = Array((value,))
    return value


class TestNestingLimit(unittest.TestCase):
    def test_decode_at_limit(self):
        raw = b"*1\r\n" * MAX_DEPTH + b":1\r\n"
        self.assertEqual(decode(raw), _nested_array(MAX_DEPTH))

    def test_decode_past_limit(self):
        with self.assertRaises(RespError) as ctx:
            decode(b"*1\r\n" * (MAX_DEPTH + 1) + b":1\r\n")
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)
        self.assertEqual(ctx.exception.pos, MAX_DEPTH * 4)

    def test_decode_hostile_depth(self):
        with self.assertRaises(RespError) as ctx:
            decode(b"*1\r\n" * 5000 + b":1\r\n")
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)

    def test_null_array_at_limit(self):
        self.assertIsInstance(decode(b"*1\r\n" * MAX_DEPTH + b"*-1\r\n"), Array)

    def test_siblings_do_not_accumulate(self):
        branch = b"*1\r\n" * (MAX_DEPTH - 1) + b":1\r\n"
        value = decode(b"*2\r\n" + branch + branch)
        self.assertEqual(len(value), 2)

    def test_encode_at_limit(self):
        self.assertEqual(encode_into(_nested_list(MAX_DEPTH)),
                         b"*1\r\n" * MAX_DEPTH + b":1\r\n")

    def test_encode_hostile_list(self):
        with self.assertRaises(RespError) as ctx:
            encode_into(_nested_list(5000))
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)

    def test_encode_hostile_value(self):
        out = io.BytesIO()
        with self.assertRaises(RespError) as ctx:
            encode_to(_nested_array(5000), out)
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)
        self.assertEqual(out.getvalue(), b"")


# ── Value model ───────────────────────────────────────────────

class TestValueModel(unittest.TestCase):
    def test_constructors(self):
        self.assertEqual(simple("OK"), SimpleString("OK"))
        self.assertEqual(err("ERR x"), Error("ERR x"))
        self.assertEqual(i64(3), Integer(3))
        self.assertEqual(bulk("héllo"), BulkString("héllo".encode("utf-8")))
        self.assertEqual(bulk(b"raw"), BulkString(b"raw"))
        self.assertEqual(array(), Array(()))
        self.assertIs(none(), NULL)

    def test_null_instances_compare_equal(self):
        self.assertEqual(Null(), NULL)

    def test_simple_string_and_error_differ(self):
        self.assertNotEqual(SimpleString("x"), Error("x"))

    def test_values_are_immutable(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            Integer(1).value = 2

    def test_array_items_frozen_to_tuple(self):
        items = [Integer(1)]
        value = Array(items)
        items.append(Integer(2))
        self.assertEqual(value.items, (Integer(1),))
        self.assertEqual(len(value), 1)
        self.assertEqual(value[0], Integer(1))

    def test_bulk_payload_copied(self):
        buf = bytearray(b"abc")
        value = BulkString(buf)
        buf[0] = ord("z")
        self.assertEqual(value.data, b"abc")

    def test_values_are_hashable(self):
        self.assertEqual(len({Integer(1), Integer(1), array(i64(1))}), 2)

    def test_integer_range(self):
        with self.assertRaises(RespError) as ctx:
            Integer(2**63)
        self.assertEqual(ctx.exception.code, ERR_INTEGER_OVERFLOW)

    def test_integer_type(self):
        with self.assertRaises(RespError) as ctx:
            Integer(1.0)
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)

    def test_bool_normalised(self):
        self.assertEqual(Integer(True), Integer(1))
        self.assertIs(type(Integer(True).value), int)

    def test_cr_rejected_in_line_text(self):
        for cls in (SimpleString, Error):
            with self.subTest(cls=cls):
                with self.assertRaises(RespError) as ctx:
                    cls("a\r\nb")
                self.assertEqual(ctx.exception.code, ERR_MESSAGE)

    def test_bulk_requires_bytes(self):
        with self.assertRaises(RespError) as ctx:
            BulkString("text")
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)

    def test_array_requires_values(self):
        with self.assertRaises(RespError) as ctx:
            Array([1, 2])
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_TYPE)


# ── Round trip ────────────────────────────────────────────────

class TestRoundTrip(unittest.TestCase):
    SAMPLES = [
        simple(""),
        simple("OK"),
        simple("snow ☃ and a\nlone LF"),
        err("ERR wrong number of arguments"),
        i64(0),
        i64(-1),
        i64(2**63 - 1),
        i64(-(2**63)),
        bulk(b""),
        bulk(b"\x00\r\n\xff"),
        array(),
        array(NULL, array(), array(array(i64(1)), bulk("x")), err("E")),
        NULL,
    ]

    def test_decode_encode(self):
        for value in self.SAMPLES:
            with self.subTest(value=value):
                self.assertEqual(decode(encode(value)), value)

    def test_encode_decode_bytes(self):
        raw = b"*3\r\n:32\r\n+foobar\r\n$11\r\nreally bulk\r\n"
        self.assertEqual(encode(decode(raw)), raw)

    def test_bulk_of_every_length(self):
        for n in range(0, 300, 7):
            payload = bytes((i * 31) % 256 for i in range(n))
            with self.subTest(n=n):
                raw = b"$%d\r\n" % n + payload + b"\r\n"
                self.assertEqual(decode(raw), BulkString(payload))


# ── Streams ───────────────────────────────────────────────────

class _BrokenStream(io.RawIOBase):
    def read(self, *args):
        raise OSError("connection reset")

    def write(self, b):
        raise OSError("broken pipe")


class TestStreams(unittest.TestCase):
    def test_decode_from_reader(self):
        self.assertEqual(decode_from(io.BytesIO(b"+hello\r\n")), SimpleString("hello"))

    def test_decode_from_reader_checks_trailing(self):
        with self.assertRaises(RespError) as ctx:
            decode_from(io.BytesIO(b":1\r\n:2\r\n"))
        self.assertEqual(ctx.exception.code, ERR_TRAILING_CHARACTERS)

    def test_reader_failure(self):
        with self.assertRaises(RespError) as ctx:
            decode_from(_BrokenStream())
        self.assertEqual(ctx.exception.code, ERR_IO)

    def test_writer_failure(self):
        with self.assertRaises(RespError) as ctx:
            encode_to(i64(1), _BrokenStream())
        self.assertEqual(ctx.exception.code, ERR_IO)


if __name__ == "__main__":
    unittest.main()
