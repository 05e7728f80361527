"""RESP2 constants — frame signs, terminators, and normative limits.

Only the five classic frame types are defined here.  RESP3 adds more
signs (`_`, `#`, `,`, `%`, ...) which this codec deliberately rejects as
"expected sign" errors.
"""

from __future__ import annotations

# ── Frame signs (first byte of every frame) ──────────────────
# Stored as ints because the cursor walks bytes and `buf[i]` is an int.
SIGN_SIMPLE_STRING: int = ord("+")
SIGN_ERROR: int = ord("-")
SIGN_INTEGER: int = ord(":")
SIGN_BULK_STRING: int = ord("$")
SIGN_ARRAY: int = ord("*")

SIGNS = (
    SIGN_SIMPLE_STRING,
    SIGN_ERROR,
    SIGN_INTEGER,
    SIGN_BULK_STRING,
    SIGN_ARRAY,
)

# ── Terminators ──────────────────────────────────────────────
CRLF = b"\r\n"
CR: int = 0x0D
LF: int = 0x0A

# The only two negative-length frames the protocol allows.
NULL_BULK_STRING = b"$-1\r\n"
NULL_ARRAY = b"*-1\r\n"
NULL_LENGTH_LINE = b"-1"  # the length text both null frames carry

# ── Signed 64-bit integer range ──────────────────────────────
# `:` payloads are i64 on the wire; Python ints are unbounded, so every
# path that produces or consumes an integer frame range-checks explicitly.
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1

# ── Limits ───────────────────────────────────────────────────
# Redis caps a single bulk string at 512 MiB.  The declared length is
# checked against this before any payload read, so a crafted header
# cannot make us slice or allocate a huge buffer.
MAX_BULK_STRING_SIZE: int = 512 * 1024 * 1024

# Arrays may nest at most this deep (the root array is depth 1).  Both
# directions recurse once per level, so the cap keeps a hostile frame
# like `*1\r\n` x 10000 from exhausting the interpreter stack.
MAX_DEPTH: int = 64
