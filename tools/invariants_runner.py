#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Codec invariants (property tests) over randomly generated Value trees.
#
# This runner:
# - generates random Value trees (all five frame types plus null) within limits
# - checks that encoding is stable and that decode(encode(v)) == v
# - checks that every strict prefix of a frame fails with ERR_EOF
# - checks that any byte after a frame fails with ERR_TRAILING_CHARACTERS
# - checks the plain-Python mapping round trip under an explicit shape
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, base64, random
from typing import Any, List, Optional, Tuple

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

import resp2
from resp2 import ERR_EOF, ERR_TRAILING_CHARACTERS, RespError

SEED = int(os.environ.get("RESP2_SEED", "1337"))
TRIALS = int(os.environ.get("RESP2_TRIALS", "2000"))
MAX_GEN_DEPTH = int(os.environ.get("RESP2_GEN_MAX_DEPTH", "5"))
MAX_LIST = int(os.environ.get("RESP2_GEN_MAX_LIST", "6"))
MAX_STR = int(os.environ.get("RESP2_GEN_MAX_STR", "24"))
MAX_BYTES = int(os.environ.get("RESP2_GEN_MAX_BYTES", "32"))

INT64_EDGES = [0, 1, -1, 2**31, -(2**31), 2**63 - 1, -(2**63)]


def b64(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def rand_text() -> str:
    # Line text: no CR, an occasional lone LF, non-ASCII scalars but no surrogates.
    out = []
    for _ in range(random.randint(0, MAX_STR)):
        r = random.random()
        if r < 0.75:
            out.append(chr(random.randint(0x20, 0x7E)))
        elif r < 0.80:
            out.append("\n")
        elif r < 0.95:
            out.append(chr(random.randint(0xA0, 0xD7FF)))
        else:
            out.append(chr(random.randint(0x10000, 0x10FFFF)))
    return "".join(out)


def rand_bytes() -> bytes:
    n = random.randint(0, MAX_BYTES)
    data = bytes(random.getrandbits(8) for _ in range(n))
    if n and random.random() < 0.2:
        # CRLF inside a payload must not end the frame.
        data = data[: n // 2] + b"\r\n" + data[n // 2:]
    return data


def rand_int() -> int:
    if random.random() < 0.3:
        return random.choice(INT64_EDGES)
    return random.randint(-(2**63), 2**63 - 1)


def gen_value(depth: int) -> resp2.Value:
    r = random.random()
    if depth < MAX_GEN_DEPTH and r < 0.30:
        return resp2.Array(gen_value(depth + 1) for _ in range(random.randint(0, MAX_LIST)))
    r = random.random()
    if r < 0.20:
        return resp2.simple(rand_text())
    if r < 0.30:
        return resp2.err(rand_text())
    if r < 0.55:
        return resp2.i64(rand_int())
    if r < 0.90:
        return resp2.bulk(rand_bytes())
    return resp2.NULL


def gen_shaped() -> Tuple[Any, Any]:
    """A plain Python value together with the shape that encodes it losslessly."""
    r = random.random()
    if r < 0.2:
        return rand_int(), int
    if r < 0.4:
        return rand_text(), str
    if r < 0.6:
        return rand_bytes(), bytes
    if r < 0.8:
        items = [rand_text() if random.random() < 0.8 else None for _ in range(random.randint(0, MAX_LIST))]
        return items, List[Optional[str]]
    if random.random() < 0.5:
        return None, Optional[List[int]]
    return [rand_int() for _ in range(random.randint(0, MAX_LIST))], Optional[List[int]]


def expect_error(code: str, raw: bytes, pos: Optional[int] = None) -> Optional[str]:
    """Return a failure description, or None when `raw` fails with `code`."""
    try:
        resp2.decode(raw)
    except RespError as e:
        if e.code != code or (pos is not None and e.pos != pos):
            return "got {} at {}, expected {} at {}".format(e.code, e.pos, code, pos)
        return None
    return "decoded without error, expected {}".format(code)


def fail(label: str, value: Any, detail: str = "") -> int:
    print("INVARIANT FAIL:", label, detail)
    print("VALUE:", repr(value)[:2000])
    return 1


def main(trials: int = TRIALS, seed: int = SEED) -> int:
    random.seed(seed)

    for t in range(trials):
        v = gen_value(0)

        # (1) Encode stability
        raw = resp2.encode(v)
        if raw != resp2.encode(v):
            return fail("encode stability", v)

        # (2) Round trip through the Value model
        back = resp2.decode(raw)
        if back != v:
            return fail("round trip", v, b64(raw))
        if resp2.encode(back) != raw:
            return fail("re-encode", v, b64(raw))

        # (3) Every strict prefix is EOF; only check a few cut points on large frames
        cuts = range(len(raw)) if len(raw) <= 64 else random.sample(range(len(raw)), 64)
        for cut in cuts:
            problem = expect_error(ERR_EOF, raw[:cut])
            if problem:
                return fail("prefix EOF", v, "cut={} {}".format(cut, problem))

        # (4) Anything after the root frame is trailing
        extra = bytes([random.getrandbits(8)])
        problem = expect_error(ERR_TRAILING_CHARACTERS, raw + extra, pos=len(raw))
        if problem:
            return fail("trailing", v, problem)

        # (5) Plain values under an explicit shape
        plain, shape = gen_shaped()
        encoded = resp2.encode_into(plain, shape)
        if resp2.decode_into(encoded, shape) != plain:
            return fail("shaped round trip", plain, "shape={} trial={}".format(shape, t))

    print(f"OK: invariants passed for TRIALS={trials} seed={seed}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
