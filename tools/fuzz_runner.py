#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Robustness fuzzing for the decoder and the JSON encoder.
#
# Generates three fuzz categories:
#   A) valid frames with random byte mutations -> decode
#   B) byte soup assembled from RESP tokens -> decode
#   C) random JSON texts (valid + invalid) -> encode_json
#
# Every input must either succeed or raise RespError with a known code;
# anything that succeeds must survive a second encode/decode unchanged.
# Any other outcome prints a repro payload and exits non-zero.

import os, sys, json, base64, random
from typing import Any, Dict

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(ROOT, "implementations", "python"))

import resp2
from resp2 import RespError
from resp2._errors import ALL_CODES

SEED = int(os.environ.get("RESP2_SEED", "4242"))
ROUNDS = int(os.environ.get("RESP2_ROUNDS", "5000"))


def b64(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def crash(label: str, exc: BaseException, ctx: Dict[str, Any]) -> None:
    print("CRASH:", label, "{}: {}".format(type(exc).__name__, exc))
    print("CTX:", json.dumps(ctx, ensure_ascii=False)[:4000])
    raise SystemExit(1)


# --- generators ---

def rand_ascii(nmax: int) -> str:
    n = random.randint(0, nmax)
    return "".join(chr(random.randint(0x20, 0x7E)) for _ in range(n))


def rand_frame(depth: int = 0) -> bytes:
    r = random.random()
    if depth < 4 and r < 0.3:
        items = [rand_frame(depth + 1) for _ in range(random.randint(0, 4))]
        return b"*%d\r\n" % len(items) + b"".join(items)
    r = random.random()
    if r < 0.2:
        return b"+" + rand_ascii(12).encode("ascii") + b"\r\n"
    if r < 0.3:
        return b"-ERR " + rand_ascii(12).encode("ascii") + b"\r\n"
    if r < 0.5:
        return b":%d\r\n" % random.randint(-(2**63), 2**63 - 1)
    if r < 0.9:
        data = bytes(random.getrandbits(8) for _ in range(random.randint(0, 16)))
        return b"$%d\r\n" % len(data) + data + b"\r\n"
    return random.choice([b"$-1\r\n", b"*-1\r\n"])


def mutate(raw: bytes) -> bytes:
    buf = bytearray(raw)
    for _ in range(random.randint(1, 3)):
        op = random.random()
        i = random.randint(0, len(buf)) if buf else 0
        if op < 0.4 and buf:
            buf[min(i, len(buf) - 1)] = random.getrandbits(8)
        elif op < 0.7:
            buf.insert(i, random.choice(b"\r\n+-:$*0123456789"))
        elif buf:
            del buf[min(i, len(buf) - 1)]
    return bytes(buf)


TOKENS = [b"+", b"-", b":", b"$", b"*", b"\r", b"\n", b"\r\n", b"-1", b"0", b"3",
          b"536870913", b"9223372036854775808", b"abc", b"\xff", b"\xc3(", b" ",
          b"-01", b"*1\r\n" * 40]


def rand_soup() -> bytes:
    return b"".join(random.choice(TOKENS) for _ in range(random.randint(0, 12)))


def rand_json_valid() -> bytes:
    # JSON with a RESP2 frame: arrays, strings, integers, booleans, null
    def gen(depth: int):
        r = random.random()
        if depth > 4 or r < 0.4:
            return random.choice([rand_ascii(12), random.randint(-(2**63), 2**63 - 1),
                                  True, False, None])
        return [gen(depth + 1) for _ in range(random.randint(0, 4))]
    return json.dumps(gen(0), ensure_ascii=False).encode("utf-8")


def rand_json_invalid() -> bytes:
    # Small set of known-invalid templates; keeps it deterministic.
    templates = [
        b'["a",',                  # unterminated
        b'["a",]',                 # trailing comma
        b'[1.5]',                  # float (ERR_UNEXPECTED_TYPE)
        b'{"a": 1}',               # object (ERR_UNEXPECTED_TYPE)
        b'9223372036854775808',    # out of i64 range (ERR_INTEGER_OVERFLOW)
        b'["\\ud800"]',            # lone surrogate (ERR_UTF8)
        b'"\xff"',                 # not UTF-8 (ERR_UTF8)
        b'NaN',
        b'[' * 100 + b']' * 100,   # nested past MAX_DEPTH (ERR_LIMIT_DEPTH)
    ]
    t = random.choice(templates)
    if random.random() < 0.3:
        t += b'xyz'
    return t


def check_decode(label: str, raw: bytes, i: int) -> None:
    try:
        value = resp2.decode(raw)
    except RespError as e:
        if e.code not in ALL_CODES:
            crash(label, e, {"round": i, "input_b64": b64(raw)})
        return
    except Exception as e:
        crash(label, e, {"round": i, "input_b64": b64(raw)})
        return
    again = resp2.encode(value)
    if resp2.decode(again) != value:
        print("MISMATCH:", label, "re-decode differs")
        print("CTX:", json.dumps({"round": i, "input_b64": b64(raw)}))
        raise SystemExit(1)


def main(rounds: int = ROUNDS, seed: int = SEED) -> int:
    random.seed(seed)

    for i in range(rounds):
        r = random.random()

        # A) mutated valid frames
        if r < 0.45:
            check_decode("A mutated frame", mutate(rand_frame()), i)
            continue

        # B) token soup
        if r < 0.75:
            check_decode("B token soup", rand_soup(), i)
            continue

        # C) JSON encoder (valid + invalid mix)
        raw = rand_json_valid() if random.random() < 0.7 else rand_json_invalid()
        try:
            frame = resp2.encode_json(raw)
        except RespError as e:
            if e.code not in ALL_CODES:
                crash("C encode_json", e, {"round": i, "input_b64": b64(raw)})
            continue
        except Exception as e:
            crash("C encode_json", e, {"round": i, "input_b64": b64(raw)})
        check_decode("C encode_json output", frame, i)

    print(f"OK: fuzz rounds={rounds} seed={seed} (no crashes)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
