"""RESP2 conformance test suite.

Runs all vectors from conformance_vectors.json against conformance_expected.json.

Each vector is raw input bytes plus a mode:
    decode       RESP bytes → Value, re-encoded with encode()
    encode_json  JSON bytes → one RESP frame

Expected results are {"resp_b64": ...} or {"err": CODE[, "pos": N]}.

Usage:
    python tests/test_conformance.py [--vectors-dir DIR]
    python -m pytest tests/test_conformance.py -v
    RESP2_VECTORS_DIR=../../conformance python tests/test_conformance.py
"""

from __future__ import annotations

import argparse
import base64
import json
import os
import sys
import unittest
from typing import Any, Dict, List, Optional, Tuple

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from resp2 import RespError, decode, encode, encode_json

# ── Locate conformance data ───────────────────────────────────

_VECTORS_DIR: Optional[str] = os.environ.get("RESP2_VECTORS_DIR", None)


def _find_vectors_dir() -> str:
    if _VECTORS_DIR:
        return _VECTORS_DIR
    candidates = [
        os.path.join(os.path.dirname(__file__), "..", "..", "..", "conformance"),
        os.path.join(os.path.dirname(__file__), "..", "..", "conformance"),
        os.path.join(os.path.dirname(__file__), "..", "conformance"),
    ]
    for d in candidates:
        if os.path.isfile(os.path.join(d, "conformance_vectors.json")):
            return d
    raise FileNotFoundError(
        "Cannot find conformance vectors. Set RESP2_VECTORS_DIR or --vectors-dir."
    )


def _load_data() -> Tuple[List[dict], Dict[str, dict], str]:
    """Load vectors and expected values.  Returns (vectors, expected, version)."""
    d = _find_vectors_dir()
    with open(os.path.join(d, "conformance_vectors.json"), "r", encoding="utf-8") as f:
        doc = json.load(f)
    with open(os.path.join(d, "conformance_expected.json"), "r", encoding="utf-8") as f:
        expected = json.load(f)["expected"]
    return doc["vectors"], expected, doc.get("version", "?")


def _run_vector(vec: dict) -> Dict[str, Any]:
    """Execute one conformance vector.  Returns {"resp_b64": ...} or {"err": ...}."""
    mode = vec["mode"]
    raw = base64.b64decode(vec["input_b64"])

    try:
        if mode == "decode":
            out = encode(decode(raw))
        elif mode == "encode_json":
            out = encode_json(raw)
        else:
            return {"err": "UNKNOWN_MODE"}
    except RespError as e:
        got: Dict[str, Any] = {"err": e.code}
        if e.pos is not None:
            got["pos"] = e.pos
        return got
    return {"resp_b64": base64.b64encode(out).decode("ascii")}


# ── unittest integration ──────────────────────────────────────

class ConformanceTests(unittest.TestCase):
    """Dynamically generated: one test method per vector."""
    pass


def _make_test(vec: dict, exp: dict):
    def test_fn(self: unittest.TestCase) -> None:
        got = _run_vector(vec)
        self.assertEqual(got, exp,
                         "{}: got {} expected {}".format(vec["test_id"], got, exp))
    return test_fn


# Attach test methods at import time.
try:
    _vectors, _expected, _version = _load_data()
    for _vec in _vectors:
        _tid = _vec["test_id"].replace("-", "_")
        _fn = _make_test(_vec, _expected[_vec["test_id"]])
        _fn.__name__ = "test_{}".format(_tid)
        _fn.__qualname__ = "ConformanceTests.test_{}".format(_tid)
        setattr(ConformanceTests, "test_{}".format(_tid), _fn)
except FileNotFoundError:
    pass


# ── Standalone CLI runner ─────────────────────────────────────

def main() -> None:
    global _VECTORS_DIR

    parser = argparse.ArgumentParser(description="RESP2 conformance runner")
    parser.add_argument("--vectors-dir", default=None,
                        help="Directory with conformance vector files")
    args, _remaining = parser.parse_known_args()

    if args.vectors_dir:
        _VECTORS_DIR = args.vectors_dir
        os.environ["RESP2_VECTORS_DIR"] = args.vectors_dir

    vectors, expected, version = _load_data()

    by_mode: Dict[str, List[int]] = {}
    failures: List[Tuple[dict, dict, dict]] = []

    for vec in vectors:
        got = _run_vector(vec)
        exp = expected[vec["test_id"]]
        counts = by_mode.setdefault(vec["mode"], [0, 0])
        counts[1] += 1
        if got == exp:
            counts[0] += 1
        else:
            failures.append((vec, got, exp))

    for mode, (ok, total) in sorted(by_mode.items()):
        print("CONFORMANCE {} [{}]: {}/{} PASS".format(version, mode, ok, total))
    for vec, got, exp in failures:
        print("  FAIL {} input_b64={}: got={} expected={}".format(
            vec["test_id"], vec["input_b64"], got, exp))

    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
