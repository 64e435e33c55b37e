#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Determinism invariants (property tests) for the bcon builder and printer.
#
# This runner:
# - generates random well-formed cell streams (all kinds, nested docs/arrays)
#   together with the Python value each one should decode to
# - converts each stream twice and renders it twice
# - checks the invariants below
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, json, random, datetime
from typing import Any, Dict, List, Tuple

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

import bcon
from bcon import (
    ERROR_MARKER, Binary, Code, DBPointer, Document, MaxKey, MinKey, ObjectId,
    Regex, Timestamp, Undefined,
)

SEED = int(os.environ.get("BCON_SEED", "1337"))
TRIALS = int(os.environ.get("BCON_TRIALS", "2000"))
MAX_GEN_DEPTH = int(os.environ.get("BCON_GEN_MAX_DEPTH", "5"))
MAX_KEYS = int(os.environ.get("BCON_GEN_MAX_KEYS", "6"))
MAX_STR = int(os.environ.get("BCON_GEN_MAX_STR", "16"))

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

random.seed(SEED)

def rand_str(allow_nul: bool = True) -> str:
    # Scalars only; no surrogates.  Keys are cstrings and may not hold NUL.
    out = []
    for _ in range(random.randint(0, MAX_STR)):
        r = random.random()
        if r < 0.75:
            out.append(chr(random.randint(0x20, 0x7E)))
        elif r < 0.90:
            out.append(chr(random.randint(0xA0, 0xD7FF)))
        elif r < 0.97:
            out.append(chr(random.randint(0x10000, 0x10FFFF)))
        elif allow_nul:
            out.append("\x00")
    return "".join(out)

def rand_oid() -> str:
    return "".join(random.choice("0123456789abcdef") for _ in range(24))

def rand_bytes() -> bytes:
    return bytes(random.getrandbits(8) for _ in range(random.randint(0, 24)))

# --- generators: (literal item, expected decoded value) ---

def gen_scalar() -> Tuple[Any, Any]:
    r = random.randint(0, 17)
    if r == 0:
        s = rand_str()
        return s, s
    if r == 1:
        s = rand_str()
        return bcon.utf8(s), s
    if r == 2:
        f = random.uniform(-1e9, 1e9)
        return bcon.double(f), f
    if r == 3:
        n = random.randint(-2 ** 31, 2 ** 31 - 1)
        return bcon.int32(n), n
    if r == 4:
        n = random.randint(-2 ** 63, 2 ** 63 - 1)
        return bcon.int64(n), n
    if r == 5:
        b = random.random() < 0.5
        return bcon.boolean(b), b
    if r == 6:
        return bcon.NULL, None
    if r == 7:
        return bcon.UNDEFINED, Undefined
    if r == 8:
        return (bcon.MINKEY, MinKey) if random.random() < 0.5 else (bcon.MAXKEY, MaxKey)
    if r == 9:
        h = rand_oid()
        return bcon.oid(h), ObjectId(h)
    if r == 10:
        ms = random.randint(-10 ** 11, 10 ** 13)
        return bcon.date_time(ms), EPOCH + datetime.timedelta(milliseconds=ms)
    if r == 11:
        t, i = random.randint(0, 2 ** 32 - 1), random.randint(0, 2 ** 32 - 1)
        return bcon.timestamp(t, i), Timestamp(t, i)
    if r == 12:
        sub, data = random.choice((0, 4, 5, 0x80)), rand_bytes()
        return bcon.binary(sub, data), Binary(sub, data)
    if r == 13:
        p, f = rand_str(allow_nul=False), "".join(random.sample("ilmsux", random.randint(0, 3)))
        return bcon.regex(p, f), Regex(p, "".join(sorted(f)))
    if r == 14:
        c, h = rand_str(), rand_oid()
        return bcon.dbpointer(c, h), DBPointer(c, ObjectId(h))
    if r == 15:
        s = rand_str()
        return bcon.code(s), Code(s)
    if r == 16:
        s = rand_str()
        return bcon.symbol(s), s
    s = rand_str()
    return bcon.utf8(s), s

def gen_keys() -> List[str]:
    keys = [rand_str(allow_nul=False) for _ in range(random.randint(0, MAX_KEYS))]
    return list(dict.fromkeys(keys))  # de-dup

def gen_items(depth: int, is_array: bool) -> Tuple[List[Any], Any]:
    """Items for stream()/doc()/array() and the expected decoded value."""
    items: List[Any] = []
    if is_array:
        values = []
        for _ in range(random.randint(0, MAX_KEYS)):
            item, exp = gen_value(depth)
            items.append(item)
            values.append(exp)
        return items, values
    out: Dict[str, Any] = {}
    for k in gen_keys():
        item, exp = gen_value(depth)
        items.extend((k, item))
        out[k] = exp
    return items, out

def gen_value(depth: int) -> Tuple[Any, Any]:
    if depth >= MAX_GEN_DEPTH:
        return gen_scalar()
    r = random.random()
    if r < 0.15:
        items, exp = gen_items(depth + 1, False)
        return bcon.doc(*items), exp
    if r < 0.25:
        items, exp = gen_items(depth + 1, True)
        return bcon.array(*items), exp
    if r < 0.30:
        items, exp = gen_items(depth + 1, False)
        c = rand_str()
        return bcon.code_w_scope(c, *items), Code(c, exp)
    if r < 0.35:
        items, exp = gen_items(depth + 1, False)
        return bcon.bson_document(bcon.convert(bcon.stream(*items))), exp
    return gen_scalar()

def gen_stream() -> Tuple[Tuple[Any, ...], bool, Any]:
    is_array = random.random() < 0.2
    items, exp = gen_items(0, is_array)
    if is_array:
        exp = {str(i): v for i, v in enumerate(exp)}
    return bcon.stream(*items), is_array, exp

def fail(label: str, trial: int, cells: Any) -> int:
    print("INVARIANT FAIL:", label)
    print("CTX:", json.dumps({"trial": trial, "seed": SEED}))
    print(bcon.render(cells)[:4000])
    return 1

def main() -> int:
    for t in range(TRIALS):
        cells, is_array, expected = gen_stream()

        # (1) Build determinism: same stream, same bytes
        try:
            d1 = bcon.convert(cells, is_array=is_array)
            d2 = bcon.convert(cells, is_array=is_array)
        except bcon.BconError as e:
            print(e.diagnostic)
            return fail("well-formed stream rejected [{}]: {}".format(e.code, e), t, cells)
        if bytes(d1) != bytes(d2):
            return fail("convert determinism", t, cells)

        # (2) Render idempotence, and no marker for a good stream
        r1 = bcon.render(cells, is_array=is_array)
        r2 = bcon.render(cells, is_array=is_array)
        if r1 != r2:
            return fail("render idempotence", t, cells)
        if ERROR_MARKER in r1:
            return fail("marker in well-formed rendering", t, cells)

        # (3) Reader accepts the bytes and gives back the generated values
        if Document.from_bytes(bytes(d1)) != d1:
            return fail("reader rejects builder output", t, cells)
        if d1.to_dict() != expected:
            return fail("decoded value mismatch", t, cells)

        # (4) Extended JSON is valid JSON
        try:
            json.loads(d1.to_json())
        except ValueError:
            return fail("to_json output not parseable", t, cells)

    print(f"OK: invariants passed for TRIALS={TRIALS} seed={SEED}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
