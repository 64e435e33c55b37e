#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Corruption fuzzing for the bcon builder and printer.
#
# Takes random well-formed streams (from invariants_runner) and damages one
# level of them:
#   A) drop the terminator
#   B) drop / duplicate a random cell
#   C) replace a kind tag with an unknown or wrong tag
#   D) insert a typed cell or a stray non-string cell
#   E) repeat an existing key
#
# For every damaged stream:
#   - convert() either succeeds or raises BconError (nothing else escapes)
#   - a failure never leaves a result behind and always carries a diagnostic
#   - render() never raises and shows at most one marker, with nothing after it
#   - a rendering with a marker means convert() must fail
#   - every failure shows exactly one marker
#
# Any violation prints a repro and exits non-zero.

import os, sys, json, random
from typing import Any, List, Optional

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import invariants_runner as gen  # also puts the repo root on sys.path

import bcon
from bcon import ERROR_MARKER, MARKER, KIND_BCON_ARRAY, KIND_BCON_DOCUMENT

SEED = int(os.environ.get("BCON_SEED", "4242"))
ROUNDS = int(os.environ.get("BCON_FUZZ_ROUNDS", "5000"))

random.seed(SEED)

NESTED = (KIND_BCON_DOCUMENT, KIND_BCON_ARRAY)

def nested_positions(cells: List[Any]) -> List[int]:
    """Indexes of payload cells that are sub-streams."""
    out = []
    i = 0
    while i < len(cells):
        if cells[i] is MARKER and i + 2 < len(cells):
            if cells[i + 1] in NESTED and isinstance(cells[i + 2], tuple):
                out.append(i + 2)
            i += 3
        else:
            i += 1
    return out

def damage_level(cells: List[Any]) -> List[Any]:
    r = random.randint(0, 6)
    if r == 0 and cells and cells[-1] is None:
        return cells[:-1]
    if r == 1 and cells:
        i = random.randrange(len(cells))
        return cells[:i] + cells[i + 1:]
    if r == 2 and cells:
        i = random.randrange(len(cells))
        return cells[:i + 1] + cells[i:]
    if r == 3:
        tags = [i + 1 for i, c in enumerate(cells) if c is MARKER and i + 1 < len(cells)]
        if tags:
            i = random.choice(tags)
            out = list(cells)
            out[i] = random.choice((0, 23, 999, -1, True, "UTF8", random.randint(1, 22)))
            return out
    if r == 4:
        i = random.randint(0, len(cells))
        return cells[:i] + [MARKER, bcon.KIND_INT32, 1] + cells[i:]
    if r == 5:
        i = random.randint(0, len(cells))
        return cells[:i] + [random.choice((1, 2.5, b"x", object()))] + cells[i:]
    strs = [c for c in cells if isinstance(c, str)]
    if strs:
        k = random.choice(strs)
        return cells[:-1] + [k, "dup"] + cells[-1:]
    return cells[:-1]

def damage(cells: List[Any]) -> List[Any]:
    # Recurse into a nested level now and then so faults land deep too.
    pos = nested_positions(cells)
    if pos and random.random() < 0.4:
        i = random.choice(pos)
        out = list(cells)
        out[i] = tuple(damage(list(cells[i])))
        return out
    return damage_level(cells)

def fail(label: str, rnd: int, cells: Any, text: Optional[str] = None) -> int:
    print("FUZZ FAIL:", label)
    print("CTX:", json.dumps({"round": rnd, "seed": SEED}))
    print("CELLS:", repr(cells)[:4000])
    if text is not None:
        print(text[:4000])
    return 1

def main() -> int:
    failures = 0
    for n in range(ROUNDS):
        cells, is_array, _ = gen.gen_stream()
        bad = damage(list(cells))

        try:
            text = bcon.render(bad, is_array=is_array)
        except Exception as e:  # render must never raise
            return fail("render raised {!r}".format(e), n, bad)

        markers = text.count(ERROR_MARKER)
        if markers > 1:
            return fail("more than one marker", n, bad, text)
        if markers and not text.endswith(ERROR_MARKER + "\n"):
            return fail("text after marker", n, bad, text)

        try:
            doc = bcon.convert(bad, is_array=is_array)
        except bcon.BconError as e:
            failures += 1
            if e.diagnostic != text:
                return fail("diagnostic differs from render()", n, bad, e.diagnostic)
            if markers != 1:
                return fail("failure [{}] without marker".format(e.code), n, bad, text)
            continue

        if markers:
            return fail("converted a stream that renders a marker", n, bad, text)
        if not isinstance(doc, bcon.Document):
            return fail("convert returned {!r}".format(type(doc)), n, bad)

    print(f"OK: fuzz passed for ROUNDS={ROUNDS} seed={SEED} ({failures} rejected)")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
