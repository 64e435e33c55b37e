"""Pretty printer: an indented debug view of a cell stream.

Walks the stream exactly the way the builder does, but writes text
instead of BSON.  Scalar kinds show as their registry label (this is a
view of the stream's shape, not a value dump); literal strings are
quoted; nested documents and arrays are expanded.

    {
      "foo" : "bar",
      "n" : DOUBLE,
      "sub" : [
        "x",
      ],
    }

Every value is also offered to a scratch DocumentWriter, so a value the
builder's writer would reject (an int32 out of range, a NUL in a key) is
a fault here too.  At the first fault the printer writes "<ERROR HERE>"
and stops at every level, so a stream that convert() rejects renders
with exactly one marker and nothing after it.  render() never raises on
stream content.
"""

from __future__ import annotations

import json
from typing import Any, List, Sequence, Set

from ._constants import (
    ERROR_MARKER,
    INDENT,
    KIND_BCON_ARRAY,
    KIND_BCON_DOCUMENT,
    KIND_CODE_W_SCOPE,
    MAX_DEPTH,
    TOKEN_END,
    TOKEN_ERROR,
    TOKEN_LITERAL,
)
from ._errors import BconError
from ._registry import describe
from ._tokens import next_token
from ._writer import DocumentWriter


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _check_append(kind: int, key: str, val: Any) -> None:
    """Make the writer call the builder would make; raises BconError."""
    scratch = DocumentWriter()
    if kind == TOKEN_LITERAL:
        scratch.append_utf8(key, val)
    elif kind == KIND_BCON_DOCUMENT:
        scratch.begin_document(key)
    elif kind == KIND_BCON_ARRAY:
        scratch.begin_array(key)
    elif kind == KIND_CODE_W_SCOPE:
        # the scope itself is checked by the recursive render
        scratch.append_code(key, val.code)
    else:
        describe(kind).append(scratch, key, val)


def _render_value(kind: int, key: str, value: Any, indent: int, depth: int,
                  out: List[str]) -> bool:
    try:
        val = value if kind == TOKEN_LITERAL else describe(kind).extract(value)
        _check_append(kind, key, val)
    except BconError:
        out.append(ERROR_MARKER)
        return False

    if kind == TOKEN_LITERAL:
        out.append(_quote(val))
        return True

    if kind in (KIND_BCON_DOCUMENT, KIND_BCON_ARRAY):
        return _render(val, kind == KIND_BCON_ARRAY, indent + INDENT, depth + 1, out)

    label = describe(kind).label
    if kind == KIND_CODE_W_SCOPE and val.scope is not None:
        out.append(label + "(")
        if not _render(val.scope, False, indent + INDENT, depth + 1, out):
            return False
        out.append(")")
        return True

    out.append(label)
    return True


def _render(stream: Sequence[Any], is_array: bool, indent: int, depth: int,
            out: List[str]) -> bool:
    """Append the rendering of one level to `out`.  False after a fault."""
    out.append("[\n" if is_array else "{\n")
    pad = " " * (indent + INDENT)

    if depth > MAX_DEPTH:
        out.append(pad + ERROR_MARKER)
        return False

    cursor = 0
    index = 0
    seen: Set[str] = set()

    while True:
        kind, value, cursor = next_token(stream, cursor)

        if is_array:
            if kind == TOKEN_END:
                break
            out.append(pad)
            key = str(index)
        else:
            if kind == TOKEN_END:
                break
            out.append(pad)
            if kind != TOKEN_LITERAL or value in seen:
                out.append(ERROR_MARKER)
                return False
            key = value
            seen.add(key)
            out.append("{} : ".format(_quote(key)))

            kind, value, cursor = next_token(stream, cursor)
            if kind == TOKEN_END:
                # dangling key
                out.append(ERROR_MARKER)
                return False

        if kind == TOKEN_ERROR:
            out.append(ERROR_MARKER)
            return False

        if not _render_value(kind, key, value, indent, depth, out):
            return False
        out.append(",\n")
        index += 1

    out.append(" " * indent + ("]" if is_array else "}"))
    return True


def render(stream: Sequence[Any], is_array: bool = False) -> str:
    """Render a cell stream as indented text, ending with a newline."""
    out: List[str] = []
    _render(stream, is_array, 0, 0, out)
    return "".join(out) + "\n"
