"""Literal facility: write a cell stream as a nested call expression.

    >>> from bcon import stream, doc, array, double, int32
    >>> s = stream("foo", double(1.1), "bar", doc("x", array("a", int32(1))))
    >>> s[:5]
    ('foo', MARKER, 2, 1.1, 'bar')

stream() flattens its arguments into a terminated tuple of cells.  Bare
strings become literal cells; the helper functions below return Typed
values, which flatten into a (MARKER, kind, payload) triple.  doc(),
array() and code_w_scope() build their sub-streams eagerly, so every
sub-stream is itself a finished, terminated tuple.

Nested structures can also be opened and closed in place with the
bracket singletons, the way a hand-written literal often reads:

    stream("foo", DOC_BEGIN, "bar", "baz", DOC_END)

is the same stream as ``stream("foo", doc("bar", "baz"))``.
"""

from __future__ import annotations

from typing import Any, List, NamedTuple, Optional, Tuple

from ._constants import (
    KIND_BCON_ARRAY,
    KIND_BCON_DOCUMENT,
    KIND_BINARY,
    KIND_BOOL,
    KIND_BSON_ARRAY,
    KIND_BSON_DOCUMENT,
    KIND_CODE,
    KIND_CODE_W_SCOPE,
    KIND_DATE_TIME,
    KIND_DBPOINTER,
    KIND_DOUBLE,
    KIND_INT32,
    KIND_INT64,
    KIND_MAXKEY,
    KIND_MINKEY,
    KIND_NULL,
    KIND_OID,
    KIND_REGEX,
    KIND_SYMBOL,
    KIND_TIMESTAMP,
    KIND_UNDEFINED,
    KIND_UTF8,
    SUBTYPE_BINARY,
)
from ._errors import ERR_TRUNCATED, ERR_UNRECOGNIZED_KIND, BconError
from ._tokens import MARKER
from ._types import Binary, Code, DBPointer, Document, Regex, Timestamp


class Typed(NamedTuple):
    kind: int
    payload: Any = None


class _Bracket:
    __slots__ = ("_name", "kind", "opens")

    def __init__(self, name: str, kind: int, opens: bool) -> None:
        self._name = name
        self.kind = kind
        self.opens = opens

    def __repr__(self) -> str:
        return self._name


DOC_BEGIN = _Bracket("DOC_BEGIN", KIND_BCON_DOCUMENT, True)
DOC_END = _Bracket("DOC_END", KIND_BCON_DOCUMENT, False)
ARRAY_BEGIN = _Bracket("ARRAY_BEGIN", KIND_BCON_ARRAY, True)
ARRAY_END = _Bracket("ARRAY_END", KIND_BCON_ARRAY, False)


def stream(*items: Any) -> Tuple[Any, ...]:
    """Flatten `items` into a terminated cell stream."""
    # Each frame is (kind of the open bracket, cells so far).  The root
    # frame has no bracket.
    frames: List[Tuple[Optional[int], List[Any]]] = [(None, [])]

    for item in items:
        cells = frames[-1][1]
        if isinstance(item, str):
            cells.append(item)
        elif isinstance(item, Typed):
            cells.extend((MARKER, item.kind, item.payload))
        elif isinstance(item, _Bracket):
            if item.opens:
                frames.append((item.kind, []))
                continue
            kind, inner = frames.pop()
            if kind != item.kind:
                raise BconError(ERR_UNRECOGNIZED_KIND,
                                "{!r} does not close an open bracket".format(item))
            inner.append(None)
            frames[-1][1].extend((MARKER, kind, tuple(inner)))
        else:
            raise BconError(ERR_UNRECOGNIZED_KIND,
                            "cannot put {} in a stream".format(type(item).__name__))

    if len(frames) > 1:
        raise BconError(ERR_TRUNCATED, "{} unclosed bracket(s)".format(len(frames) - 1))

    cells = frames[0][1]
    cells.append(None)
    return tuple(cells)


# ── Typed value helpers ───────────────────────────────────────

def utf8(value: str) -> Typed:
    return Typed(KIND_UTF8, value)


def double(value: float) -> Typed:
    return Typed(KIND_DOUBLE, value)


def int32(value: int) -> Typed:
    return Typed(KIND_INT32, value)


def int64(value: int) -> Typed:
    return Typed(KIND_INT64, value)


def boolean(value: bool) -> Typed:
    return Typed(KIND_BOOL, value)


def binary(subtype: int, data: bytes) -> Typed:
    return Typed(KIND_BINARY, Binary(subtype, data))


def generic_binary(data: bytes) -> Typed:
    return binary(SUBTYPE_BINARY, data)


def regex(pattern: str, flags: str = "") -> Typed:
    return Typed(KIND_REGEX, Regex(pattern, flags))


def dbpointer(collection: str, oid: Any) -> Typed:
    return Typed(KIND_DBPOINTER, DBPointer(collection, oid))


def code(text: str) -> Typed:
    return Typed(KIND_CODE, text)


def code_w_scope(text: str, *scope: Any) -> Typed:
    """Code plus a scope document written inline, like doc()."""
    return Typed(KIND_CODE_W_SCOPE, Code(text, stream(*scope)))


def symbol(value: str) -> Typed:
    return Typed(KIND_SYMBOL, value)


def timestamp(time: int, inc: int) -> Typed:
    return Typed(KIND_TIMESTAMP, Timestamp(time, inc))


def oid(value: Any = None) -> Typed:
    """ObjectId cell; with no argument a new id is generated at build time."""
    return Typed(KIND_OID, value)


def date_time(value: Any) -> Typed:
    """datetime (naive means UTC) or integer milliseconds since the epoch."""
    return Typed(KIND_DATE_TIME, value)


def doc(*items: Any) -> Typed:
    return Typed(KIND_BCON_DOCUMENT, stream(*items))


def array(*items: Any) -> Typed:
    return Typed(KIND_BCON_ARRAY, stream(*items))


def bson_document(document: Document) -> Typed:
    return Typed(KIND_BSON_DOCUMENT, document)


def bson_array(document: Document) -> Typed:
    return Typed(KIND_BSON_ARRAY, document)


NULL = Typed(KIND_NULL)
UNDEFINED = Typed(KIND_UNDEFINED)
MINKEY = Typed(KIND_MINKEY)
MAXKEY = Typed(KIND_MAXKEY)
