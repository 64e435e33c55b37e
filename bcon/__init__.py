"""bcon: build BSON documents from flat BCON cell streams.

A BCON stream describes a document as one flat sequence of cells: keys
and string values are plain strings, typed values are a (MARKER, kind,
payload) triple, and None ends the stream.  The helpers in this package
write such streams from a nested call expression.

Quick start:
    >>> from bcon import stream, doc, array, double, int32, convert
    >>> s = stream("foo", "bar", "n", double(1.1), "sub", doc("xs", array(int32(1))))
    >>> convert(s).to_dict()
    {'foo': 'bar', 'n': 1.1, 'sub': {'xs': [1]}}

For debugging, render() shows the shape of a stream, and on failure
convert() attaches the same rendering with an inline marker at the
first fault:
    >>> print(render(stream("foo", "bar", "n", double(1.1))), end="")
    {
      "foo" : "bar",
      "n" : DOUBLE,
    }
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ._builder import build, convert
from ._constants import (
    ERROR_MARKER,
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
    MAX_DEPTH,
    SUBTYPE_BINARY,
    SUBTYPE_FUNCTION,
    SUBTYPE_MD5,
    SUBTYPE_USER,
    SUBTYPE_UUID,
    __version__,
)
from ._errors import (
    ERR_APPEND,
    ERR_BSON,
    ERR_DANGLING_KEY,
    ERR_DUP_KEY,
    ERR_EXPECTED_KEY,
    ERR_LIMIT_DEPTH,
    ERR_TRUNCATED,
    ERR_UNRECOGNIZED_KIND,
    BconError,
)
from ._json_adapter import json_to_stream, parse_stream
from ._literal import (
    ARRAY_BEGIN,
    ARRAY_END,
    DOC_BEGIN,
    DOC_END,
    MAXKEY,
    MINKEY,
    NULL,
    UNDEFINED,
    Typed,
    array,
    binary,
    boolean,
    bson_array,
    bson_document,
    code,
    code_w_scope,
    date_time,
    dbpointer,
    doc,
    double,
    generic_binary,
    int32,
    int64,
    oid,
    regex,
    stream,
    symbol,
    timestamp,
    utf8,
)
from ._printer import render
from ._registry import describe, label
from ._tokens import MARKER, iter_tokens, next_token
from ._types import (
    Binary,
    Code,
    DBPointer,
    Document,
    MaxKey,
    MinKey,
    ObjectId,
    Regex,
    Timestamp,
    Undefined,
)
from ._writer import DocumentWriter

__all__ = [
    # Conversion
    "convert",
    "convert_array",
    "render",
    "to_bson",
    "to_json",
    "build",
    # Cells and tokens
    "MARKER",
    "next_token",
    "iter_tokens",
    "describe",
    "label",
    # Literal facility
    "stream",
    "Typed",
    "utf8",
    "double",
    "int32",
    "int64",
    "boolean",
    "binary",
    "generic_binary",
    "regex",
    "dbpointer",
    "code",
    "code_w_scope",
    "symbol",
    "timestamp",
    "oid",
    "date_time",
    "doc",
    "array",
    "bson_document",
    "bson_array",
    "NULL",
    "UNDEFINED",
    "MINKEY",
    "MAXKEY",
    "DOC_BEGIN",
    "DOC_END",
    "ARRAY_BEGIN",
    "ARRAY_END",
    # JSON descriptions of streams
    "json_to_stream",
    "parse_stream",
    # BSON side
    "Document",
    "DocumentWriter",
    "ObjectId",
    "Binary",
    "Regex",
    "DBPointer",
    "Code",
    "Timestamp",
    "Undefined",
    "MinKey",
    "MaxKey",
    # Exception
    "BconError",
    # Error codes
    "ERR_UNRECOGNIZED_KIND",
    "ERR_EXPECTED_KEY",
    "ERR_DANGLING_KEY",
    "ERR_TRUNCATED",
    "ERR_APPEND",
    "ERR_DUP_KEY",
    "ERR_LIMIT_DEPTH",
    "ERR_BSON",
    # Kind tags
    "KIND_UTF8",
    "KIND_DOUBLE",
    "KIND_BCON_DOCUMENT",
    "KIND_BCON_ARRAY",
    "KIND_BINARY",
    "KIND_UNDEFINED",
    "KIND_OID",
    "KIND_BOOL",
    "KIND_DATE_TIME",
    "KIND_NULL",
    "KIND_REGEX",
    "KIND_DBPOINTER",
    "KIND_CODE",
    "KIND_SYMBOL",
    "KIND_CODE_W_SCOPE",
    "KIND_INT32",
    "KIND_TIMESTAMP",
    "KIND_INT64",
    "KIND_MAXKEY",
    "KIND_MINKEY",
    "KIND_BSON_DOCUMENT",
    "KIND_BSON_ARRAY",
    # Misc constants
    "ERROR_MARKER",
    "MAX_DEPTH",
    "SUBTYPE_BINARY",
    "SUBTYPE_FUNCTION",
    "SUBTYPE_UUID",
    "SUBTYPE_MD5",
    "SUBTYPE_USER",
]


# ── Conveniences ──────────────────────────────────────────────

def convert_array(cells: Sequence[Any]) -> Document:
    """convert() for a top-level stream in array mode (keys "0", "1", ...)."""
    return convert(cells, is_array=True)


def to_bson(cells: Sequence[Any]) -> bytes:
    """Raw BSON bytes for a document-mode stream."""
    return bytes(convert(cells))


def to_json(cells: Sequence[Any], indent: Optional[int] = None) -> str:
    """Extended JSON for a document-mode stream.

    The debugging counterpart of render(): render() shows the stream's
    shape and never fails, this shows the values and raises like convert().
    """
    return convert(cells).to_json(indent=indent)
