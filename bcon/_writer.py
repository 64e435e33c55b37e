"""BSON document writer: the append interface the builder drives.

Layout (bsonspec.org, 1.1):

    document := int32 total_length, element*, 0x00
    element  := type byte, cstring key, value

All integers are little-endian.  Lengths include themselves and the
trailing NUL.  Keys are cstrings, so they may not contain NUL; string
values are length-prefixed and may.

A child document or array is opened with begin_document()/begin_array(),
which hands back a fresh writer, and closed with the matching end_*()
call on the parent.  The parent refuses appends while a child is open,
since elements must land after the child in byte order.
"""

from __future__ import annotations

import struct
from typing import List, Optional, Tuple

from ._constants import (
    BSON_ARRAY,
    BSON_BINARY,
    BSON_BOOL,
    BSON_CODE,
    BSON_CODE_W_SCOPE,
    BSON_DATE_TIME,
    BSON_DBPOINTER,
    BSON_DOCUMENT,
    BSON_DOUBLE,
    BSON_INT32,
    BSON_INT64,
    BSON_MAXKEY,
    BSON_MINKEY,
    BSON_NULL,
    BSON_OID,
    BSON_REGEX,
    BSON_STRING,
    BSON_SYMBOL,
    BSON_TIMESTAMP,
    BSON_UNDEFINED,
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    UINT32_MAX,
)
from ._errors import ERR_APPEND, ERR_BSON, BconError
from ._reader import validate_document
from ._types import Document, ObjectId


# ── Primitive encoders ────────────────────────────────────────

def _utf8(s: str) -> bytes:
    if not isinstance(s, str):
        raise BconError(ERR_APPEND, "expected str, got {}".format(type(s).__name__))
    try:
        return s.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates survive in Python str but have no UTF-8 form.
        raise BconError(ERR_APPEND, "string is not valid unicode: {!r}".format(s))


def _cstring(s: str) -> bytes:
    raw = _utf8(s)
    if b"\x00" in raw:
        raise BconError(ERR_APPEND, "cstring may not contain NUL: {!r}".format(s))
    return raw + b"\x00"


def _string(s: str) -> bytes:
    raw = _utf8(s)
    return _i32(len(raw) + 1) + raw + b"\x00"


def _i32(n: int) -> bytes:
    if n < INT32_MIN or n > INT32_MAX:
        raise BconError(ERR_APPEND, "int32 out of range: {}".format(n))
    return struct.pack("<i", n)


def _i64(n: int) -> bytes:
    if n < INT64_MIN or n > INT64_MAX:
        raise BconError(ERR_APPEND, "int64 out of range: {}".format(n))
    return struct.pack("<q", n)


def _u32(n: int) -> int:
    if n < 0 or n > UINT32_MAX:
        raise BconError(ERR_APPEND, "uint32 out of range: {}".format(n))
    return n


def _check_int(val: object, what: str) -> int:
    # bool is a subclass of int; True must not sneak in as 1.
    if isinstance(val, bool) or not isinstance(val, int):
        raise BconError(ERR_APPEND,
                        "{} needs an int, got {}".format(what, type(val).__name__))
    return val


def _document_bytes(doc: object, what: str) -> bytes:
    # Documents arrive by reference and Document() does not validate.
    if not isinstance(doc, Document):
        raise BconError(ERR_APPEND, "{} must be a Document".format(what))
    data = bytes(doc)
    try:
        validate_document(data)
    except BconError as e:
        if e.code != ERR_BSON:
            raise
        raise BconError(ERR_APPEND, "{} is not valid BSON: {}".format(what, e))
    return data


# ── Writer ────────────────────────────────────────────────────

class DocumentWriter:
    """Accumulates BSON elements and produces a Document."""

    def __init__(self, is_array: bool = False) -> None:
        self.is_array = is_array
        self._parts: List[bytes] = []
        self._child: Optional[Tuple[int, str, "DocumentWriter"]] = None
        self._finished = False

    def _append(self, etype: int, key: str, value: bytes) -> None:
        if self._finished:
            raise BconError(ERR_APPEND, "writer already finished")
        if self._child is not None:
            raise BconError(ERR_APPEND,
                            "child {!r} is still open".format(self._child[1]))
        self._parts.append(bytes([etype]) + _cstring(key) + value)

    def finish(self) -> Document:
        """Close the document and return it.  The writer is spent after."""
        if self._child is not None:
            raise BconError(ERR_APPEND,
                            "child {!r} is still open".format(self._child[1]))
        body = b"".join(self._parts)
        self._finished = True
        return Document(_i32(len(body) + 5) + body + b"\x00")

    # ── Scalars ──

    def append_utf8(self, key: str, value: str) -> None:
        self._append(BSON_STRING, key, _string(value))

    def append_double(self, key: str, value: float) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise BconError(ERR_APPEND,
                            "double needs a number, got {}".format(type(value).__name__))
        try:
            packed = struct.pack("<d", float(value))
        except OverflowError:
            raise BconError(ERR_APPEND, "integer too large for double: {}".format(value))
        self._append(BSON_DOUBLE, key, packed)

    def append_int32(self, key: str, value: int) -> None:
        self._append(BSON_INT32, key, _i32(_check_int(value, "int32")))

    def append_int64(self, key: str, value: int) -> None:
        self._append(BSON_INT64, key, _i64(_check_int(value, "int64")))

    def append_bool(self, key: str, value: bool) -> None:
        if not isinstance(value, bool):
            raise BconError(ERR_APPEND,
                            "bool needs a bool, got {}".format(type(value).__name__))
        self._append(BSON_BOOL, key, b"\x01" if value else b"\x00")

    def append_null(self, key: str) -> None:
        self._append(BSON_NULL, key, b"")

    def append_undefined(self, key: str) -> None:
        self._append(BSON_UNDEFINED, key, b"")

    def append_minkey(self, key: str) -> None:
        self._append(BSON_MINKEY, key, b"")

    def append_maxkey(self, key: str) -> None:
        self._append(BSON_MAXKEY, key, b"")

    def append_oid(self, key: str, oid: ObjectId) -> None:
        if not isinstance(oid, ObjectId):
            raise BconError(ERR_APPEND, "oid needs an ObjectId")
        self._append(BSON_OID, key, oid.binary)

    def append_date_time(self, key: str, millis: int) -> None:
        """UTC datetime as signed milliseconds since the epoch."""
        self._append(BSON_DATE_TIME, key, _i64(_check_int(millis, "date_time")))

    def append_timestamp(self, key: str, time: int, increment: int) -> None:
        # Low word first: the uint64 is (time << 32) | increment.
        t = _u32(_check_int(time, "timestamp"))
        i = _u32(_check_int(increment, "increment"))
        self._append(BSON_TIMESTAMP, key, struct.pack("<II", i, t))

    # ── Compound scalars ──

    def append_binary(self, key: str, subtype: int, data: bytes) -> None:
        subtype = _check_int(subtype, "binary subtype")
        if subtype < 0 or subtype > 0xFF:
            raise BconError(ERR_APPEND, "binary subtype out of range: {}".format(subtype))
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise BconError(ERR_APPEND, "binary needs bytes")
        data = bytes(data)
        self._append(BSON_BINARY, key, _i32(len(data)) + bytes([subtype]) + data)

    def append_symbol(self, key: str, value: str) -> None:
        self._append(BSON_SYMBOL, key, _string(value))

    def append_regex(self, key: str, pattern: str, flags: str = "") -> None:
        # Flags are stored sorted, as every driver does.
        flags = "".join(sorted(_utf8(flags).decode("utf-8")))
        self._append(BSON_REGEX, key, _cstring(pattern) + _cstring(flags))

    def append_dbpointer(self, key: str, collection: str, oid: ObjectId) -> None:
        if not isinstance(oid, ObjectId):
            raise BconError(ERR_APPEND, "dbpointer needs an ObjectId")
        self._append(BSON_DBPOINTER, key, _string(collection) + oid.binary)

    def append_code(self, key: str, code: str) -> None:
        self._append(BSON_CODE, key, _string(code))

    def append_code_w_scope(self, key: str, code: str, scope: Document) -> None:
        body = _string(code) + _document_bytes(scope, "code scope")
        self._append(BSON_CODE_W_SCOPE, key, _i32(len(body) + 4) + body)

    # ── Pre-built children ──

    def append_document(self, key: str, doc: Document) -> None:
        self._append(BSON_DOCUMENT, key, _document_bytes(doc, "document"))

    def append_array(self, key: str, doc: Document) -> None:
        self._append(BSON_ARRAY, key, _document_bytes(doc, "array"))

    # ── Children built in place ──

    def _begin(self, etype: int, key: str, is_array: bool) -> "DocumentWriter":
        if self._child is not None:
            raise BconError(ERR_APPEND,
                            "child {!r} is still open".format(self._child[1]))
        _cstring(key)
        child = DocumentWriter(is_array=is_array)
        self._child = (etype, key, child)
        return child

    def _end(self, etype: int, child: "DocumentWriter") -> None:
        if self._child is None or self._child[2] is not child or self._child[0] != etype:
            raise BconError(ERR_APPEND, "end does not match the open child")
        _, key, _ = self._child
        self._child = None
        self._append(etype, key, bytes(child.finish()))

    def begin_document(self, key: str) -> "DocumentWriter":
        return self._begin(BSON_DOCUMENT, key, False)

    def end_document(self, child: "DocumentWriter") -> None:
        self._end(BSON_DOCUMENT, child)

    def begin_array(self, key: str) -> "DocumentWriter":
        return self._begin(BSON_ARRAY, key, True)

    def end_array(self, child: "DocumentWriter") -> None:
        self._end(BSON_ARRAY, child)
