"""BSON reader: validate finished bytes and turn them back into values.

Used by Document.to_dict() / Document.to_json() and by the tests, which
compare what the builder produced with what a direct writer produced.
Decoding mirrors the writer's layout exactly; anything structurally off
(bad lengths, missing NULs, unknown type bytes, trailing bytes) raises
ERR_BSON.

Two output flavours share one walker:

    python  dict / list / str / float / int / bool / None, plus the
            tagged types from _types for everything else
    json    extended JSON values ($oid, $numberLong, $date, ...), ready
            for json.dumps
"""

from __future__ import annotations

import base64
import datetime
import json
import math
import struct
from typing import Any, Dict, Optional, Tuple

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
    MAX_DEPTH,
)
from ._errors import ERR_BSON, BconError
from ._types import (
    Binary,
    Code,
    DBPointer,
    MaxKey,
    MinKey,
    ObjectId,
    Regex,
    Timestamp,
    Undefined,
)

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


# ── Bounds-checked primitives ─────────────────────────────────

def _need(buf: bytes, off: int, n: int, what: str) -> None:
    if n < 0 or off + n > len(buf):
        raise BconError(ERR_BSON, "truncated {}".format(what))


def _read_i32(buf: bytes, off: int) -> Tuple[int, int]:
    _need(buf, off, 4, "int32")
    return struct.unpack_from("<i", buf, off)[0], off + 4


def _read_cstring(buf: bytes, off: int) -> Tuple[str, int]:
    end = buf.find(b"\x00", off)
    if end < 0:
        raise BconError(ERR_BSON, "unterminated cstring")
    return _decode_utf8(buf[off:end]), end + 1


def _read_string(buf: bytes, off: int) -> Tuple[str, int]:
    n, off = _read_i32(buf, off)
    if n < 1:
        raise BconError(ERR_BSON, "bad string length {}".format(n))
    _need(buf, off, n, "string")
    if buf[off + n - 1] != 0:
        raise BconError(ERR_BSON, "string missing NUL terminator")
    return _decode_utf8(buf[off:off + n - 1]), off + n


def _decode_utf8(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise BconError(ERR_BSON, "invalid utf-8")


# ── Walker ────────────────────────────────────────────────────

def _read_document(buf: bytes, off: int, depth: int, as_json: bool,
                   is_array: bool = False) -> Tuple[Any, int]:
    if depth > MAX_DEPTH:
        raise BconError(ERR_BSON, "document nesting exceeds MAX_DEPTH")
    total, body = _read_i32(buf, off)
    if total < 5:
        raise BconError(ERR_BSON, "bad document length {}".format(total))
    _need(buf, off, total, "document")
    end = off + total - 1
    if buf[end] != 0:
        raise BconError(ERR_BSON, "document missing NUL terminator")

    out: Dict[str, Any] = {}
    pos = body
    while pos < end:
        etype = buf[pos]
        key, pos = _read_cstring(buf, pos + 1)
        if pos > end:
            raise BconError(ERR_BSON, "key runs past end of document")
        val, pos = _read_value(buf, pos, etype, depth, as_json)
        if pos > end:
            raise BconError(ERR_BSON, "element runs past end of document")
        out[key] = val
    if pos != end:
        raise BconError(ERR_BSON, "document length mismatch")

    if is_array:
        return list(out.values()), off + total
    return out, off + total


def _read_value(buf: bytes, off: int, etype: int, depth: int,
                as_json: bool) -> Tuple[Any, int]:
    if etype == BSON_DOUBLE:
        _need(buf, off, 8, "double")
        val = struct.unpack_from("<d", buf, off)[0]
        if as_json and (math.isnan(val) or math.isinf(val)):
            return {"$numberDouble": repr(val).replace("inf", "Infinity").replace("nan", "NaN")}, off + 8
        return val, off + 8

    if etype == BSON_STRING:
        return _read_string(buf, off)

    if etype == BSON_DOCUMENT:
        return _read_document(buf, off, depth + 1, as_json)

    if etype == BSON_ARRAY:
        return _read_document(buf, off, depth + 1, as_json, is_array=True)

    if etype == BSON_BINARY:
        n, off = _read_i32(buf, off)
        _need(buf, off, n + 1, "binary")
        subtype = buf[off]
        data = bytes(buf[off + 1:off + 1 + n])
        if as_json:
            return {"$binary": {"base64": base64.b64encode(data).decode("ascii"),
                                "subType": "{:02x}".format(subtype)}}, off + 1 + n
        return Binary(subtype, data), off + 1 + n

    if etype == BSON_UNDEFINED:
        return ({"$undefined": True} if as_json else Undefined), off

    if etype == BSON_OID:
        _need(buf, off, 12, "ObjectId")
        oid = ObjectId(bytes(buf[off:off + 12]))
        return ({"$oid": str(oid)} if as_json else oid), off + 12

    if etype == BSON_BOOL:
        _need(buf, off, 1, "bool")
        if buf[off] not in (0, 1):
            raise BconError(ERR_BSON, "invalid bool byte 0x{:02x}".format(buf[off]))
        return buf[off] == 1, off + 1

    if etype == BSON_DATE_TIME:
        _need(buf, off, 8, "date_time")
        ms = struct.unpack_from("<q", buf, off)[0]
        if as_json:
            return {"$date": {"$numberLong": str(ms)}}, off + 8
        try:
            return _EPOCH + datetime.timedelta(milliseconds=ms), off + 8
        except OverflowError:
            raise BconError(ERR_BSON, "date_time {} out of datetime range".format(ms))

    if etype == BSON_NULL:
        return None, off

    if etype == BSON_REGEX:
        pattern, off = _read_cstring(buf, off)
        flags, off = _read_cstring(buf, off)
        if as_json:
            return {"$regularExpression": {"pattern": pattern, "options": flags}}, off
        return Regex(pattern, flags), off

    if etype == BSON_DBPOINTER:
        coll, off = _read_string(buf, off)
        _need(buf, off, 12, "dbpointer id")
        oid = ObjectId(bytes(buf[off:off + 12]))
        if as_json:
            return {"$dbPointer": {"$ref": coll, "$id": {"$oid": str(oid)}}}, off + 12
        return DBPointer(coll, oid), off + 12

    if etype == BSON_CODE:
        code, off = _read_string(buf, off)
        return ({"$code": code} if as_json else Code(code)), off

    if etype == BSON_SYMBOL:
        sym, off = _read_string(buf, off)
        return ({"$symbol": sym} if as_json else sym), off

    if etype == BSON_CODE_W_SCOPE:
        total, inner = _read_i32(buf, off)
        _need(buf, off, total, "code_w_scope")
        code, inner = _read_string(buf, inner)
        scope, inner = _read_document(buf, inner, depth + 1, as_json)
        if inner != off + total:
            raise BconError(ERR_BSON, "code_w_scope length mismatch")
        if as_json:
            return {"$code": code, "$scope": scope}, inner
        return Code(code, scope), inner

    if etype == BSON_INT32:
        _need(buf, off, 4, "int32")
        return struct.unpack_from("<i", buf, off)[0], off + 4

    if etype == BSON_TIMESTAMP:
        _need(buf, off, 8, "timestamp")
        inc, t = struct.unpack_from("<II", buf, off)
        if as_json:
            return {"$timestamp": {"t": t, "i": inc}}, off + 8
        return Timestamp(t, inc), off + 8

    if etype == BSON_INT64:
        _need(buf, off, 8, "int64")
        val = struct.unpack_from("<q", buf, off)[0]
        return ({"$numberLong": str(val)} if as_json else val), off + 8

    if etype == BSON_MINKEY:
        return ({"$minKey": 1} if as_json else MinKey), off

    if etype == BSON_MAXKEY:
        return ({"$maxKey": 1} if as_json else MaxKey), off

    raise BconError(ERR_BSON, "unknown BSON type 0x{:02x}".format(etype))


# ── Public helpers ────────────────────────────────────────────

def _read_root(data: bytes, as_json: bool) -> Dict[str, Any]:
    buf = bytes(data)
    val, end = _read_document(buf, 0, 0, as_json)
    if end != len(buf):
        raise BconError(ERR_BSON, "trailing bytes after document")
    return val


def decode_document(data: bytes) -> Dict[str, Any]:
    """Decode BSON bytes into Python values.  Arrays come back as lists."""
    return _read_root(data, as_json=False)


def document_to_json(data: bytes, indent: Optional[int] = None) -> str:
    """Render BSON bytes as extended JSON text."""
    return json.dumps(_read_root(data, as_json=True), indent=indent,
                      ensure_ascii=False)


def validate_document(data: bytes) -> None:
    """Raise ERR_BSON unless `data` is exactly one well-formed document.

    Walks the JSON flavour, which accepts every date_time the wire can
    hold; the Python flavour stops at the datetime range.
    """
    _read_root(data, as_json=True)
