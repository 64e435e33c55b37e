"""Type registry: per-kind payload extraction and diagnostic labels.

A constant table keyed by kind tag.  Each entry says how many cells the
indirect form occupies after the tag (always one payload cell), how to
turn that payload cell into the value the writer wants, what label the
pretty printer shows for the kind, and which writer call appends it.

Extractors only check shape and normalise; range checks belong to the
writer.  A payload with the wrong shape raises ERR_APPEND, the same code
the writer uses, because from the caller's point of view both mean "this
value cannot be appended".
"""

from __future__ import annotations

import calendar
import datetime
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence

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
    TOKEN_END,
    TOKEN_ERROR,
    TOKEN_LITERAL,
)
from ._errors import ERR_APPEND, ERR_UNRECOGNIZED_KIND, BconError
from ._types import Binary, Code, DBPointer, Document, ObjectId, Regex, Timestamp


class KindInfo(NamedTuple):
    payload_cells: int
    extract: Callable[[Any], Any]
    label: str
    # writer call for the extracted value: append(writer, key, value).
    # None for the kinds that recurse (BCON_DOCUMENT, BCON_ARRAY,
    # CODE_W_SCOPE); the builder and printer walk those themselves.
    append: Optional[Callable[[Any, str, Any], None]]


def _reject(kind: str, payload: Any) -> BconError:
    return BconError(ERR_APPEND, "{} payload has wrong shape: {}".format(
        kind, type(payload).__name__))


def _pair(kind: str, payload: Any) -> Sequence[Any]:
    if not isinstance(payload, tuple) or len(payload) != 2:
        raise _reject(kind, payload)
    return payload


# ── Extractors ────────────────────────────────────────────────

def _x_str(payload: Any) -> str:
    if not isinstance(payload, str):
        raise _reject("string", payload)
    return payload


def _x_double(payload: Any) -> float:
    # bool before int/float: True is an int and would pass as 1.0.
    if isinstance(payload, bool) or not isinstance(payload, (int, float)):
        raise _reject("DOUBLE", payload)
    try:
        return float(payload)
    except OverflowError:
        raise BconError(ERR_APPEND, "integer too large for DOUBLE: {}".format(payload))


def _x_int(payload: Any) -> int:
    if isinstance(payload, bool) or not isinstance(payload, int):
        raise _reject("integer", payload)
    return payload


def _x_bool(payload: Any) -> bool:
    if isinstance(payload, bool):
        return payload
    # C-style 0/1 flags are common in hand-written streams.
    if isinstance(payload, int) and payload in (0, 1):
        return bool(payload)
    raise _reject("BOOL", payload)


def _x_none(payload: Any) -> None:
    return None


def _x_stream(payload: Any) -> Sequence[Any]:
    if not isinstance(payload, (list, tuple)):
        raise _reject("nested stream", payload)
    return payload


def _x_document(payload: Any) -> Document:
    if not isinstance(payload, Document):
        raise _reject("BSON document", payload)
    return payload


def _x_binary(payload: Any) -> Binary:
    subtype, data = _pair("BINARY", payload)
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise _reject("BINARY data", data)
    return Binary(_x_int(subtype), bytes(data))


def _x_regex(payload: Any) -> Regex:
    pattern, flags = _pair("REGEX", payload)
    return Regex(_x_str(pattern), _x_str(flags or ""))


def _x_oid(payload: Any) -> ObjectId:
    # None asks for a freshly generated id.
    return ObjectId(payload)


def _x_dbpointer(payload: Any) -> DBPointer:
    collection, oid = _pair("DBPOINTER", payload)
    return DBPointer(_x_str(collection), ObjectId(oid))


def _x_code_w_scope(payload: Any) -> Code:
    code, scope = _pair("CODE_W_SCOPE", payload)
    if scope is not None:
        _x_stream(scope)
    return Code(_x_str(code), scope)


def _x_timestamp(payload: Any) -> Timestamp:
    t, inc = _pair("TIMESTAMP", payload)
    return Timestamp(_x_int(t), _x_int(inc))


def _x_date_time(payload: Any) -> int:
    """Milliseconds since the epoch.  Naive datetimes are taken as UTC."""
    if isinstance(payload, datetime.datetime):
        if payload.tzinfo is not None:
            payload = payload.astimezone(datetime.timezone.utc)
        secs = calendar.timegm(payload.timetuple())
        return secs * 1000 + payload.microsecond // 1000
    return _x_int(payload)


REGISTRY: Dict[int, KindInfo] = {
    KIND_UTF8: KindInfo(1, _x_str, "UTF8",
                        lambda w, k, v: w.append_utf8(k, v)),
    KIND_DOUBLE: KindInfo(1, _x_double, "DOUBLE",
                          lambda w, k, v: w.append_double(k, v)),
    KIND_BCON_DOCUMENT: KindInfo(1, _x_stream, "BCON_DOCUMENT", None),
    KIND_BCON_ARRAY: KindInfo(1, _x_stream, "BCON_ARRAY", None),
    KIND_BINARY: KindInfo(1, _x_binary, "BINARY",
                          lambda w, k, v: w.append_binary(k, v.subtype, v.data)),
    KIND_UNDEFINED: KindInfo(1, _x_none, "UNDEFINED",
                             lambda w, k, v: w.append_undefined(k)),
    KIND_OID: KindInfo(1, _x_oid, "OID",
                       lambda w, k, v: w.append_oid(k, v)),
    KIND_BOOL: KindInfo(1, _x_bool, "BOOL",
                        lambda w, k, v: w.append_bool(k, v)),
    KIND_DATE_TIME: KindInfo(1, _x_date_time, "DATE_TIME",
                             lambda w, k, v: w.append_date_time(k, v)),
    KIND_NULL: KindInfo(1, _x_none, "NULL",
                        lambda w, k, v: w.append_null(k)),
    KIND_REGEX: KindInfo(1, _x_regex, "REGEX",
                         lambda w, k, v: w.append_regex(k, v.pattern, v.flags)),
    KIND_DBPOINTER: KindInfo(1, _x_dbpointer, "DBPOINTER",
                             lambda w, k, v: w.append_dbpointer(k, v.collection, v.oid)),
    KIND_CODE: KindInfo(1, _x_str, "CODE",
                        lambda w, k, v: w.append_code(k, v)),
    KIND_SYMBOL: KindInfo(1, _x_str, "SYMBOL",
                          lambda w, k, v: w.append_symbol(k, v)),
    KIND_CODE_W_SCOPE: KindInfo(1, _x_code_w_scope, "CODE_W_SCOPE", None),
    KIND_INT32: KindInfo(1, _x_int, "INT32",
                         lambda w, k, v: w.append_int32(k, v)),
    KIND_TIMESTAMP: KindInfo(1, _x_timestamp, "TIMESTAMP",
                             lambda w, k, v: w.append_timestamp(k, v.time, v.inc)),
    KIND_INT64: KindInfo(1, _x_int, "INT64",
                         lambda w, k, v: w.append_int64(k, v)),
    KIND_MAXKEY: KindInfo(1, _x_none, "MAXKEY",
                          lambda w, k, v: w.append_maxkey(k)),
    KIND_MINKEY: KindInfo(1, _x_none, "MINKEY",
                          lambda w, k, v: w.append_minkey(k)),
    KIND_BSON_DOCUMENT: KindInfo(1, _x_document, "BSON_DOCUMENT",
                                 lambda w, k, v: w.append_document(k, v)),
    KIND_BSON_ARRAY: KindInfo(1, _x_document, "BSON_ARRAY",
                              lambda w, k, v: w.append_array(k, v)),
}

_LABEL_TO_KIND: Dict[str, int] = {info.label: kind for kind, info in REGISTRY.items()}


def is_known(tag: Any) -> bool:
    """True if `tag` is a registered kind.  Never raises."""
    # type() rather than isinstance(): True == 1 would otherwise look
    # like KIND_UTF8 in the dict lookup.
    return type(tag) is int and tag in REGISTRY


def describe(tag: Any) -> KindInfo:
    if not is_known(tag):
        raise BconError(ERR_UNRECOGNIZED_KIND, "unrecognized kind tag {!r}".format(tag))
    return REGISTRY[tag]


def label(kind: int) -> str:
    """Diagnostic label for any kind, including the token-only kinds."""
    if kind == TOKEN_END:
        return "END"
    if kind == TOKEN_ERROR:
        return "ERROR"
    if kind == TOKEN_LITERAL:
        return "STRING"
    return describe(kind).label


def kind_for_label(name: str) -> int:
    try:
        return _LABEL_TO_KIND[name]
    except KeyError:
        raise BconError(ERR_UNRECOGNIZED_KIND, "unknown kind label {!r}".format(name))
