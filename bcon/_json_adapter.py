"""JSON adapter: describe a cell stream as JSON text.

Used by the command line and the conformance vectors, where streams have
to live in files.  The JSON array maps onto cells one to one, so
malformed streams (missing terminators, bad tags) can be written down
too:

    JSON string                   literal cell
    null                          terminator
    {"$marker": true}             MARKER
    {"$kind": "DOUBLE"}           tag cell (by registry label)
    a bare integer                tag cell (raw, may be unknown)
    {"$type": "DOUBLE", "$value": 1.1}
                                  shorthand for marker + tag + payload

After a tag cell the next element is a payload, converted as follows:

    number / bool / string / null    as is
    [a, b]                           tuple (pairs: timestamp, regex, ...);
                                     after BCON_DOCUMENT / BCON_ARRAY
                                     a nested cell stream instead
    {"$stream": [...]}               nested cell stream
    {"$document": [...]}             Document built from a nested stream
    {"$array": [...]}                Document built from an array stream
    {"$binary": {"subtype": 0, "base64": "..."}}
    {"$oid": "hex"}
    {"$code": "text", "$scope": [...]}
    {"$regex": ["pattern", "flags"]}
    {"$timestamp": [time, inc]}
    {"$dbpointer": ["collection", "hex"]}
    {"$date": 1231111012}            milliseconds since the epoch
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, List, Tuple

from ._constants import KIND_BCON_ARRAY, KIND_BCON_DOCUMENT
from ._errors import ERR_UNRECOGNIZED_KIND, BconError
from ._registry import kind_for_label
from ._tokens import MARKER
from ._types import Binary, Code, DBPointer, ObjectId, Regex, Timestamp


def _bad(msg: str) -> BconError:
    return BconError(ERR_UNRECOGNIZED_KIND, msg)


def _expect_list(x: Any, what: str) -> List[Any]:
    if not isinstance(x, list):
        raise _bad("{} must be a JSON array".format(what))
    return x


def _expect_pair(x: Any, what: str) -> List[Any]:
    if not isinstance(x, list) or len(x) != 2:
        raise _bad("{} must be a two-element JSON array".format(what))
    return x


def _tag(x: Any) -> Any:
    if isinstance(x, dict) and set(x) == {"$kind"}:
        return kind_for_label(x["$kind"])
    # Raw tags go through unchecked so unknown ones can be expressed.
    return x


def _payload(x: Any) -> Any:
    if isinstance(x, list):
        return tuple(_payload(v) for v in x)
    if not isinstance(x, dict):
        return x

    keys = set(x)
    if keys == {"$stream"}:
        return json_to_stream(x["$stream"])
    if keys == {"$document"} or keys == {"$array"}:
        # Imported here: the builder sits above this module.
        from ._builder import convert
        is_array = "$array" in x
        return convert(json_to_stream(x["$array" if is_array else "$document"]),
                       is_array=is_array)
    if keys == {"$binary"}:
        desc = x["$binary"]
        try:
            return Binary(desc.get("subtype", 0), base64.b64decode(desc["base64"], validate=True))
        except (AttributeError, KeyError, binascii.Error):
            raise _bad("bad $binary payload {!r}".format(desc))
    if keys == {"$oid"}:
        return ObjectId(x["$oid"])
    if keys == {"$code", "$scope"}:
        scope = x["$scope"]
        return Code(x["$code"], None if scope is None else json_to_stream(scope))
    if keys == {"$regex"}:
        pattern, flags = _expect_pair(x["$regex"], "$regex")
        return Regex(pattern, flags)
    if keys == {"$timestamp"}:
        t, inc = _expect_pair(x["$timestamp"], "$timestamp")
        return Timestamp(t, inc)
    if keys == {"$dbpointer"}:
        collection, oid = _expect_pair(x["$dbpointer"], "$dbpointer")
        return DBPointer(collection, ObjectId(oid))
    if keys == {"$date"}:
        return x["$date"]
    raise _bad("unknown payload object {!r}".format(sorted(keys)))


def _typed_payload(kind: Any, x: Any) -> Any:
    # A JSON array after a nested-stream tag is written in cell syntax.
    if kind in (KIND_BCON_DOCUMENT, KIND_BCON_ARRAY) and isinstance(x, list):
        return json_to_stream(x)
    return _payload(x)


def json_to_stream(items: Any) -> Tuple[Any, ...]:
    """Convert a parsed JSON array into a cell stream tuple."""
    cells: List[Any] = []
    # 0: next element is a cell; 1: a tag; 2: a payload.
    expect = 0
    for item in _expect_list(items, "stream"):
        if expect == 1:
            cells.append(_tag(item))
            expect = 2
            continue
        if expect == 2:
            cells.append(_typed_payload(cells[-1], item))
            expect = 0
            continue

        if item is None or isinstance(item, str):
            cells.append(item)
        elif isinstance(item, dict) and set(item) == {"$marker"}:
            cells.append(MARKER)
            expect = 1
        elif isinstance(item, dict) and set(item) == {"$type", "$value"}:
            kind = kind_for_label(item["$type"])
            cells.extend((MARKER, kind, _typed_payload(kind, item["$value"])))
        elif isinstance(item, dict) and set(item) == {"$type"}:
            # payload-less kinds (NULL, MINKEY, ...)
            cells.extend((MARKER, kind_for_label(item["$type"]), None))
        else:
            # Stray cells are kept; the decoder reports them.
            cells.append(_payload(item) if isinstance(item, dict) else item)
    return tuple(cells)


def parse_stream(raw: bytes) -> Tuple[Any, ...]:
    """Parse UTF-8 JSON text into a cell stream.

    json.JSONDecodeError propagates for text that is not JSON at all.
    """
    return json_to_stream(json.loads(raw))
