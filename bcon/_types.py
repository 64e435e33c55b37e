"""Value types for the BSON kinds that have no native Python equivalent.

Payload cells for compound kinds are one of the tuples below (a plain
tuple of the same shape is accepted too).  Document wraps finished BSON
bytes: it is what convert() returns and what the BSON_DOCUMENT /
BSON_ARRAY kinds pass through by reference.
"""

from __future__ import annotations

import binascii
import os
import random
import struct
import threading
import time
from typing import Any, Dict, List, NamedTuple, Optional, Union

from ._errors import ERR_APPEND, BconError


class Binary(NamedTuple):
    subtype: int
    data: bytes


class Regex(NamedTuple):
    pattern: str
    flags: str = ""


class DBPointer(NamedTuple):
    collection: str
    oid: "ObjectId"


class Code(NamedTuple):
    """JavaScript code, optionally with a scope.

    `scope` is a cell stream (document mode) when used as a payload cell.
    After decoding BSON it is a plain dict.
    """
    code: str
    scope: Any = None


class Timestamp(NamedTuple):
    # Serialized as one uint64: time in the high word, inc in the low word.
    time: int
    inc: int


class _Singleton:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __reduce__(self) -> str:
        return self._name


# Decoded forms of the payload-less kinds.  None stands for BSON null.
Undefined = _Singleton("Undefined")
MinKey = _Singleton("MinKey")
MaxKey = _Singleton("MaxKey")


# ── ObjectId ──────────────────────────────────────────────────
# 12 bytes: 4-byte big-endian seconds since the epoch, 5 random bytes
# fixed per process, 3-byte big-endian counter starting at a random value.

_oid_lock = threading.Lock()
_oid_counter = random.randint(0, 0xFFFFFF)
_oid_process = os.urandom(5)


def _next_oid_bytes() -> bytes:
    global _oid_counter
    with _oid_lock:
        count = _oid_counter
        _oid_counter = (_oid_counter + 1) & 0xFFFFFF
    return (struct.pack(">I", int(time.time()) & 0xFFFFFFFF)
            + _oid_process
            + struct.pack(">I", count)[1:])


class ObjectId:
    """A 12-byte BSON ObjectId."""

    __slots__ = ("_oid",)

    def __init__(self, oid: Union[None, str, bytes, "ObjectId"] = None) -> None:
        if oid is None:
            self._oid = _next_oid_bytes()
        elif isinstance(oid, ObjectId):
            self._oid = oid.binary
        elif isinstance(oid, bytes):
            if len(oid) != 12:
                raise BconError(ERR_APPEND,
                                "ObjectId needs 12 bytes, got {}".format(len(oid)))
            self._oid = oid
        elif isinstance(oid, str):
            if len(oid) != 24:
                raise BconError(ERR_APPEND, "ObjectId hex must be 24 characters")
            try:
                self._oid = binascii.unhexlify(oid)
            except (binascii.Error, ValueError):
                raise BconError(ERR_APPEND, "invalid ObjectId hex {!r}".format(oid))
        else:
            raise BconError(ERR_APPEND,
                            "cannot make ObjectId from {}".format(type(oid).__name__))

    @property
    def binary(self) -> bytes:
        return self._oid

    @property
    def generation_time(self) -> int:
        """Seconds since the epoch stored in the first four bytes."""
        return struct.unpack(">I", self._oid[:4])[0]

    def __str__(self) -> str:
        return binascii.hexlify(self._oid).decode("ascii")

    def __repr__(self) -> str:
        return "ObjectId('{}')".format(self)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObjectId):
            return self._oid == other._oid
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._oid)


# ── Document ──────────────────────────────────────────────────

class Document:
    """Finished BSON bytes for one document (or array).

    Immutable.  Equality is byte equality, which is what "the same
    document" means for BSON: key order and value types both count.
    """

    __slots__ = ("_data",)

    EMPTY = b"\x05\x00\x00\x00\x00"

    def __init__(self, data: bytes = EMPTY) -> None:
        self._data = bytes(data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Document":
        """Wrap BSON bytes after validating them; raises ERR_BSON."""
        from ._reader import validate_document
        validate_document(data)
        return cls(data)

    def __bytes__(self) -> bytes:
        return self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Document):
            return self._data == other._data
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._data)

    def __repr__(self) -> str:
        return "Document({})".format(self.to_json())

    @property
    def nbytes(self) -> int:
        return len(self._data)

    def to_dict(self) -> Dict[str, Any]:
        from ._reader import decode_document
        return decode_document(self._data)

    def to_list(self) -> List[Any]:
        """Values in key order; the natural view of an array document."""
        return list(self.to_dict().values())

    def to_json(self, indent: Optional[int] = None) -> str:
        from ._reader import document_to_json
        return document_to_json(self._data, indent=indent)
