"""BCON constants: value-kind tags, BSON element types, and limits.

Kind tags are what a tag cell holds (the cell right after a marker).
They are independent of the BSON wire type bytes further down: several
kinds (BCON_DOCUMENT and BSON_DOCUMENT, say) land on the same wire type.
"""

from __future__ import annotations

__version__ = "0.3.0"

# ── Token kinds that never appear in a tag cell ──────────────
TOKEN_END: int = 0
TOKEN_ERROR: int = -1
TOKEN_LITERAL: int = -2   # a bare str cell; typed UTF8 is KIND_UTF8

# ── Value-kind tags ──────────────────────────────────────────
KIND_UTF8: int = 1
KIND_DOUBLE: int = 2
KIND_BCON_DOCUMENT: int = 3      # payload: a nested cell stream
KIND_BCON_ARRAY: int = 4         # payload: a nested cell stream
KIND_BINARY: int = 5
KIND_UNDEFINED: int = 6
KIND_OID: int = 7
KIND_BOOL: int = 8
KIND_DATE_TIME: int = 9
KIND_NULL: int = 10
KIND_REGEX: int = 11
KIND_DBPOINTER: int = 12
KIND_CODE: int = 13
KIND_SYMBOL: int = 14
KIND_CODE_W_SCOPE: int = 15      # payload: Code(code, scope stream)
KIND_INT32: int = 16
KIND_TIMESTAMP: int = 17
KIND_INT64: int = 18
KIND_MAXKEY: int = 19
KIND_MINKEY: int = 20
KIND_BSON_DOCUMENT: int = 21     # payload: an already built Document
KIND_BSON_ARRAY: int = 22        # payload: an already built Document

# ── BSON element type bytes (bsonspec.org, 1.1) ──────────────
BSON_DOUBLE: int = 0x01
BSON_STRING: int = 0x02
BSON_DOCUMENT: int = 0x03
BSON_ARRAY: int = 0x04
BSON_BINARY: int = 0x05
BSON_UNDEFINED: int = 0x06
BSON_OID: int = 0x07
BSON_BOOL: int = 0x08
BSON_DATE_TIME: int = 0x09
BSON_NULL: int = 0x0A
BSON_REGEX: int = 0x0B
BSON_DBPOINTER: int = 0x0C
BSON_CODE: int = 0x0D
BSON_SYMBOL: int = 0x0E
BSON_CODE_W_SCOPE: int = 0x0F
BSON_INT32: int = 0x10
BSON_TIMESTAMP: int = 0x11
BSON_INT64: int = 0x12
BSON_MAXKEY: int = 0x7F
BSON_MINKEY: int = 0xFF

# ── Binary subtypes ──────────────────────────────────────────
SUBTYPE_BINARY: int = 0x00
SUBTYPE_FUNCTION: int = 0x01
SUBTYPE_BINARY_OLD: int = 0x02
SUBTYPE_UUID_OLD: int = 0x03
SUBTYPE_UUID: int = 0x04
SUBTYPE_MD5: int = 0x05
SUBTYPE_USER: int = 0x80

# ── Integer ranges ───────────────────────────────────────────
# Python ints are arbitrary-precision, so every fixed-width BSON field
# has to be range-checked by hand before struct.pack sees it.
INT32_MIN: int = -(2**31)
INT32_MAX: int = 2**31 - 1
INT64_MIN: int = -(2**63)
INT64_MAX: int = 2**63 - 1
UINT32_MAX: int = 2**32 - 1

# ── Limits ───────────────────────────────────────────────────
# Same nesting ceiling the MongoDB server applies to stored documents.
# Also keeps the recursive builder far away from sys.getrecursionlimit().
MAX_DEPTH: int = 100

# ── Diagnostic rendering ─────────────────────────────────────
ERROR_MARKER: str = "<ERROR HERE>"
INDENT: int = 2
