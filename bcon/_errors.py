"""BCON error codes and the exception class.

Every failure the package reports is a BconError carrying one of the
ERR_* codes below.  Conversion is all-or-nothing: the first error
anywhere in a (possibly deeply nested) stream aborts the whole call.
"""

from __future__ import annotations

from typing import Optional

# ── Error codes ──────────────────────────────────────────────
# Grep-friendly; the conformance vectors compare against these strings.

ERR_UNRECOGNIZED_KIND: str = "ERR_UNRECOGNIZED_KIND"  # unknown tag or stray cell
ERR_EXPECTED_KEY: str = "ERR_EXPECTED_KEY"            # key slot held a typed cell
ERR_DANGLING_KEY: str = "ERR_DANGLING_KEY"            # key followed by terminator
ERR_TRUNCATED: str = "ERR_TRUNCATED"                  # ran off the end of the stream
ERR_APPEND: str = "ERR_APPEND"                        # writer rejected the value
ERR_DUP_KEY: str = "ERR_DUP_KEY"                      # key repeated in one document
ERR_LIMIT_DEPTH: str = "ERR_LIMIT_DEPTH"              # nesting exceeds MAX_DEPTH
ERR_BSON: str = "ERR_BSON"                            # malformed BSON bytes

ALL_CODES = (
    ERR_UNRECOGNIZED_KIND,
    ERR_EXPECTED_KEY,
    ERR_DANGLING_KEY,
    ERR_TRUNCATED,
    ERR_APPEND,
    ERR_DUP_KEY,
    ERR_LIMIT_DEPTH,
    ERR_BSON,
)


class BconError(Exception):
    """Exception for BCON conversion errors.

    `.code` is one of the ERR_* strings above.  When raised from
    convert(), `.diagnostic` holds the rendering of the offending stream
    with "<ERROR HERE>" at the first fault; otherwise it is None.
    """

    def __init__(self, code: str, msg: str = "",
                 diagnostic: Optional[str] = None) -> None:
        super().__init__(msg or code)
        self.code = code
        self.diagnostic = diagnostic
