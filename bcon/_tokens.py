"""Token decoder for BCON cell streams.

A cell stream is a flat list or tuple:

    str      literal string (a key, or a string value)
    MARKER   the next two cells are (kind tag, payload)
    None     terminator

so ``("foo", MARKER, KIND_DOUBLE, 1.1, None)`` is the document
``{"foo": 1.1}``.

MARKER is an instance of a private class, not a str.  It is matched with
``is``, so no user string, whatever its content, can be mistaken for it.
"""

from __future__ import annotations

from typing import Any, Iterator, Sequence, Tuple

from ._constants import TOKEN_END, TOKEN_ERROR, TOKEN_LITERAL
from ._errors import ERR_TRUNCATED, ERR_UNRECOGNIZED_KIND
from ._registry import is_known


class _Marker:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MARKER"

    def __reduce__(self) -> str:
        return "MARKER"


MARKER = _Marker()

# An indirect entry is marker + tag + payload.
INDIRECT_CELLS = 3

Token = Tuple[int, Any]


def next_token(stream: Sequence[Any], cursor: int) -> Tuple[int, Any, int]:
    """Decode the token at `cursor`.  Returns (kind, value, new_cursor).

    kind is TOKEN_END, TOKEN_LITERAL for a bare string cell (value is the
    string), a typed KIND_* (value is the raw payload cell), or
    TOKEN_ERROR (value is an (error code, message) pair).  The cursor
    moves past the whole entry even on error, so a caller that wants to
    keep dumping can.
    """
    if cursor >= len(stream):
        return TOKEN_ERROR, (ERR_TRUNCATED, "stream has no terminator"), cursor + 1

    cell = stream[cursor]

    if cell is None:
        return TOKEN_END, None, cursor + 1

    if cell is MARKER:
        end = cursor + INDIRECT_CELLS
        if end > len(stream):
            return (TOKEN_ERROR,
                    (ERR_TRUNCATED, "stream ends inside an indirect entry at cell {}".format(cursor)),
                    end)
        tag = stream[cursor + 1]
        if not is_known(tag):
            return (TOKEN_ERROR,
                    (ERR_UNRECOGNIZED_KIND, "unrecognized kind tag {!r} at cell {}".format(tag, cursor + 1)),
                    end)
        return tag, stream[cursor + 2], end

    if isinstance(cell, str):
        return TOKEN_LITERAL, cell, cursor + 1

    return (TOKEN_ERROR,
            (ERR_UNRECOGNIZED_KIND, "stray {} cell at {}".format(type(cell).__name__, cursor)),
            cursor + 1)


def iter_tokens(stream: Sequence[Any]) -> Iterator[Token]:
    """Yield (kind, value) tokens through the first END or ERROR."""
    cursor = 0
    while True:
        kind, value, cursor = next_token(stream, cursor)
        yield kind, value
        if kind in (TOKEN_END, TOKEN_ERROR):
            return
