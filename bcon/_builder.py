"""Document builder: drive the token decoder into a DocumentWriter.

build() walks one cell stream in document or array mode.  Keys come from
literal string cells (document mode) or from the running position
(array mode).  Values are dispatched by kind: literal strings and most
typed kinds go straight to the writer through their registry entry; nested
documents, arrays, and code-with-scope recurse into their own sub-stream.

Failure is total.  The first structural or append error anywhere raises
BconError out of the top-level call; whatever the writer accumulated up
to that point is simply dropped with it.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence, Set

from ._constants import (
    KIND_BCON_ARRAY,
    KIND_BCON_DOCUMENT,
    KIND_CODE_W_SCOPE,
    MAX_DEPTH,
    TOKEN_END,
    TOKEN_ERROR,
    TOKEN_LITERAL,
)
from ._errors import (
    ERR_DANGLING_KEY,
    ERR_DUP_KEY,
    ERR_EXPECTED_KEY,
    ERR_LIMIT_DEPTH,
    BconError,
)
from ._printer import render
from ._registry import describe, label
from ._tokens import next_token
from ._types import Document
from ._writer import DocumentWriter

logger = logging.getLogger(__name__)


def _token_error(value: Any) -> BconError:
    code, msg = value
    return BconError(code, msg)


def _append_value(writer: DocumentWriter, key: str, kind: int, value: Any,
                  depth: int) -> None:
    if kind == TOKEN_LITERAL:
        writer.append_utf8(key, value)
        return
    if kind == TOKEN_ERROR:
        raise _token_error(value)

    info = describe(kind)
    val = info.extract(value)

    if kind == KIND_BCON_DOCUMENT:
        child = writer.begin_document(key)
        build(val, child, is_array=False, depth=depth + 1)
        writer.end_document(child)
    elif kind == KIND_BCON_ARRAY:
        child = writer.begin_array(key)
        build(val, child, is_array=True, depth=depth + 1)
        writer.end_array(child)
    elif kind == KIND_CODE_W_SCOPE:
        if val.scope is None:
            writer.append_code(key, val.code)
            return
        scope = DocumentWriter()
        build(val.scope, scope, is_array=False, depth=depth + 1)
        writer.append_code_w_scope(key, val.code, scope.finish())
    else:
        info.append(writer, key, val)


def build(stream: Sequence[Any], writer: DocumentWriter, is_array: bool = False,
          depth: int = 0) -> None:
    """Append every entry of `stream` to `writer`.

    Raises BconError on the first fault; see the module docstring.
    """
    if depth > MAX_DEPTH:
        raise BconError(ERR_LIMIT_DEPTH, "nesting exceeds MAX_DEPTH ({})".format(MAX_DEPTH))

    cursor = 0
    index = 0
    seen: Set[str] = set()

    while True:
        if is_array:
            key = str(index)
        else:
            kind, value, cursor = next_token(stream, cursor)
            if kind == TOKEN_END:
                return
            if kind == TOKEN_ERROR:
                raise _token_error(value)
            if kind != TOKEN_LITERAL:
                raise BconError(ERR_EXPECTED_KEY,
                                "key must be a plain string, got {} before cell {}".format(
                                    label(kind), cursor))
            key = value
            if key in seen:
                raise BconError(ERR_DUP_KEY, "duplicate key {!r}".format(key))
            seen.add(key)

        kind, value, cursor = next_token(stream, cursor)

        if kind == TOKEN_END:
            if is_array:
                return
            raise BconError(ERR_DANGLING_KEY, "key {!r} has no value".format(key))

        _append_value(writer, key, kind, value, depth)
        index += 1


def convert(stream: Sequence[Any], is_array: bool = False) -> Document:
    """Build a Document from a cell stream.

    On failure the raised BconError carries `.diagnostic`: the rendering
    of the whole stream with "<ERROR HERE>" at the first fault.
    """
    writer = DocumentWriter(is_array=is_array)
    try:
        build(stream, writer, is_array=is_array)
    except BconError as e:
        e.diagnostic = render(stream, is_array=is_array)
        logger.debug("conversion failed [%s]: %s\n%s", e.code, e, e.diagnostic)
        raise
    return writer.finish()
