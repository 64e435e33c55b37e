"""Token decoder and type registry tests."""

from __future__ import annotations

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bcon import (
    ERR_TRUNCATED,
    ERR_UNRECOGNIZED_KIND,
    KIND_BCON_ARRAY,
    KIND_BCON_DOCUMENT,
    KIND_CODE_W_SCOPE,
    KIND_DOUBLE,
    KIND_INT32,
    KIND_NULL,
    MARKER,
    BconError,
    describe,
    int32,
    iter_tokens,
    label,
    next_token,
    stream,
)
from bcon._constants import TOKEN_END, TOKEN_ERROR, TOKEN_LITERAL
from bcon._registry import REGISTRY, is_known, kind_for_label


class TestNextToken(unittest.TestCase):
    def test_literal(self):
        self.assertEqual(next_token(("foo", None), 0), (TOKEN_LITERAL, "foo", 1))

    def test_indirect(self):
        self.assertEqual(next_token((MARKER, KIND_DOUBLE, 1.1, None), 0),
                         (KIND_DOUBLE, 1.1, 3))

    def test_indirect_after_literal(self):
        cells = ("foo", MARKER, KIND_INT32, 7, None)
        self.assertEqual(next_token(cells, 1), (KIND_INT32, 7, 4))

    def test_payload_less_kind_still_takes_three_cells(self):
        cells = (MARKER, KIND_NULL, None, None)
        self.assertEqual(next_token(cells, 0), (KIND_NULL, None, 3))
        self.assertEqual(next_token(cells, 3)[0], TOKEN_END)

    def test_terminator(self):
        self.assertEqual(next_token((None,), 0), (TOKEN_END, None, 1))

    def test_past_the_end(self):
        kind, value, _ = next_token((), 0)
        self.assertEqual(kind, TOKEN_ERROR)
        self.assertEqual(value[0], ERR_TRUNCATED)

    def test_truncated_indirect(self):
        kind, value, cursor = next_token((MARKER, KIND_DOUBLE), 0)
        self.assertEqual(kind, TOKEN_ERROR)
        self.assertEqual(value[0], ERR_TRUNCATED)
        self.assertEqual(cursor, 3)

    def test_unknown_tag_still_advances(self):
        kind, value, cursor = next_token((MARKER, 999, 1, None), 0)
        self.assertEqual(kind, TOKEN_ERROR)
        self.assertEqual(value[0], ERR_UNRECOGNIZED_KIND)
        self.assertEqual(cursor, 3)

    def test_stray_cell(self):
        kind, value, _ = next_token((5,), 0)
        self.assertEqual(kind, TOKEN_ERROR)
        self.assertEqual(value[0], ERR_UNRECOGNIZED_KIND)

    def test_marker_is_not_a_string(self):
        self.assertNotIsInstance(MARKER, str)
        self.assertEqual(repr(MARKER), "MARKER")


class TestIterTokens(unittest.TestCase):
    def test_stops_at_end(self):
        tokens = list(iter_tokens(stream("a", int32(1))))
        self.assertEqual(tokens, [(TOKEN_LITERAL, "a"), (KIND_INT32, 1), (TOKEN_END, None)])

    def test_stops_at_error(self):
        tokens = list(iter_tokens(("a", 2.0, "b", None)))
        self.assertEqual(len(tokens), 2)
        self.assertEqual(tokens[-1][0], TOKEN_ERROR)


class TestRegistry(unittest.TestCase):
    def test_every_entry_has_one_payload_cell(self):
        for info in REGISTRY.values():
            self.assertEqual(info.payload_cells, 1)

    def test_writer_call_for_scalar_kinds(self):
        nested = (KIND_BCON_DOCUMENT, KIND_BCON_ARRAY, KIND_CODE_W_SCOPE)
        for kind, info in REGISTRY.items():
            if kind in nested:
                self.assertIsNone(info.append)
            else:
                self.assertTrue(callable(info.append), info.label)

    def test_labels_round_trip(self):
        for kind, info in REGISTRY.items():
            self.assertEqual(kind_for_label(info.label), kind)

    def test_token_labels(self):
        self.assertEqual(label(TOKEN_LITERAL), "STRING")
        self.assertEqual(label(TOKEN_END), "END")
        self.assertEqual(label(TOKEN_ERROR), "ERROR")
        self.assertEqual(label(KIND_DOUBLE), "DOUBLE")

    def test_bool_is_not_known(self):
        self.assertFalse(is_known(True))
        self.assertFalse(is_known("1"))

    def test_describe_unknown(self):
        with self.assertRaises(BconError) as ctx:
            describe(999)
        self.assertEqual(ctx.exception.code, ERR_UNRECOGNIZED_KIND)

    def test_unknown_label(self):
        with self.assertRaises(BconError) as ctx:
            kind_for_label("FLOAT")
        self.assertEqual(ctx.exception.code, ERR_UNRECOGNIZED_KIND)


if __name__ == "__main__":
    unittest.main()
