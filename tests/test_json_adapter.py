"""JSON stream descriptions (CLI input and conformance vectors)."""

from __future__ import annotations

import json
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bcon import (
    ERR_UNRECOGNIZED_KIND,
    KIND_BCON_ARRAY,
    KIND_BCON_DOCUMENT,
    KIND_BINARY,
    KIND_DOUBLE,
    KIND_INT32,
    KIND_NULL,
    MARKER,
    BconError,
    Binary,
    Code,
    DBPointer,
    Document,
    ObjectId,
    Regex,
    Timestamp,
    convert,
    json_to_stream,
    parse_stream,
)

OID_HEX = "56e1fc72e0c917e9c4714161"


class TestCells(unittest.TestCase):
    def test_literals_and_terminator(self):
        self.assertEqual(json_to_stream(["foo", "bar", None]), ("foo", "bar", None))

    def test_explicit_marker(self):
        s = json_to_stream(["n", {"$marker": True}, {"$kind": "DOUBLE"}, 1.5, None])
        self.assertEqual(s, ("n", MARKER, KIND_DOUBLE, 1.5, None))
        self.assertIs(s[1], MARKER)

    def test_raw_tag(self):
        s = json_to_stream(["n", {"$marker": True}, 999, 1, None])
        self.assertEqual(s[2], 999)

    def test_typed_shorthand(self):
        s = json_to_stream(["n", {"$type": "INT32", "$value": 5}, None])
        self.assertEqual(s, ("n", MARKER, KIND_INT32, 5, None))

    def test_nested_stream_value_with_marker(self):
        s = json_to_stream(["d", {"$type": "BCON_DOCUMENT", "$value": [
            "a", {"$marker": True}, {"$kind": "INT32"}, 1, None]}, None])
        self.assertEqual(s, ("d", MARKER, KIND_BCON_DOCUMENT, ("a", MARKER, KIND_INT32, 1, None), None))
        self.assertIs(s[3][1], MARKER)

    def test_nested_array_after_explicit_tag(self):
        s = json_to_stream(["xs", {"$marker": True}, {"$kind": "BCON_ARRAY"},
                            [{"$type": "INT32", "$value": 7}, None], None])
        self.assertEqual(s, ("xs", MARKER, KIND_BCON_ARRAY, (MARKER, KIND_INT32, 7, None), None))
        doc = convert(s)
        self.assertEqual(doc.to_dict(), {"xs": [7]})

    def test_payload_less_shorthand(self):
        s = json_to_stream(["n", {"$type": "NULL"}, None])
        self.assertEqual(s, ("n", MARKER, KIND_NULL, None, None))

    def test_stray_cells_kept(self):
        self.assertEqual(json_to_stream(["a", 3, None]), ("a", 3, None))

    def test_unknown_label(self):
        with self.assertRaises(BconError) as ctx:
            json_to_stream(["n", {"$type": "FLOAT", "$value": 1.0}, None])
        self.assertEqual(ctx.exception.code, ERR_UNRECOGNIZED_KIND)

    def test_top_level_must_be_array(self):
        with self.assertRaises(BconError) as ctx:
            json_to_stream({"foo": "bar"})
        self.assertEqual(ctx.exception.code, ERR_UNRECOGNIZED_KIND)


class TestPayloads(unittest.TestCase):
    def payload(self, label, value):
        return json_to_stream(["k", {"$type": label, "$value": value}, None])[3]

    def test_pair_becomes_tuple(self):
        self.assertEqual(self.payload("TIMESTAMP", [1, 2]), (1, 2))

    def test_stream(self):
        self.assertEqual(self.payload("BCON_DOCUMENT", {"$stream": ["a", "b", None]}),
                         ("a", "b", None))

    def test_document(self):
        d = self.payload("BSON_DOCUMENT", {"$document": ["a", "b", None]})
        self.assertIsInstance(d, Document)
        self.assertEqual(d.to_dict(), {"a": "b"})

    def test_array(self):
        d = self.payload("BSON_ARRAY", {"$array": ["a", None]})
        self.assertEqual(d.to_dict(), {"0": "a"})

    def test_binary(self):
        self.assertEqual(self.payload("BINARY", {"$binary": {"subtype": 4, "base64": "AQI="}}),
                         Binary(4, b"\x01\x02"))

    def test_bad_binary(self):
        with self.assertRaises(BconError):
            self.payload("BINARY", {"$binary": {"base64": "!!"}})

    def test_oid(self):
        self.assertEqual(self.payload("OID", {"$oid": OID_HEX}), ObjectId(OID_HEX))

    def test_code_with_scope(self):
        c = self.payload("CODE_W_SCOPE", {"$code": "f()", "$scope": ["x", "y", None]})
        self.assertEqual(c, Code("f()", ("x", "y", None)))

    def test_regex(self):
        self.assertEqual(self.payload("REGEX", {"$regex": ["^a", "i"]}), Regex("^a", "i"))

    def test_timestamp(self):
        self.assertEqual(self.payload("TIMESTAMP", {"$timestamp": [100, 1000]}),
                         Timestamp(100, 1000))

    def test_dbpointer(self):
        self.assertEqual(self.payload("DBPOINTER", {"$dbpointer": ["coll", OID_HEX]}),
                         DBPointer("coll", ObjectId(OID_HEX)))

    def test_date(self):
        self.assertEqual(self.payload("DATE_TIME", {"$date": 1231111012}), 1231111012)

    def test_unknown_object(self):
        with self.assertRaises(BconError) as ctx:
            self.payload("UTF8", {"$nope": 1})
        self.assertEqual(ctx.exception.code, ERR_UNRECOGNIZED_KIND)


class TestParseStream(unittest.TestCase):
    def test_bytes_in(self):
        s = parse_stream(b'["foo", {"$type": "BINARY", "$value": [0, "x"]}, null]')
        self.assertEqual(s[2], KIND_BINARY)

    def test_converts(self):
        s = parse_stream(b'["n", {"$type": "DOUBLE", "$value": 10.0}, null]')
        self.assertEqual(convert(s).to_dict(), {"n": 10.0})

    def test_not_json(self):
        with self.assertRaises(json.JSONDecodeError):
            parse_stream(b"[foo")


if __name__ == "__main__":
    unittest.main()
