"""BSON writer and reader tests.

Byte layouts are checked directly for a few element types; the rest go
through the reader, which validates structure on the way.
"""

from __future__ import annotations

import datetime
import json
import os
import struct
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bcon import (
    ERR_APPEND,
    ERR_BSON,
    SUBTYPE_UUID,
    BconError,
    Binary,
    Code,
    DBPointer,
    Document,
    DocumentWriter,
    MaxKey,
    MinKey,
    ObjectId,
    Regex,
    Timestamp,
    Undefined,
)

OID_HEX = "56e1fc72e0c917e9c4714161"


def _one(fill):
    w = DocumentWriter()
    fill(w)
    return bytes(w.finish())


# ── Byte layout ───────────────────────────────────────────────

class TestLayout(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(bytes(DocumentWriter().finish()), b"\x05\x00\x00\x00\x00")

    def test_int32(self):
        self.assertEqual(_one(lambda w: w.append_int32("a", 1)),
                         b"\x0c\x00\x00\x00\x10a\x00\x01\x00\x00\x00\x00")

    def test_bool(self):
        self.assertEqual(_one(lambda w: w.append_bool("a", True)),
                         b"\x09\x00\x00\x00\x08a\x00\x01\x00")

    def test_timestamp_low_word_is_increment(self):
        data = _one(lambda w: w.append_timestamp("a", 1, 2))
        self.assertEqual(data[7:15], struct.pack("<II", 2, 1))

    def test_regex_flags_sorted(self):
        data = _one(lambda w: w.append_regex("a", "x", "mi"))
        self.assertEqual(data[4:-1], b"\x0ba\x00x\x00im\x00")

    def test_length_prefix_matches(self):
        data = _one(lambda w: w.append_utf8("key", "value"))
        self.assertEqual(struct.unpack("<i", data[:4])[0], len(data))

    def test_code_w_scope_length(self):
        scope = DocumentWriter()
        scope.append_double("x", 1.0)
        data = _one(lambda w: w.append_code_w_scope("f", "print x;", scope.finish()))
        # type byte + "f\0" precede the value
        total = struct.unpack("<i", data[7:11])[0]
        self.assertEqual(total, len(data) - 7 - 1)


# ── Writer rejections ─────────────────────────────────────────

class TestWriterErrors(unittest.TestCase):
    def assertRejects(self, fill):
        with self.assertRaises(BconError) as ctx:
            _one(fill)
        self.assertEqual(ctx.exception.code, ERR_APPEND)

    def test_int32_range(self):
        self.assertRejects(lambda w: w.append_int32("a", 2 ** 31))
        self.assertRejects(lambda w: w.append_int32("a", -2 ** 31 - 1))

    def test_int64_range(self):
        self.assertRejects(lambda w: w.append_int64("a", 2 ** 63))

    def test_int_is_not_bool(self):
        self.assertRejects(lambda w: w.append_bool("a", 1))

    def test_bool_is_not_int(self):
        self.assertRejects(lambda w: w.append_int32("a", True))

    def test_double_needs_number(self):
        self.assertRejects(lambda w: w.append_double("a", "1.0"))

    def test_key_with_nul(self):
        self.assertRejects(lambda w: w.append_utf8("a\x00", "x"))

    def test_lone_surrogate(self):
        self.assertRejects(lambda w: w.append_utf8("a", "\ud800"))

    def test_timestamp_negative(self):
        self.assertRejects(lambda w: w.append_timestamp("a", -1, 0))

    def test_binary_subtype_range(self):
        self.assertRejects(lambda w: w.append_binary("a", 256, b""))

    def test_oid_type(self):
        self.assertRejects(lambda w: w.append_oid("a", OID_HEX))

    def test_scope_must_be_document(self):
        self.assertRejects(lambda w: w.append_code_w_scope("a", "x", {}))

    def test_double_from_huge_int(self):
        self.assertRejects(lambda w: w.append_double("a", 10 ** 400))

    def test_invalid_document(self):
        self.assertRejects(lambda w: w.append_document("a", Document(b"garbage")))

    def test_invalid_array(self):
        self.assertRejects(lambda w: w.append_array("a", Document(bytes(_everything())[:-3])))

    def test_invalid_scope(self):
        self.assertRejects(lambda w: w.append_code_w_scope("a", "x", Document(b"\x06\x00\x00\x00\x00")))

    def test_extreme_date_time_document_accepted(self):
        inner = _one(lambda w: w.append_date_time("t", 2 ** 62))
        outer = _one(lambda w: w.append_document("d", Document(inner)))
        self.assertIn(inner, outer)


class TestChildWriters(unittest.TestCase):
    def test_parent_locked_while_child_open(self):
        w = DocumentWriter()
        w.begin_document("a")
        with self.assertRaises(BconError):
            w.append_null("b")

    def test_finish_with_open_child(self):
        w = DocumentWriter()
        w.begin_array("a")
        with self.assertRaises(BconError):
            w.finish()

    def test_end_wrong_child(self):
        w = DocumentWriter()
        w.begin_document("a")
        with self.assertRaises(BconError):
            w.end_document(DocumentWriter())

    def test_end_wrong_kind(self):
        w = DocumentWriter()
        child = w.begin_document("a")
        with self.assertRaises(BconError):
            w.end_array(child)

    def test_finished_writer_is_spent(self):
        w = DocumentWriter()
        w.finish()
        with self.assertRaises(BconError):
            w.append_null("a")

    def test_child_lands_in_order(self):
        w = DocumentWriter()
        w.append_int32("first", 1)
        child = w.begin_document("mid")
        child.append_int32("x", 2)
        w.end_document(child)
        w.append_int32("last", 3)
        self.assertEqual(w.finish().to_dict(), {"first": 1, "mid": {"x": 2}, "last": 3})


# ── Reader ────────────────────────────────────────────────────

def _everything():
    w = DocumentWriter()
    w.append_utf8("s", "str")
    w.append_double("d", 2.5)
    w.append_int32("i", -7)
    w.append_int64("l", 2 ** 40)
    w.append_bool("b", False)
    w.append_null("n")
    w.append_undefined("u")
    w.append_minkey("lo")
    w.append_maxkey("hi")
    w.append_oid("o", ObjectId(OID_HEX))
    w.append_date_time("t", 1231111012)
    w.append_timestamp("ts", 100, 1000)
    w.append_binary("bin", SUBTYPE_UUID, b"\x01\x02")
    w.append_symbol("sym", "sy")
    w.append_regex("re", "^a", "i")
    w.append_dbpointer("db", "coll", ObjectId(OID_HEX))
    w.append_code("c", "f()")
    arr = w.begin_array("arr")
    arr.append_int32("0", 1)
    w.end_array(arr)
    return w.finish()


class TestReader(unittest.TestCase):
    def test_to_dict(self):
        d = _everything().to_dict()
        self.assertEqual(d["s"], "str")
        self.assertEqual(d["d"], 2.5)
        self.assertEqual(d["i"], -7)
        self.assertEqual(d["l"], 2 ** 40)
        self.assertIs(d["b"], False)
        self.assertIsNone(d["n"])
        self.assertIs(d["u"], Undefined)
        self.assertIs(d["lo"], MinKey)
        self.assertIs(d["hi"], MaxKey)
        self.assertEqual(d["o"], ObjectId(OID_HEX))
        self.assertEqual(d["t"], datetime.datetime(1970, 1, 15, 5, 58, 31, 12000,
                                                   tzinfo=datetime.timezone.utc))
        self.assertEqual(d["ts"], Timestamp(100, 1000))
        self.assertEqual(d["bin"], Binary(SUBTYPE_UUID, b"\x01\x02"))
        self.assertEqual(d["sym"], "sy")
        self.assertEqual(d["re"], Regex("^a", "i"))
        self.assertEqual(d["db"], DBPointer("coll", ObjectId(OID_HEX)))
        self.assertEqual(d["c"], Code("f()"))
        self.assertEqual(d["arr"], [1])

    def test_to_json(self):
        j = json.loads(_everything().to_json())
        self.assertEqual(j["l"], {"$numberLong": str(2 ** 40)})
        self.assertEqual(j["o"], {"$oid": OID_HEX})
        self.assertEqual(j["t"], {"$date": {"$numberLong": "1231111012"}})
        self.assertEqual(j["ts"], {"$timestamp": {"t": 100, "i": 1000}})
        self.assertEqual(j["bin"], {"$binary": {"base64": "AQI=", "subType": "04"}})
        self.assertEqual(j["re"], {"$regularExpression": {"pattern": "^a", "options": "i"}})
        self.assertEqual(j["u"], {"$undefined": True})
        self.assertEqual(j["lo"], {"$minKey": 1})
        self.assertEqual(j["arr"], [1])

    def test_nan_in_json(self):
        w = DocumentWriter()
        w.append_double("x", float("nan"))
        self.assertEqual(json.loads(w.finish().to_json()), {"x": {"$numberDouble": "NaN"}})

    def test_from_bytes_valid(self):
        data = bytes(_everything())
        self.assertEqual(Document.from_bytes(data), _everything())

    def test_from_bytes_extreme_date_time(self):
        data = _one(lambda w: w.append_date_time("t", 2 ** 62))
        self.assertEqual(bytes(Document.from_bytes(data)), data)

    def assertBad(self, data):
        with self.assertRaises(BconError) as ctx:
            Document.from_bytes(data)
        self.assertEqual(ctx.exception.code, ERR_BSON)

    def test_truncated(self):
        self.assertBad(bytes(_everything())[:-3])

    def test_bad_length(self):
        self.assertBad(b"\x06\x00\x00\x00\x00")

    def test_trailing_bytes(self):
        self.assertBad(b"\x05\x00\x00\x00\x00\x00")

    def test_missing_nul(self):
        self.assertBad(b"\x05\x00\x00\x00\x01")

    def test_bad_bool_byte(self):
        self.assertBad(b"\x09\x00\x00\x00\x08a\x00\x02\x00")

    def test_unknown_type_byte(self):
        self.assertBad(b"\x08\x00\x00\x00\x20a\x00\x00")


class TestObjectId(unittest.TestCase):
    def test_generated_ids_differ(self):
        self.assertNotEqual(ObjectId(), ObjectId())

    def test_hex_round_trip(self):
        self.assertEqual(str(ObjectId(OID_HEX)), OID_HEX)

    def test_generation_time(self):
        self.assertEqual(ObjectId(OID_HEX).generation_time, 0x56E1FC72)

    def test_bad_hex(self):
        with self.assertRaises(BconError) as ctx:
            ObjectId("zz" * 12)
        self.assertEqual(ctx.exception.code, ERR_APPEND)

    def test_bad_length(self):
        with self.assertRaises(BconError):
            ObjectId(b"short")


if __name__ == "__main__":
    unittest.main()
