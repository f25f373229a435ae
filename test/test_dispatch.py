#!/usr/bin/env python
import re
import warnings
from datetime import datetime, timezone
from decimal import Decimal
from unittest import TestCase
from uuid import UUID

import bson
import bson.binary
import bson.min_key
import bson.objectid
import bson.regex
import bson.timestamp
from bson.son import SON

import bson_extjson
from bson_extjson import (MAX_KEY, MIN_KEY, UNDEFINED, Binary, Code,
                          DatetimeMS, InvalidHex, MissingTimezoneWarning,
                          ObjectId, Regex, Symbol, Timestamp, TypeMismatch,
                          UnknownSerializerError, from_json, to_json,
                          unpack_timestamp)
from bson_extjson.types import BINARY_SUBTYPE, USER_DEFINED_SUBTYPE


class TestToJson(TestCase):
    def test_scalars_pass_through(self):
        for value in (None, True, False, 0, -12, 1.5, "plop"):
            self.assertEqual(to_json(value), value)

    def test_bson_values(self):
        self.assertEqual(to_json(Code("foo()")), {"$javascript": "foo()"})
        self.assertEqual(to_json(Timestamp(1412180887, 6)), {
            "$time": 1412180887, "$i": 6,
            "$timestamp": {"t": 1412180887, "i": 6},
        })
        self.assertEqual(to_json(UNDEFINED), {"$undefined": True})
        self.assertEqual(to_json(MIN_KEY), {"$minKey": 1})
        self.assertEqual(to_json(MAX_KEY), {"$maxKey": 1})

    def test_python_values(self):
        self.assertEqual(to_json(b"\x01\x02"), {"$binary": "0102", "$type": "00"})
        value = UUID("12345678-1234-5678-1234-567812345678")
        self.assertEqual(to_json(value), {"$binary": value.hex, "$type": "04"})
        self.assertEqual(to_json(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)),
                         {"$date": 1000})
        self.assertEqual(to_json(Decimal("1.5")), 1.5)
        self.assertEqual(to_json(("a", 1)), ["a", 1])

    def test_naive_datetime_warns(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            self.assertEqual(to_json({"at": datetime(1970, 1, 1)}), {"at": {"$date": 0}})
        self.assertTrue(any(issubclass(w.category, MissingTimezoneWarning) for w in caught))

    def test_unknown(self):
        with self.assertRaises(UnknownSerializerError):
            to_json({"a": [object()]})

    def test_on_unknown(self):
        class Point:
            def __init__(self, x, y):
                self.x = x
                self.y = y

        js = to_json({"p": Point(1, 2)}, on_unknown=lambda p: {"x": p.x, "y": p.y})
        self.assertEqual(js, {"p": {"x": 1, "y": 2}})


class TestFromJson(TestCase):
    def test_generic_envelopes(self):
        self.assertEqual(from_json({"$oid": "5150806842b329bae81de713"}),
                         ObjectId("5150806842b329bae81de713"))
        self.assertEqual(from_json({"$binary": "0102"}), Binary(b"\x01\x02", USER_DEFINED_SUBTYPE))
        self.assertEqual(from_json({"$symbol": "sss"}), Symbol("sss"))
        self.assertEqual(from_json({"$date": {"$numberLong": "5"}}), DatetimeMS(5))
        self.assertIs(from_json({"$undefined": True}), UNDEFINED)

    def test_guard_exactness(self):
        js = {"$oid": "5150806842b329bae81de713", "extra": 1}
        self.assertEqual(from_json(js), {"$oid": "5150806842b329bae81de713", "extra": 1})

    def test_generic_degrades_invalid_envelopes(self):
        for js in ({"$oid": "nothex"}, {"$regex": 98, "$options": "i"},
                   {"$minKey": 2}, {"$undefined": False},
                   {"$timestamp": {"t": 1}}, {"$date": {"$numberLong": "soon"}}):
            self.assertEqual(from_json(js), js)

    def test_generic_strings_stay_strings(self):
        self.assertEqual(from_json("0102"), "0102")

    def test_expected_type(self):
        self.assertEqual(from_json("0102", Binary), Binary(b"\x01\x02", USER_DEFINED_SUBTYPE))
        self.assertEqual(from_json({"$binary": "0102", "$type": "00"}, Binary),
                         Binary(b"\x01\x02", BINARY_SUBTYPE))
        with self.assertRaises(InvalidHex):
            from_json({"$oid": "nothex-nothex-nothex-xxx"}, ObjectId)

    def test_expected_regex_type_mismatch(self):
        with self.assertRaises(TypeMismatch) as ctx:
            from_json({"$regex": 98, "$options": "i"}, Regex)
        self.assertEqual(ctx.exception.path, ("$regex",))

    def test_expected_primitives(self):
        self.assertEqual(from_json("a", str), "a")
        self.assertEqual(from_json(1, float), 1)
        with self.assertRaises(TypeMismatch):
            from_json(1, bool)
        with self.assertRaises(TypeMismatch):
            from_json(True, int)
        with self.assertRaises(TypeMismatch):
            from_json({}, list)

    def test_schema(self):
        doc = from_json({"_id": {"$oid": "5150806842b329bae81de713"}, "n": 1},
                        schema={"_id": ObjectId})
        self.assertEqual(doc, {"_id": ObjectId("5150806842b329bae81de713"), "n": 1})
        with self.assertRaises(TypeMismatch):
            from_json([], dict, schema={"_id": ObjectId})
        with self.assertRaises(TypeError):
            from_json({}, list, schema={})

    def test_unsupported_expected_type(self):
        with self.assertRaises(TypeError):
            from_json({}, set)


class TestDriverValues(TestCase):
    def test_write_driver_values(self):
        self.assertEqual(to_json({"_id": bson.ObjectId("5150806842b329bae81de713")}),
                         {"_id": {"$oid": "5150806842b329bae81de713"}})
        self.assertEqual(to_json(bson.Timestamp(1412180887, 6))["$timestamp"],
                         {"t": 1412180887, "i": 6})
        self.assertEqual(to_json(bson.Int64(1 << 40)), 1 << 40)
        self.assertEqual(to_json(bson.Binary(b"\x01", 0x80)), {"$binary": "01", "$type": "80"})

    def test_read_gives_driver_values(self):
        oid = from_json({"$oid": "5150806842b329bae81de713"})
        self.assertIsInstance(oid, bson.objectid.ObjectId)
        self.assertIsInstance(from_json({"$binary": "01"}), bson.binary.Binary)
        self.assertIsInstance(from_json({"$time": 1, "$i": 2}), bson.timestamp.Timestamp)
        self.assertIsInstance(from_json({"$regex": "^a"}), bson.regex.Regex)
        self.assertIsInstance(from_json({"$minKey": 1}), bson.min_key.MinKey)

    def test_code_is_not_a_plain_string(self):
        self.assertEqual(to_json(bson.Code("f()")), {"$javascript": "f()"})

    def test_son_and_compiled_pattern(self):
        doc = SON([("b", re.compile("^x", re.I)), ("a", 1)])
        js = to_json(doc)
        self.assertEqual(list(js), ["b", "a"])
        self.assertEqual(js["b"], {"$regex": "^x", "$options": "iu"})


class TestRoundTrip(TestCase):
    def test_document(self):
        doc = {
            "_id": ObjectId(),
            "bin": Binary(bytes(range(256)), 0x80),
            "code": Code("foo()"),
            "ts": unpack_timestamp(6065270725701271558),
            "at": DatetimeMS(1412180887123),
            "sym": Symbol("sss"),
            "re": Regex("^toto"),
            "nothing": UNDEFINED,
            "range": [MIN_KEY, MAX_KEY],
            "plain": {"$oid": "not an id", "n": None, "deep": [[{"$symbol": 1}]]},
        }
        js = to_json(doc)
        self.assertEqual(from_json(js), doc)
        self.assertEqual(to_json(from_json(js)), js)
        self.assertEqual(list(from_json(js)), list(doc))

    def test_module_exports(self):
        for name in bson_extjson.__all__:
            self.assertTrue(hasattr(bson_extjson, name), name)
