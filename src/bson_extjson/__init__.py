#!/usr/bin/python -OOOO
# vim: set fileencoding=utf8 shiftwidth=4 tabstop=4 textwidth=80 foldmethod=marker :
# Copyright (c) 2010, Kou Man Tong. All rights reserved.
# For licensing, see LICENSE file included in the package.
"""
Conversion between BSON values and MongoDB extended JSON.
Conventions taken from: https://www.mongodb.com/docs/manual/reference/mongodb-extended-json-v1/

Values that JSON cannot express are written as small objects keyed by
reserved "$" field names:
    ObjectId    {"$oid": <24 hex>}
    Binary      {"$binary": <hex>, "$type": <2 hex>}
    Code        {"$javascript": <code>} (plus "$scope" when it has one)
    Timestamp   {"$time": <t>, "$i": <i>, "$timestamp": {"t": <t>, "i": <i>}}
    DatetimeMS  {"$date": <epoch millis>}
    Symbol      {"$symbol": <name>}
    Regex       {"$regex": <pattern>, "$options": <options>}
    Undefined   {"$undefined": true}
    MinKey      {"$minKey": 1}
    MaxKey      {"$maxKey": 1}

An object is only read as one of these when its fields are exactly those of
the envelope; anything else is an ordinary document.
"""

from typing import Any, Mapping, Optional

from .codec import *
from .errors import *
from .types import *

__all__ = [
    "to_json", "from_json",
    "ObjectId", "Binary", "Code", "Timestamp", "DatetimeMS", "Symbol",
    "Regex", "Undefined", "MinKey", "MaxKey", "UNDEFINED", "MIN_KEY", "MAX_KEY",
    "pack_timestamp", "unpack_timestamp",
    "DecodeError", "TypeMismatch", "InvalidFormat", "InvalidLength",
    "InvalidHex", "MissingField", "UnknownSerializerError",
    "MissingTimezoneWarning",
]


def to_json(value: Any, on_unknown: OnUnknown=None) -> Any:
    """
    Given a BSON value, outputs its extended JSON value.

    on_unknown is an optional function called with any value that has no
    BSON counterpart; its result is converted in that value's place.
    """
    return write_value(value, (), on_unknown)


def from_json(value: Any, expected: Expected=None, schema: Optional[Mapping[str, Any]]=None) -> Any:
    """
    Given a JSON value, outputs the BSON value it encodes.

    Without expected, envelopes are recognized wherever they appear and
    everything else is kept as a document, array or scalar; this never
    fails. With expected (a BSON value class, str, int, float, bool, dict
    or list) the value must decode as that type or a DecodeError is raised.
    schema maps field names to expected types when expected is dict.
    """
    if schema is not None:
        if expected not in (None, dict):
            raise TypeError("schema only applies to documents")
        expected = schema
    return read_value(value, expected, ())
