#!/usr/bin/python -OOOO
# vim: set fileencoding=utf8 shiftwidth=4 tabstop=4 textwidth=80 foldmethod=marker :
# Copyright (c) 2010, Kou Man Tong. All rights reserved.
# Copyright (c) 2015, Ayun Park. All rights reserved.
# For licensing, see LICENSE file included in the package.
"""
Base codec functions for extended JSON.
"""
import logging
import re
import warnings
from abc import ABCMeta, abstractmethod
from binascii import a2b_hex, b2a_hex
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from uuid import UUID

from bson import RE_TYPE

from .errors import (DecodeError, InvalidFormat, InvalidHex, InvalidLength,
                     MissingField, Path, TypeMismatch, UnknownSerializerError)
from .guard import BOOLEAN, INTEGER, NUMBER, OBJECT, STRING, Envelope
from .types import (BINARY_SUBTYPE, INT64_MAX, INT64_MIN, MAX_KEY, MIN_KEY,
                    UINT32_MAX, UNDEFINED, USER_DEFINED_SUBTYPE, Binary, Code,
                    DatetimeMS, MaxKey, MinKey, MissingTimezoneWarning,
                    ObjectId, Regex, Symbol, Timestamp, Undefined)

logger = logging.getLogger(__name__)

AnyDict = Dict[str, Any]
AnyList = List[Any]
OnUnknown = Optional[Callable[[Any], Any]]
Expected = Union[type, Mapping[str, Any], List[Any], None]

INTEGER_STRING = re.compile(r"-?[0-9]+")

# Extended JSON option letters, in the order they are written.
REGEX_OPTIONS = (
    ("i", re.IGNORECASE),
    ("l", re.LOCALE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
    ("u", re.UNICODE),
    ("x", re.VERBOSE),
)


def decode_hex(text: str, path: Path, length: Optional[int]=None) -> bytes:
    if length is not None and len(text) != length:
        raise InvalidLength(path, f"expected {length} hex characters, got {len(text)}")
    if len(text) % 2:
        raise InvalidLength(path, "odd number of hex characters")
    try:
        return a2b_hex(text)
    except ValueError as e:
        raise InvalidHex(path, f"not a hex string: {text!r}") from e


def encode_hex(value: bytes) -> str:
    return b2a_hex(value).decode("ascii")


class ScalarCodec(metaclass=ABCMeta):
    """
    Reads the accepted JSON shapes of one BSON type and writes its
    canonical shape.
    """
    bson_type: type = object
    envelopes: Tuple[Envelope, ...] = ()

    def matches(self, value: Any) -> bool:
        return any(envelope.matches(value) for envelope in self.envelopes)

    def select(self, value: Any, path: Path) -> Envelope:
        if not isinstance(value, dict):
            raise TypeMismatch(path, "object", value)
        for envelope in self.envelopes:
            if envelope.matches(value):
                return envelope
        # Report against the most specific layout the field names allow.
        candidates = [e for e in self.envelopes if e.keys.issubset(value)]
        if candidates:
            return max(candidates, key=lambda e: len(e.keys))
        return self.envelopes[0]

    def read(self, value: Any, path: Path=()) -> Any:
        envelope = self.select(value, path)
        return self.build(envelope, envelope.unpack(value, path), path)

    @abstractmethod
    def build(self, envelope: Envelope, fields: AnyDict, path: Path) -> Any:
        pass

    @abstractmethod
    def write(self, value: Any) -> AnyDict:
        pass


class ObjectIdCodec(ScalarCodec):
    bson_type = ObjectId
    envelopes = (Envelope({"$oid": STRING}),)

    def build(self, envelope, fields, path):
        return ObjectId(decode_hex(fields["$oid"], path + ("$oid",), 24))

    def write(self, value):
        return {"$oid": str(value)}


class BinaryCodec(ScalarCodec):
    bson_type = Binary
    envelopes = (Envelope({"$binary": STRING}, {"$type": STRING}),)

    def read(self, value, path=()):
        # A bare hex string is user defined binary data.
        if isinstance(value, str):
            return Binary(decode_hex(value, path), USER_DEFINED_SUBTYPE)
        return super().read(value, path)

    def build(self, envelope, fields, path):
        data = decode_hex(fields["$binary"], path + ("$binary",))
        if "$type" not in fields:
            return Binary(data, USER_DEFINED_SUBTYPE)
        subtype = fields["$type"]
        type_path = path + ("$type",)
        if not 1 <= len(subtype) <= 2:
            raise InvalidLength(type_path, f"expected 1 or 2 hex characters, got {len(subtype)}")
        try:
            return Binary(data, int(subtype, 16))
        except ValueError as e:
            raise InvalidHex(type_path, f"not a hex string: {subtype!r}") from e

    def write(self, value):
        return {"$binary": encode_hex(value), "$type": f"{value.subtype:02x}"}


class CodeCodec(ScalarCodec):
    """JavaScript code, with the variables it closes over in $scope."""
    bson_type = Code
    envelopes = (Envelope({"$javascript": STRING}, {"$scope": OBJECT}),)

    def build(self, envelope, fields, path):
        scope = fields.get("$scope")
        if scope is not None:
            scope = read_document(scope, None, path + ("$scope",))
        return Code(fields["$javascript"], scope)

    def write(self, value):
        if value.scope is None:
            return {"$javascript": str(value)}
        return {"$javascript": str(value), "$scope": write_document(value.scope, ("$scope",))}


TIMESTAMP_PARTS = Envelope({"t": INTEGER, "i": INTEGER})


class TimestampCodec(ScalarCodec):
    """
    Legacy {"$time", "$i"} and strict {"$timestamp": {"t", "i"}} syntaxes.

    The writer emits both at once, so that object is accepted too, provided
    both halves agree.
    """
    bson_type = Timestamp
    legacy = Envelope({"$time": INTEGER, "$i": INTEGER})
    strict = Envelope({"$timestamp": OBJECT})
    both = Envelope({"$time": INTEGER, "$i": INTEGER, "$timestamp": OBJECT})
    envelopes = (legacy, strict, both)

    @staticmethod
    def _part(value: int, path: Path) -> int:
        if not 0 <= value <= UINT32_MAX:
            raise InvalidFormat(path, f"not an unsigned 32-bit integer: {value}")
        return value

    def _read_legacy(self, fields: AnyDict, path: Path) -> Timestamp:
        return Timestamp(self._part(fields["$time"], path + ("$time",)),
                         self._part(fields["$i"], path + ("$i",)))

    def _read_strict(self, fields: AnyDict, path: Path) -> Timestamp:
        path = path + ("$timestamp",)
        parts = TIMESTAMP_PARTS.unpack(fields["$timestamp"], path)
        return Timestamp(self._part(parts["t"], path + ("t",)),
                         self._part(parts["i"], path + ("i",)))

    def build(self, envelope, fields, path):
        if envelope is self.legacy:
            return self._read_legacy(fields, path)
        strict = self._read_strict(fields, path)
        if envelope is self.both and self._read_legacy(fields, path) != strict:
            raise InvalidFormat(path + ("$timestamp",), "disagrees with $time and $i")
        return strict

    def write(self, value):
        return {
            "$time": value.time,
            "$i": value.inc,
            "$timestamp": {"t": value.time, "i": value.inc},
        }


NUMBER_LONG = Envelope({"$numberLong": (NUMBER, STRING)})


def read_millis(value: Union[int, float, str], path: Path) -> int:
    if isinstance(value, str):
        if not INTEGER_STRING.fullmatch(value):
            raise InvalidFormat(path, f"not an integer: {value!r}")
        value = int(value)
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidFormat(path, f"not a whole number of milliseconds: {value}")
        value = int(value)
    if not INT64_MIN <= value <= INT64_MAX:
        raise InvalidFormat(path, f"not a signed 64-bit integer: {value}")
    return value


class DateTimeCodec(ScalarCodec):
    """UTC datetimes as milliseconds since the epoch."""
    bson_type = DatetimeMS
    envelopes = (Envelope({"$date": (NUMBER, OBJECT)}),)

    def build(self, envelope, fields, path):
        path = path + ("$date",)
        millis = fields["$date"]
        if isinstance(millis, dict):
            millis = NUMBER_LONG.unpack(millis, path)["$numberLong"]
            path = path + ("$numberLong",)
        return DatetimeMS(read_millis(millis, path))

    def write(self, value):
        return {"$date": int(value)}


class SymbolCodec(ScalarCodec):
    bson_type = Symbol
    envelopes = (Envelope({"$symbol": STRING}),)

    def build(self, envelope, fields, path):
        return Symbol(fields["$symbol"])

    def write(self, value):
        return {"$symbol": value.name}


class RegexCodec(ScalarCodec):
    bson_type = Regex
    envelopes = (Envelope({"$regex": STRING}, {"$options": STRING}),)
    letters = frozenset(letter for letter, _ in REGEX_OPTIONS)

    def build(self, envelope, fields, path):
        options = fields.get("$options", "")
        unknown = set(options) - self.letters
        if unknown:
            raise InvalidFormat(path + ("$options",), f"unknown options: {''.join(sorted(unknown))}")
        return Regex(fields["$regex"], options)

    def write(self, value):
        pattern = value.pattern
        if isinstance(pattern, bytes):
            pattern = pattern.decode("utf-8")
        options = "".join(letter for letter, flag in REGEX_OPTIONS if value.flags & flag)
        return {"$regex": pattern, "$options": options}


class UnitCodec(ScalarCodec):
    """Payload-free values written as {key: marker}."""
    key = ""
    marker: Any = None
    singleton: Any = None

    def build(self, envelope, fields, path):
        if fields[self.key] != self.marker:
            raise InvalidFormat(path + (self.key,), f"expected {self.marker!r}")
        return self.singleton

    def write(self, value):
        return {self.key: self.marker}


class UndefinedCodec(UnitCodec):
    bson_type = Undefined
    envelopes = (Envelope({"$undefined": BOOLEAN}),)
    key = "$undefined"
    marker = True
    singleton = UNDEFINED


class MinKeyCodec(UnitCodec):
    bson_type = MinKey
    envelopes = (Envelope({"$minKey": INTEGER}),)
    key = "$minKey"
    marker = 1
    singleton = MIN_KEY


class MaxKeyCodec(UnitCodec):
    bson_type = MaxKey
    envelopes = (Envelope({"$maxKey": INTEGER}),)
    key = "$maxKey"
    marker = 1
    singleton = MAX_KEY


CODECS: Tuple[ScalarCodec, ...] = (
    ObjectIdCodec(),
    BinaryCodec(),
    CodeCodec(),
    TimestampCodec(),
    DateTimeCodec(),
    SymbolCodec(),
    RegexCodec(),
    UndefinedCodec(),
    MinKeyCodec(),
    MaxKeyCodec(),
)

codecs_by_type: Dict[type, ScalarCodec] = {codec.bson_type: codec for codec in CODECS}


def codec_for(bson_type: type) -> ScalarCodec:
    try:
        return codecs_by_type[bson_type]
    except KeyError as e:
        raise TypeError(f"No extended JSON codec for {bson_type!r}") from e


def find_codec(value: Any) -> Optional[ScalarCodec]:
    codec = codecs_by_type.get(type(value))
    if codec is None:
        # Subclasses of the driver types.
        for candidate in CODECS:
            if isinstance(value, candidate.bson_type):
                return candidate
    return codec


# BSON -> JSON

def write_value(value: Any, path: Path=(), on_unknown: OnUnknown=None) -> Any:
    # Code is a str and Binary a bytes, so the driver types go first.
    codec = find_codec(value)
    if codec is not None:
        return codec.write(value)
    elif value is None or isinstance(value, (bool, int, float, str)):
        return value
    elif isinstance(value, Mapping):
        return write_document(value, path, on_unknown)
    elif isinstance(value, (list, tuple)):
        return write_array(value, path, on_unknown)
    elif isinstance(value, bytes):
        return codec_for(Binary).write(Binary(value, BINARY_SUBTYPE))
    elif isinstance(value, UUID):
        return codec_for(Binary).write(Binary.from_uuid(value))
    elif isinstance(value, datetime):
        if value.tzinfo is None:
            warnings.warn(MissingTimezoneWarning(), None, 2)
        return codec_for(DatetimeMS).write(DatetimeMS(value))
    elif isinstance(value, RE_TYPE):
        return codec_for(Regex).write(Regex.from_native(value))
    elif isinstance(value, Decimal):
        return float(value)
    elif on_unknown is not None:
        return write_value(on_unknown(value), path, on_unknown)
    else:
        raise UnknownSerializerError(path[-1] if path else "", value)


def write_document(doc: Mapping[str, Any], path: Path=(), on_unknown: OnUnknown=None) -> AnyDict:
    return {name: write_value(value, path + (name,), on_unknown)
            for name, value in doc.items()}


def write_array(array: Union[AnyList, Tuple[Any, ...]], path: Path=(), on_unknown: OnUnknown=None) -> AnyList:
    return [write_value(value, path + (i,), on_unknown)
            for i, value in enumerate(array)]


# JSON -> BSON

PRIMITIVES: Dict[type, Tuple[str, Callable[[Any], bool]]] = {
    str: STRING,
    bool: BOOLEAN,
    int: INTEGER,
    float: NUMBER,
}


def read_generic(value: Any, path: Path=()) -> Any:
    """
    Decodes value without an expected type: envelopes become their BSON
    values, anything else stays a document, array or scalar.
    """
    if isinstance(value, dict):
        for codec in CODECS:
            if not codec.matches(value):
                continue
            try:
                return codec.read(value, path)
            except DecodeError as e:
                logger.debug("Reading %s as a document: %s", codec.bson_type.__name__, e)
            break
        return read_document(value, None, path)
    elif isinstance(value, list):
        return read_array(value, None, path)
    return value


def read_value(value: Any, expected: Expected=None, path: Path=()) -> Any:
    """
    Decodes value as expected, which is None for a generic decode, a BSON
    value class, a primitive type, dict or a schema mapping for documents,
    and list or a one element list of the item type for arrays.
    """
    if expected is None:
        return read_generic(value, path)
    elif isinstance(expected, Mapping) or expected is dict:
        if not isinstance(value, dict):
            raise TypeMismatch(path, "object", value)
        return read_document(value, None if expected is dict else expected, path)
    elif isinstance(expected, list) or expected is list:
        if not isinstance(value, list):
            raise TypeMismatch(path, "array", value)
        item = expected[0] if isinstance(expected, list) and expected else None
        return read_array(value, item, path)
    elif expected in PRIMITIVES:
        name, check = PRIMITIVES[expected]
        if not check(value):
            raise TypeMismatch(path, name, value)
        return value
    return codec_for(expected).read(value, path)


def read_document(obj: AnyDict, schema: Optional[Mapping[str, Any]]=None, path: Path=()) -> AnyDict:
    """
    Decodes every field of obj, in order. Fields named by schema are read
    as the type it gives and must be present. The first failing field
    aborts the whole document.
    """
    if schema:
        for name in schema:
            if name not in obj:
                raise MissingField(path + (name,))
    retval = {}
    for name, value in obj.items():
        expected = schema.get(name) if schema else None
        retval[name] = read_value(value, expected, path + (name,))
    return retval


def read_array(array: AnyList, item: Expected=None, path: Path=()) -> AnyList:
    return [read_value(value, item, path + (i,))
            for i, value in enumerate(array)]
