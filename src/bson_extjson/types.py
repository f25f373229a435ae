#!/usr/bin/python -OOOO
# vim: set fileencoding=utf8 shiftwidth=4 tabstop=4 textwidth=80 foldmethod=marker :
# Copyright (c) 2010, Kou Man Tong. All rights reserved.
# For licensing, see LICENSE file included in the package.
"""
BSON value types that have no native JSON counterpart.

Documents, arrays, strings, numbers, booleans and null are plain Python
values. ObjectId, Binary, Code, Timestamp, DatetimeMS, Regex, MinKey and
MaxKey are the driver's own classes from the bson package; Symbol and
Undefined, which the driver decodes to str and None, are defined here.
"""
from typing import Any, Tuple

from bson.binary import (BINARY_SUBTYPE, OLD_UUID_SUBTYPE, USER_DEFINED_SUBTYPE,
                         UUID_SUBTYPE, Binary)
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

UINT32_MAX = 0xFFFFFFFF
INT64_MIN = -0x8000000000000000
INT64_MAX = 0x7FFFFFFFFFFFFFFF


class MissingTimezoneWarning(RuntimeWarning):
    def __init__(self, *args: object):
        if len(args) < 1:
            args = ("Input datetime object has no tzinfo, assuming UTC.",)
        super().__init__(*args)


class BSONValue:
    """
    Base of the immutable value classes defined here.

    Equality and hashing go through _key(), and values of different classes
    never compare equal.
    """
    __slots__ = ()

    def _key(self) -> Tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return True
        return not result

    def __hash__(self) -> int:
        return hash((type(self).__name__,) + self._key())

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")


class Symbol(BSONValue):
    __slots__ = ("name",)

    def __init__(self, name: str):
        object.__setattr__(self, "name", name)

    def _key(self) -> Tuple[Any, ...]:
        return (self.name,)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Symbol({self.name!r})"


class Undefined(BSONValue):
    __slots__ = ()

    def __repr__(self) -> str:
        return "Undefined()"


UNDEFINED = Undefined()
MIN_KEY = MinKey()
MAX_KEY = MaxKey()


def pack_timestamp(value: Timestamp) -> int:
    """The 64-bit form of value: seconds high, increment low."""
    return (value.time << 32) | value.inc


def unpack_timestamp(value: int) -> Timestamp:
    if not 0 <= value <= 0xFFFFFFFFFFFFFFFF:
        raise ValueError(f"Timestamp must be an unsigned 64-bit int, got {value}")
    return Timestamp(value >> 32, value & UINT32_MAX)
