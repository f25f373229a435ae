#!/usr/bin/python -OOOO
# vim: set fileencoding=utf8 shiftwidth=4 tabstop=4 textwidth=80 foldmethod=marker :
# Copyright (c) 2010, Kou Man Tong. All rights reserved.
# For licensing, see LICENSE file included in the package.
"""
Errors raised while converting between JSON and BSON values.
"""
from typing import Any, Tuple, Union

Key = Union[str, int]
Path = Tuple[Key, ...]


def format_path(path: Path) -> str:
    return "/" + "/".join(str(key) for key in path)


class DecodeError(ValueError):
    """
    A JSON value could not be read as the BSON value it was expected to be.

    path locates the offending value from the root of the conversion, as a
    tuple of field names and array indexes.
    """

    def __init__(self, path: Path, detail: str):
        self.path = tuple(path)
        self.detail = detail
        super().__init__(f"{format_path(self.path)}: {detail}")


class TypeMismatch(DecodeError):
    def __init__(self, path: Path, expected: str, actual: Any=None):
        self.expected = expected
        super().__init__(path, f"expected {expected}, got {json_kind(actual)}")


class InvalidFormat(DecodeError):
    def __init__(self, path: Path, reason: str):
        self.reason = reason
        super().__init__(path, reason)


class InvalidLength(InvalidFormat):
    pass


class InvalidHex(InvalidFormat):
    pass


class MissingField(DecodeError):
    def __init__(self, path: Path):
        super().__init__(path, "missing field")


class UnknownSerializerError(ValueError):
    def __init__(self, key: Key, value: Any):
        super().__init__(f"Unable to serialize: key '{key!r}' value: {value} type: {type(value)}")


def json_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
