#!/usr/bin/python -OOOO
# vim: set fileencoding=utf8 shiftwidth=4 tabstop=4 textwidth=80 foldmethod=marker :
# Copyright (c) 2010, Kou Man Tong. All rights reserved.
# For licensing, see LICENSE file included in the package.
"""
Envelope recognition.

An extended JSON envelope is an object whose field set is exactly one of the
reserved layouts below, each field holding the JSON kind the layout expects.
A user document that merely contains "$oid" next to other fields is not an
envelope, and neither is {"$regex": 98}.
"""
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Union

from .errors import InvalidFormat, MissingField, Path, TypeMismatch

Kind = Tuple[str, Callable[[Any], bool]]
KindSet = Union[Kind, Tuple[Kind, ...]]

STRING: Kind = ("string", lambda v: isinstance(v, str))
INTEGER: Kind = ("integer", lambda v: isinstance(v, int) and not isinstance(v, bool))
NUMBER: Kind = ("number", lambda v: isinstance(v, (int, float)) and not isinstance(v, bool))
BOOLEAN: Kind = ("boolean", lambda v: isinstance(v, bool))
OBJECT: Kind = ("object", lambda v: isinstance(v, dict))


def _kinds(kinds: KindSet) -> Tuple[Kind, ...]:
    if isinstance(kinds[0], str):
        return (kinds,)  # type: ignore[return-value]
    return kinds  # type: ignore[return-value]


def kind_matches(kinds: KindSet, value: Any) -> bool:
    return any(check(value) for _, check in _kinds(kinds))


def kind_name(kinds: KindSet) -> str:
    return " or ".join(name for name, _ in _kinds(kinds))


class Envelope:
    def __init__(self, required: Dict[str, KindSet], optional: Optional[Dict[str, KindSet]]=None):
        self.required = dict(required)
        self.optional = dict(optional or {})
        self.fields = dict(self.required, **self.optional)
        self.keys: FrozenSet[str] = frozenset(self.required)

    def matches(self, obj: Any) -> bool:
        if not isinstance(obj, dict):
            return False
        if not self.keys.issubset(obj):
            return False
        for key, value in obj.items():
            kinds = self.fields.get(key)
            if kinds is None or not kind_matches(kinds, value):
                return False
        return True

    def unpack(self, obj: Any, path: Path=()) -> Dict[str, Any]:
        """
        Returns the fields of obj, raising a DecodeError naming the first
        field that keeps obj from being this envelope.
        """
        if not isinstance(obj, dict):
            raise TypeMismatch(path, "object", obj)
        for key in self.required:
            if key not in obj:
                raise MissingField(path + (key,))
        for key, value in obj.items():
            kinds = self.fields.get(key)
            if kinds is None:
                raise InvalidFormat(path + (key,), "unexpected field")
            if not kind_matches(kinds, value):
                raise TypeMismatch(path + (key,), kind_name(kinds), value)
        return obj

    def __repr__(self) -> str:
        return f"Envelope({sorted(self.required)}, {sorted(self.optional)})"


def is_envelope(obj: Any, envelope: Envelope) -> bool:
    return envelope.matches(obj)
