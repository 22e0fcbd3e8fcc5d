"""Explicit field presence for partial updates.

A request payload is turned into a patch object whose attributes are either a
validated value or ``MISSING``. Only present attributes are written back, so
"not sent" and "sent as null" stay distinguishable.
"""
from dataclasses import dataclass, fields
from typing import TypeVar, Union


class _Missing:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return 'MISSING'


MISSING = _Missing()

T = TypeVar('T')
Maybe = Union[T, _Missing]


def present(value) -> bool:
    return value is not MISSING


def pick(payload: dict, key: str):
    return payload[key] if key in payload else MISSING


@dataclass
class Patch:
    def has(self, name: str) -> bool:
        return present(getattr(self, name))

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if present(getattr(self, f.name))
        }

    def __bool__(self):
        return bool(self.changes())
