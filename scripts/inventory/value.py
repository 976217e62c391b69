"""Normalized resource state as an immutable tagged union.

The state reader returns loosely typed JSON. It is wrapped into ``Value``
right away so deserializers match on an explicit kind instead of probing
Python types.
"""

from __future__ import annotations

import enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class Kind(enum.Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"


class Value:
    """One node of a normalized state tree."""

    __slots__ = ("kind", "_raw")

    NULL: "Value"

    def __init__(self, kind: Kind, raw: Any = None) -> None:
        self.kind = kind
        self._raw = raw

    @classmethod
    def from_python(cls, obj: Any) -> "Value":
        """Build a Value tree from JSON-compatible Python data."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.NULL
        # bool is a subclass of int, check it first
        if isinstance(obj, bool):
            return cls(Kind.BOOL, obj)
        if isinstance(obj, (int, float)):
            return cls(Kind.NUMBER, obj)
        if isinstance(obj, str):
            return cls(Kind.STRING, obj)
        if isinstance(obj, Mapping):
            items = {}
            for key, item in obj.items():
                if not isinstance(key, str):
                    raise TypeError(f"map keys must be strings, got {type(key).__name__}")
                items[key] = cls.from_python(item)
            return cls(Kind.MAP, MappingProxyType(items))
        if isinstance(obj, (list, tuple)):
            return cls(Kind.LIST, tuple(cls.from_python(item) for item in obj))
        raise TypeError(f"cannot normalize value of type {type(obj).__name__}")

    def to_python(self) -> Any:
        if self.kind is Kind.MAP:
            return {key: item.to_python() for key, item in self._raw.items()}
        if self.kind is Kind.LIST:
            return [item.to_python() for item in self._raw]
        return self._raw

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def is_null(self) -> bool:
        return self.kind is Kind.NULL

    def get(self, key: str) -> "Value":
        """Return a map attribute, NULL when absent."""
        self._expect(Kind.MAP)
        return self._raw.get(key, Value.NULL)

    def keys(self) -> Iterator[str]:
        self._expect(Kind.MAP)
        return iter(self._raw)

    def as_str(self) -> str:
        self._expect(Kind.STRING)
        return self._raw

    def as_bool(self) -> bool:
        self._expect(Kind.BOOL)
        return self._raw

    def as_number(self) -> float:
        self._expect(Kind.NUMBER)
        return self._raw

    def as_list(self) -> tuple["Value", ...]:
        self._expect(Kind.LIST)
        return self._raw

    def _expect(self, kind: Kind) -> None:
        if self.kind is not kind:
            raise TypeError(f"expected {kind.value} value, got {self.kind.value}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return self.kind is other.kind and self.to_python() == other.to_python()

    def __hash__(self) -> int:
        return hash((self.kind, self._canonical()))

    def _canonical(self) -> Any:
        # Must agree with __eq__: map key order does not matter, and
        # numbers rely on hash(1) == hash(1.0)
        if self.kind is Kind.MAP:
            return frozenset((key, hash(item)) for key, item in self._raw.items())
        if self.kind is Kind.LIST:
            return tuple(hash(item) for item in self._raw)
        return self._raw

    def __repr__(self) -> str:
        return f"Value({self.kind.value}, {self.to_python()!r})"


Value.NULL = Value(Kind.NULL)
