"""Explicit three-state field values for partial writes.

A field in a partial update is in exactly one of three states:

  Present(value) — write this value
  CLEARED        — write an explicit null ("clear this field" on merge)
  UNSET          — the caller said nothing; the field must not reach the store

The remote store rejects documents that still carry the absent marker, so the
sanitizer drops UNSET anywhere in a value tree and turns CLEARED into None.
Keeping the states as distinct objects means the drop/null decision is made
by identity checks, never by guessing from a runtime ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class _Unset:
    """Singleton marker for a field the caller did not set."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Unset:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _Unset:
        return self

    def __reduce__(self) -> str:
        return "UNSET"


class _Cleared:
    """Singleton marker for a field explicitly cleared to null."""

    _instance: _Cleared | None = None

    def __new__(cls) -> _Cleared:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLEARED"

    def __copy__(self) -> _Cleared:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _Cleared:
        return self

    def __reduce__(self) -> str:
        return "CLEARED"


UNSET = _Unset()
CLEARED = _Cleared()


@dataclass(frozen=True)
class Present(Generic[T]):
    """A field that carries a concrete value."""

    value: T


FieldValue = Union[Present[T], _Cleared, _Unset]


def is_unset(value: Any) -> bool:
    return value is UNSET


def field_of(value: Any) -> FieldValue[Any]:
    """Lift a plain Python value into the sum type (None means CLEARED)."""
    if value is UNSET or value is CLEARED or isinstance(value, Present):
        return value
    if value is None:
        return CLEARED
    return Present(value)


def unwrap(value: FieldValue[Any]) -> Any:
    """Collapse a field back to a plain value; UNSET stays UNSET."""
    if isinstance(value, Present):
        return value.value
    if value is CLEARED:
        return None
    return value


__all__ = [
    "CLEARED",
    "FieldValue",
    "Present",
    "UNSET",
    "field_of",
    "is_unset",
    "unwrap",
]
