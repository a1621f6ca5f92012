"""
Immutable field value storage for one wizard session.
"""

import copy
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional


class FieldStore(Mapping[str, Any]):
    """
    Mapping from field id to current value.

    Every write returns a new store; the old one is left untouched, which
    keeps controller transitions pure. No validation happens here.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, field_id: str) -> Any:
        return self._values[field_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"FieldStore({dict(self._values)!r})"

    def get(self, field_id: str, default: Any = None) -> Any:
        return self._values.get(field_id, default)

    def set(self, field_id: str, value: Any) -> "FieldStore":
        """Return a copy of this store with one field replaced."""
        values = dict(self._values)
        values[field_id] = value
        return FieldStore(values)

    def update(self, changes: Mapping[str, Any]) -> "FieldStore":
        """Return a copy of this store with several fields replaced."""
        if not changes:
            return self
        values = dict(self._values)
        values.update(changes)
        return FieldStore(values)

    def snapshot(self) -> Dict[str, Any]:
        """
        Detached copy of every value.

        The result shares no mutable objects with the store, so it is safe to
        hand to external code.
        """
        return copy.deepcopy(dict(self._values))
