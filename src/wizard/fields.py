"""
Field specifications: what a wizard field holds and how it resets.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    STRUCT_LIST = "struct_list"


class ResetPolicy(str, Enum):
    """What happens to a field when one of its upstream fields changes."""

    CLEAR = "clear"
    RECOMPUTE = "recompute"


_EMPTY_VALUES = {
    FieldType.STRING: "",
    FieldType.NUMBER: None,
    FieldType.BOOLEAN: False,
    FieldType.SELECT: None,
    FieldType.MULTI_SELECT: [],
    FieldType.STRUCT_LIST: [],
}


def empty_value(field_type: FieldType) -> Any:
    """Return a fresh empty value for a field type."""
    return copy.deepcopy(_EMPTY_VALUES[field_type])


def is_empty(value: Any) -> bool:
    """True for None, blank strings, False and empty collections."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class Option:
    """One selectable entry of a select or multi-select field."""

    id: str
    label: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "metadata": dict(self.metadata)}


OptionProvider = Callable[[Mapping[str, Any]], Sequence[Option]]


@dataclass(frozen=True)
class FieldSpec:
    """
    Declarative description of one configurable value.

    Args:
        id: Field identifier, unique within a wizard
        label: Display label, also used in validation messages
        type: Value type of the field
        default: Declared default; the type's empty value when None
        depends_on: Upstream field ids whose changes reset this field
        rules: Field rules, evaluated in declaration order
        options: Provider of the selectable options for select fields
        reset: CLEAR resets the value on upstream change; RECOMPUTE keeps it
            while it is still among the recomputed options
        secret: Masked in summaries and never written to drafts
    """

    id: str
    label: str = ""
    type: FieldType = FieldType.STRING
    default: Any = None
    depends_on: FrozenSet[str] = frozenset()
    rules: Tuple[Any, ...] = ()
    options: Optional[OptionProvider] = None
    reset: ResetPolicy = ResetPolicy.CLEAR
    secret: bool = False
    description: str = ""

    def __post_init__(self):
        # Accept any iterable for the collection arguments
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))
        object.__setattr__(self, "rules", tuple(self.rules))
        if not self.label:
            object.__setattr__(self, "label", self.id.replace("_", " ").capitalize())

    @property
    def is_select(self) -> bool:
        return self.type in (FieldType.SELECT, FieldType.MULTI_SELECT)

    def reset_value(self) -> Any:
        """Value the field takes when it is cleared."""
        if self.default is not None:
            return copy.deepcopy(self.default)
        return empty_value(self.type)

    def option_list(self, upstream: Mapping[str, Any]) -> List[Option]:
        if self.options is None:
            return []
        return list(self.options(upstream))


def static_options(items: Iterable[Tuple[str, str]]) -> OptionProvider:
    """Build a provider over a fixed list of (id, label) pairs."""
    frozen = tuple(Option(item_id, label) for item_id, label in items)

    def _provider(_upstream: Mapping[str, Any]) -> Sequence[Option]:
        return frozen

    return _provider
