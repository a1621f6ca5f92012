"""
Review summary built from a wizard's current values.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .fields import FieldSpec, FieldType, Option, is_empty

MASK = "***"
EMPTY = "-"


@dataclass(frozen=True)
class SummarySection:
    title: str
    items: Tuple[Tuple[str, str], ...] = ()
    step_id: Optional[str] = None

    def as_dict(self) -> dict:
        return {"title": self.title, "items": [list(item) for item in self.items]}


def display_value(
    spec: FieldSpec, value: Any, options: Sequence[Option] = ()
) -> str:
    """Render one field value for the review screen."""
    if spec.secret:
        return MASK if not is_empty(value) else EMPTY
    if spec.type == FieldType.BOOLEAN:
        return "Enabled" if value else "Disabled"
    if is_empty(value):
        return EMPTY
    labels = {option.id: option.label for option in options}
    if spec.type == FieldType.SELECT:
        return labels.get(value, str(value))
    if spec.type == FieldType.MULTI_SELECT:
        return ", ".join(labels.get(item, str(item)) for item in value)
    if spec.type == FieldType.STRUCT_LIST:
        return f"{len(value)} item(s)"
    return str(value)


def build_summary(
    definition,
    store: Mapping[str, Any],
    options: Optional[Callable[[str], Sequence[Option]]] = None,
) -> List[SummarySection]:
    """
    One section per step that owns fields, then the definition's extra
    review sections.

    Args:
        definition: WizardDefinition being reviewed
        store: Current field values
        options: Lookup of the current option set of a field; derived from
            the definition when omitted
    """
    lookup = options or (lambda fid: definition.resolver.options_for(fid, store))

    sections: List[SummarySection] = []
    for step in definition.steps:
        if not step.fields:
            continue
        items = tuple(
            (spec.label, display_value(spec, store.get(spec.id), lookup(spec.id) if spec.is_select else ()))
            for spec in step.fields
        )
        sections.append(SummarySection(step.title, items, step.id))

    for hook in definition.review_sections:
        section = hook(store)
        if section is not None:
            sections.append(section)
    return sections
