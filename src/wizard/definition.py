"""
Wizard and step definitions.

A WizardDefinition is built once per wizard type and never changes. Building
it checks ids and the dependency table, so a cyclic or dangling dependency
fails at import time rather than in the middle of a user session.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .dependencies import DependencyResolver, DependencyRule
from .errors import DefinitionError
from .fields import FieldSpec
from .store import FieldStore
from .validation import StepRule, ValidationResult, validate_fields


@dataclass(frozen=True)
class Step:
    """
    One screen of a wizard.

    Args:
        id: Step identifier
        title: Display title
        description: Display subtitle
        fields: Fields this step owns (reads and writes)
        optional: Optional steps may be left forward without passing validation
        rules: Whole-step rules, evaluated after the field rules
        validator: Replaces the declarative rules when given
    """

    id: str
    title: str
    description: str = ""
    fields: Tuple[FieldSpec, ...] = ()
    optional: bool = False
    rules: Tuple[StepRule, ...] = ()
    validator: Optional[Callable[[FieldStore], ValidationResult]] = None

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def field_ids(self) -> Tuple[str, ...]:
        return tuple(spec.id for spec in self.fields)

    def validate(self, store: Mapping[str, Any]) -> ValidationResult:
        if self.validator is not None:
            return self.validator(store)
        return validate_fields(self.id, self.fields, self.rules, store)


SectionHook = Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class WizardDefinition:
    """
    Ordered steps plus the dependency table of one wizard type.

    Args:
        id: Wizard identifier (e.g. "create-vpc")
        title: Display title
        steps: Ordered step definitions
        rules: Explicit dependency rules, merged with the `depends_on`
            declarations of the fields
        assemble: Maps a configuration snapshot to the create payload
        resource_type: Kind of resource the create operation produces
        review_sections: Extra review sections, each a callable returning a
            SummarySection for the current values
    """

    id: str
    title: str
    steps: Tuple[Step, ...]
    rules: Tuple[DependencyRule, ...] = ()
    assemble: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    resource_type: str = "resource"
    review_sections: Tuple[SectionHook, ...] = ()
    resolver: DependencyResolver = dataclass_field(init=False, repr=False, compare=False)
    _fields: Mapping[str, FieldSpec] = dataclass_field(init=False, repr=False, compare=False)
    _step_of: Mapping[str, str] = dataclass_field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "review_sections", tuple(self.review_sections))
        if not self.steps:
            raise DefinitionError(f"Wizard '{self.id}' has no steps")

        fields: Dict[str, FieldSpec] = {}
        step_of: Dict[str, str] = {}
        step_ids = set()
        for step in self.steps:
            if step.id in step_ids:
                raise DefinitionError(f"Duplicate step id '{step.id}' in wizard '{self.id}'")
            step_ids.add(step.id)
            for spec in step.fields:
                if spec.id in fields:
                    raise DefinitionError(
                        f"Field '{spec.id}' is declared twice in wizard '{self.id}'"
                    )
                fields[spec.id] = spec
                step_of[spec.id] = step.id

        for spec in fields.values():
            for dep in spec.depends_on:
                if dep not in fields:
                    raise DefinitionError(
                        f"Field '{spec.id}' depends on unknown field '{dep}'"
                    )

        object.__setattr__(self, "_fields", MappingProxyType(fields))
        object.__setattr__(self, "_step_of", MappingProxyType(step_of))
        # Raises DependencyCycleError for cyclic tables
        object.__setattr__(self, "resolver", DependencyResolver(list(fields.values()), self.rules))

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def fields(self) -> Tuple[FieldSpec, ...]:
        return tuple(self._fields.values())

    def step(self, step_id: str) -> Step:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise KeyError(step_id)

    def step_index(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        raise KeyError(step_id)

    def field(self, field_id: str) -> FieldSpec:
        return self._fields[field_id]

    def has_field(self, field_id: str) -> bool:
        return field_id in self._fields

    def step_for_field(self, field_id: str) -> str:
        return self._step_of[field_id]

    def default_store(self, overrides: Optional[Mapping[str, Any]] = None) -> FieldStore:
        """
        Store holding every field's reset value, with `overrides` applied.

        Unknown keys in `overrides` are ignored.
        """
        values = {spec.id: spec.reset_value() for spec in self._fields.values()}
        for key, value in (overrides or {}).items():
            if key in values:
                values[key] = value
        return FieldStore(values)

    def build_payload(self, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        if self.assemble is None:
            return snapshot
        return self.assemble(snapshot)

