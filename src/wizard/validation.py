"""
Declarative validation rules and the step validator.

Field rules run in declaration order and stop at the first failure, so a
field never shows more than one message. Step rules look at the whole store
(for example "at least two subnets in two availability zones") and never
overwrite a field's own message.

Validation never raises; failures are returned as ValidationResult data.
"""

from __future__ import annotations

import ipaddress
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .fields import FieldSpec, Option, is_empty

logger = logging.getLogger(__name__)

CIDR_PATTERN = re.compile(r"([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})/([0-9]{1,2})")


@dataclass(frozen=True)
class FieldValidationError:
    """A single field failing one declared rule."""

    field_id: str
    message: str


@dataclass(frozen=True)
class StepValidationError:
    """All field failures of one step."""

    step_id: str
    errors: Tuple[FieldValidationError, ...] = ()

    def __str__(self) -> str:
        return "; ".join(f"{e.field_id}: {e.message}" for e in self.errors)


@dataclass(frozen=True)
class ValidationResult:
    step_id: str
    errors: Mapping[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def failures(self) -> List[FieldValidationError]:
        return [FieldValidationError(fid, msg) for fid, msg in self.errors.items()]

    def as_error(self) -> Optional[StepValidationError]:
        if self.valid:
            return None
        return StepValidationError(self.step_id, tuple(self.failures))


def _number(value: Any) -> Optional[float]:
    """Finite number from an int, float or numeric string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _format_bound(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class FieldRule:
    """
    Base class for field rules.

    Subclasses implement `check`, returning an error message or None. Rules
    with `check_empty = False` pass silently on empty values; emptiness is
    the job of Required.
    """

    check_empty = False

    def __init__(self, message: Optional[str] = None):
        self.message = message

    def __call__(self, spec: FieldSpec, value: Any, store: Mapping[str, Any]) -> Optional[str]:
        if not self.check_empty and is_empty(value):
            return None
        return self.check(spec, value, store)

    def check(self, spec: FieldSpec, value: Any, store: Mapping[str, Any]) -> Optional[str]:
        raise NotImplementedError


class Required(FieldRule):
    check_empty = True

    def check(self, spec, value, store):
        if is_empty(value):
            return self.message or f"{spec.label} is required"
        return None


class Pattern(FieldRule):
    """Full-string regular expression match."""

    def __init__(self, pattern: str, message: Optional[str] = None, flags: int = 0):
        super().__init__(message)
        self.pattern = re.compile(pattern, flags)

    def check(self, spec, value, store):
        if not self.pattern.fullmatch(str(value)):
            return self.message or f"{spec.label} has an invalid format"
        return None


class NotPattern(Pattern):
    """Fails when the pattern is found anywhere in the value."""

    def check(self, spec, value, store):
        if self.pattern.search(str(value)):
            return self.message or f"{spec.label} has an invalid format"
        return None


class CidrBlock(FieldRule):
    """
    IPv4 CIDR block `a.b.c.d/n` with the prefix bounded (inclusive).

    Reports a format message and a range message separately.
    """

    def __init__(
        self,
        min_prefix: int = 16,
        max_prefix: int = 28,
        format_message: Optional[str] = None,
        range_message: Optional[str] = None,
    ):
        super().__init__(format_message)
        self.min_prefix = min_prefix
        self.max_prefix = max_prefix
        self.range_message = range_message

    def check(self, spec, value, store):
        match = CIDR_PATTERN.fullmatch(str(value))
        if not match or any(int(octet) > 255 for octet in match.groups()[:4]):
            return self.message or "Invalid CIDR block format. Example: 10.0.0.0/16"
        prefix = int(match.group(5))
        if prefix < self.min_prefix or prefix > self.max_prefix:
            return self.range_message or (
                f"CIDR block must be between /{self.min_prefix} and /{self.max_prefix}"
            )
        return None


class IpAddress(FieldRule):
    def check(self, spec, value, store):
        try:
            ipaddress.ip_address(str(value).strip())
        except ValueError:
            return self.message or f"{spec.label} must be a valid IP address"
        return None


class NumberRange(FieldRule):
    """Numeric bounds, inclusive on both ends unless inclusive=False."""

    def __init__(
        self,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
        inclusive: bool = True,
        message: Optional[str] = None,
    ):
        super().__init__(message)
        self.minimum = minimum
        self.maximum = maximum
        self.inclusive = inclusive

    def check(self, spec, value, store):
        number = _number(value)
        if number is None:
            return f"{spec.label} must be a number"
        if self.inclusive:
            too_low = self.minimum is not None and number < self.minimum
            too_high = self.maximum is not None and number > self.maximum
        else:
            too_low = self.minimum is not None and number <= self.minimum
            too_high = self.maximum is not None and number >= self.maximum
        if not (too_low or too_high):
            return None
        if self.message:
            return self.message
        if self.minimum is not None and self.maximum is not None:
            return (
                f"{spec.label} must be between {_format_bound(self.minimum)} "
                f"and {_format_bound(self.maximum)}"
            )
        if self.minimum is not None:
            word = "at least" if self.inclusive else "greater than"
            return f"{spec.label} must be {word} {_format_bound(self.minimum)}"
        word = "at most" if self.inclusive else "less than"
        return f"{spec.label} must be {word} {_format_bound(self.maximum)}"


class Length(FieldRule):
    def __init__(
        self,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
        message: Optional[str] = None,
    ):
        super().__init__(message)
        self.minimum = minimum
        self.maximum = maximum

    def check(self, spec, value, store):
        size = len(value) if hasattr(value, "__len__") else len(str(value))
        if (self.minimum is None or size >= self.minimum) and (
            self.maximum is None or size <= self.maximum
        ):
            return None
        if self.message:
            return self.message
        unit = "characters" if isinstance(value, str) else "items"
        if self.minimum is not None and self.maximum is not None:
            return f"{spec.label} must be between {self.minimum} and {self.maximum} {unit}"
        if self.minimum is not None:
            return f"{spec.label} must be at least {self.minimum} {unit}"
        return f"{spec.label} must be {self.maximum} {unit} or fewer"


class OneOf(FieldRule):
    def __init__(self, choices: Iterable[Any], message: Optional[str] = None):
        super().__init__(message)
        self.choices = tuple(choices)

    def check(self, spec, value, store):
        if value not in self.choices:
            allowed = ", ".join(str(c) for c in self.choices)
            return self.message or f"{spec.label} must be one of: {allowed}"
        return None


class InOptions(FieldRule):
    """Every selected id must be among the field's current options."""

    def check(self, spec, value, store):
        upstream = {dep: store.get(dep) for dep in spec.depends_on}
        offered = {option.id for option in spec.option_list(upstream)}
        selected = value if isinstance(value, (list, tuple, set)) else [value]
        if any(item not in offered for item in selected):
            return self.message or f"{spec.label} has a selection that is no longer available"
        return None


class Url(FieldRule):
    def __init__(self, https_only: bool = False, message: Optional[str] = None):
        super().__init__(message)
        self.https_only = https_only

    def check(self, spec, value, store):
        parsed = urlparse(str(value).strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return self.message or f"{spec.label} must be a valid URL"
        if self.https_only and parsed.scheme != "https":
            return self.message or f"{spec.label} must use HTTPS"
        return None


class Equals(FieldRule):
    """Cross-field equality, e.g. a password confirmation."""

    def __init__(self, other: str, message: Optional[str] = None):
        super().__init__(message)
        self.other = other

    def check(self, spec, value, store):
        if value != store.get(self.other):
            return self.message or f"{spec.label} must match {self.other}"
        return None


class NotEquals(Equals):
    def check(self, spec, value, store):
        if value == store.get(self.other):
            return self.message or f"{spec.label} must differ from {self.other}"
        return None


class Predicate(FieldRule):
    """Arbitrary check: `test(value, store)` must return True."""

    def __init__(self, test: Callable[[Any, Mapping[str, Any]], bool], message: str):
        super().__init__(message)
        self.test = test

    def check(self, spec, value, store):
        return None if self.test(value, store) else self.message


class When(FieldRule):
    """Apply nested rules only while `condition(store)` holds."""

    check_empty = True

    def __init__(self, condition: Callable[[Mapping[str, Any]], bool], *rules: FieldRule):
        super().__init__()
        self.condition = condition
        self.rules = rules

    def check(self, spec, value, store):
        if not self.condition(store):
            return None
        for rule in self.rules:
            message = rule(spec, value, store)
            if message:
                return message
        return None


class Items(FieldRule):
    """
    Per-item rules for a list-of-structs field.

    Each item is checked against the given sub-field specs, with the item
    itself standing in for the store so cross-field rules compare values of
    the same item. Errors are keyed `field[index].key`.
    """

    def __init__(self, *fields: FieldSpec):
        super().__init__()
        self.fields = fields

    def check_items(self, spec: FieldSpec, value: Any, store: Mapping[str, Any]) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        for index, item in enumerate(value or []):
            item = item if isinstance(item, Mapping) else {}
            for sub in self.fields:
                message = first_failure(sub, item.get(sub.id), item)
                if message:
                    errors[f"{spec.id}[{index}].{sub.id}"] = message
        return errors

    def check(self, spec, value, store):
        errors = self.check_items(spec, value, store)
        return next(iter(errors.values()), None)


def first_failure(spec: FieldSpec, value: Any, store: Mapping[str, Any]) -> Optional[str]:
    """Message of the first failing rule of `spec`, or None."""
    for rule in spec.rules:
        if isinstance(rule, Items):
            continue
        message = rule(spec, value, store)
        if message:
            return message
    return None


def validate_field(spec: FieldSpec, store: Mapping[str, Any]) -> Dict[str, str]:
    """
    Errors for one field, keyed by field id (or item key for struct lists).

    Rules are evaluated in declaration order and the first failure wins.
    """
    value = store.get(spec.id)
    for rule in spec.rules:
        if isinstance(rule, Items):
            item_errors = rule.check_items(spec, value, store)
            if item_errors:
                return item_errors
            continue
        message = rule(spec, value, store)
        if message:
            return {spec.id: message}
    return {}


def field_options(spec: FieldSpec, store: Mapping[str, Any]) -> Tuple[Option, ...]:
    upstream = {dep: store.get(dep) for dep in sorted(spec.depends_on)}
    return tuple(spec.option_list(upstream))


# --- Step rules ---


class StepRule:
    """
    Whole-step rule. `check` returns (error key, message) or None.

    `options` maps a field id to its current option set.
    """

    def __init__(self, key: Optional[str] = None, message: Optional[str] = None):
        self.key = key
        self.message = message

    def check(
        self, store: Mapping[str, Any], options: Callable[[str], Sequence[Option]]
    ) -> Optional[Tuple[str, str]]:
        raise NotImplementedError


class MinSelected(StepRule):
    def __init__(self, field_id: str, minimum: int, message: Optional[str] = None):
        super().__init__(field_id, message)
        self.minimum = minimum

    def check(self, store, options):
        selected = store.get(self.key) or []
        if len(selected) < self.minimum:
            return self.key, self.message or f"Select at least {self.minimum}"
        return None


class DistinctMetadata(StepRule):
    """
    At least `minimum` selections spread over at least `distinct` different
    values of one option metadata key.
    """

    def __init__(
        self,
        field_id: str,
        metadata_key: str,
        minimum: int = 2,
        distinct: int = 2,
        message: Optional[str] = None,
    ):
        super().__init__(field_id, message)
        self.metadata_key = metadata_key
        self.minimum = minimum
        self.distinct = distinct

    def check(self, store, options):
        selected = list(store.get(self.key) or [])
        by_id = {option.id: option for option in options(self.key)}
        spread = {
            by_id[item].metadata.get(self.metadata_key)
            for item in selected
            if item in by_id
        }
        if len(selected) < self.minimum or len(spread) < self.distinct:
            return self.key, self.message or (
                f"Select at least {self.minimum} items across at least "
                f"{self.distinct} different {self.metadata_key} values"
            )
        return None


class StepPredicate(StepRule):
    def __init__(self, test: Callable[[Mapping[str, Any]], bool], message: str, key: Optional[str] = None):
        super().__init__(key, message)
        self.test = test

    def check(self, store, options):
        if self.test(store):
            return None
        return self.key or "", self.message


def validate_fields(
    step_id: str,
    fields: Sequence[FieldSpec],
    rules: Sequence[StepRule],
    store: Mapping[str, Any],
) -> ValidationResult:
    """Run field rules, then step rules, for one step."""
    errors: Dict[str, str] = {}
    specs = {spec.id: spec for spec in fields}
    for spec in fields:
        errors.update(validate_field(spec, store))

    def _options(field_id: str) -> Sequence[Option]:
        spec = specs.get(field_id)
        return field_options(spec, store) if spec else ()

    for rule in rules:
        failure = rule.check(store, _options)
        if failure:
            key, message = failure
            errors.setdefault(key or step_id, message)
    return ValidationResult(step_id, errors)


class StepValidator:
    """
    Validates the steps of one wizard definition.

    Used by the controller as the forward-navigation gate, and by views for
    eager inline errors via validate_field.
    """

    def __init__(self, definition):
        self.definition = definition

    def validate_step(self, step_id: str, store: Mapping[str, Any]) -> ValidationResult:
        step = self.definition.step(step_id)
        result = step.validate(store)
        if not result.valid:
            logger.debug("Step %s failed validation: %s", step_id, dict(result.errors))
        return result

    def validate_field(self, field_id: str, store: Mapping[str, Any]) -> Dict[str, str]:
        return validate_field(self.definition.field(field_id), store)

    def validate_all(self, store: Mapping[str, Any], include_optional: bool = False) -> Dict[str, ValidationResult]:
        """Results for every step, keyed by step id, in step order."""
        return {
            step.id: self.validate_step(step.id, store)
            for step in self.definition.steps
            if include_optional or not step.optional
        }
