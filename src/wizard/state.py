"""
Wizard session state values.

WizardState is immutable; every controller operation produces a new one.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Mapping, Optional, Tuple

from .errors import SubmissionError
from .fields import Option
from .store import FieldStore


class ControllerState(str, Enum):
    IDLE = "idle"
    NAVIGATING = "navigating"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Rejection(str, Enum):
    """Why the controller refused an operation."""

    BUSY = "busy"
    INVALID = "invalid"
    NOT_VISITED = "not_visited"
    OUT_OF_RANGE = "out_of_range"
    CLOSED = "closed"
    INCOMPLETE = "incomplete"
    UNKNOWN_FIELD = "unknown_field"


TERMINAL_STATES = frozenset({ControllerState.COMPLETED, ControllerState.CANCELLED})


@dataclass(frozen=True)
class WizardState:
    store: FieldStore
    active_step_index: int = 0
    visited_steps: FrozenSet[str] = frozenset()
    dirty_steps: FrozenSet[str] = frozenset()
    options: Mapping[str, Tuple[Option, ...]] = field(default_factory=dict)
    status: ControllerState = ControllerState.IDLE
    submission_status: SubmissionStatus = SubmissionStatus.IDLE
    errors: Mapping[str, str] = field(default_factory=dict)
    last_error: Optional[SubmissionError] = None
    resource_id: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.status == ControllerState.SUBMITTING

    @property
    def closed(self) -> bool:
        return self.status in TERMINAL_STATES

    def evolve(self, **changes) -> "WizardState":
        return replace(self, **changes)


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of one controller operation.

    Rejections are ordinary results, never exceptions; `errors` carries the
    per-field messages when validation blocked the operation.
    """

    accepted: bool
    rejection: Optional[Rejection] = None
    errors: Mapping[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.accepted

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(True)

    @classmethod
    def rejected(cls, reason: Rejection, errors: Optional[Mapping[str, str]] = None) -> "ActionResult":
        return cls(False, reason, dict(errors or {}))
