# Stepwise - Wizard Package
"""
Engine for multi-step resource-creation wizards.

A WizardDefinition declares ordered steps, their fields and the dependencies
between fields. A WizardController runs one session of a definition:
navigation gated by step validation, cascading resets of dependent fields,
and a single guarded submission to an external create operation.
"""

from .controller import WizardController
from .definition import Step, WizardDefinition
from .dependencies import DependencyResolver, DependencyRule
from .errors import (
    ConcurrentSubmissionRejected,
    DefinitionError,
    DependencyCycleError,
    SubmissionError,
    UnknownWizardError,
    WizardError,
)
from .fields import FieldSpec, FieldType, Option, ResetPolicy, static_options
from .state import ActionResult, ControllerState, Rejection, SubmissionStatus, WizardState
from .store import FieldStore
from .submission import SubmissionOutcome, SubmissionPipeline, simulated_create
from .summary import SummarySection, build_summary
from .validation import FieldValidationError, StepValidationError, StepValidator, ValidationResult

__all__ = [
    "ActionResult",
    "ConcurrentSubmissionRejected",
    "ControllerState",
    "DefinitionError",
    "DependencyCycleError",
    "DependencyResolver",
    "DependencyRule",
    "FieldSpec",
    "FieldStore",
    "FieldType",
    "FieldValidationError",
    "Option",
    "Rejection",
    "ResetPolicy",
    "Step",
    "StepValidationError",
    "StepValidator",
    "SubmissionError",
    "SubmissionOutcome",
    "SubmissionPipeline",
    "SubmissionStatus",
    "SummarySection",
    "UnknownWizardError",
    "ValidationResult",
    "WizardController",
    "WizardDefinition",
    "WizardError",
    "WizardState",
    "build_summary",
    "simulated_create",
    "static_options",
]
