"""
Error types for the wizard engine.

Validation failures are never raised; they travel as data inside
ValidationResult. Only malformed definitions raise.
"""

from typing import Any, Dict, Iterable, Optional, Sequence


class WizardError(Exception):
    """Base class for all wizard engine errors."""


class DefinitionError(WizardError):
    """A wizard definition is malformed (duplicate ids, unknown references)."""


class DependencyCycleError(DefinitionError):
    """
    The dependency table contains a cycle.

    Attributes:
        fields: Field ids that take part in (or hang off) the cycle
    """

    def __init__(self, fields: Iterable[str]):
        self.fields = tuple(sorted(fields))
        super().__init__(
            f"Field dependencies must not be cyclic: {', '.join(self.fields)}"
        )


class UnknownWizardError(WizardError, KeyError):
    """No wizard is registered under the requested id."""

    def __init__(self, wizard_id: str):
        self.wizard_id = wizard_id
        super().__init__(f"Unknown wizard: {wizard_id}")

    def __str__(self) -> str:
        return self.args[0]


class SubmissionError(WizardError):
    """
    The external create operation failed.

    Recoverable: the controller keeps every field value so the user can
    correct and resubmit.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        resource_type: Optional[str] = None,
        fields: Sequence[str] = (),
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.resource_type = resource_type
        self.fields = tuple(fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "cause": type(self.cause).__name__ if self.cause else None,
            "resource_type": self.resource_type,
        }


class ConcurrentSubmissionRejected(WizardError):
    """
    submit() was called while a submission is already in flight.

    Returned to the caller, not raised. Callers treat it as a no-op.
    """

    def __init__(self, message: str = "A submission is already in flight"):
        super().__init__(message)
