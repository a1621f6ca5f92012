"""
Wizard controller: the state machine behind every resource-creation wizard.

The controller owns one WizardState per wizard session. Views call its
operations and render `state`; nothing else mutates the session.

States:
    IDLE -> NAVIGATING (first edit or navigation)
    NAVIGATING -> SUBMITTING (submit with every required step valid)
    SUBMITTING -> COMPLETED (create succeeded) | NAVIGATING (create failed)
    any but SUBMITTING -> CANCELLED
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .definition import Step, WizardDefinition
from .dependencies import Resolution
from .errors import SubmissionError
from .fields import Option
from .state import (
    ActionResult,
    ControllerState,
    Rejection,
    SubmissionStatus,
    WizardState,
)
from .store import FieldStore
from .submission import CreateOperation, SubmissionOutcome, SubmissionPipeline
from .summary import SummarySection, build_summary
from .validation import StepValidator, ValidationResult

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, Any, Any], None]


class WizardController:
    """
    Drives one wizard session.

    Args:
        definition: The wizard being run
        create_operation: External create call, `(payload) -> resource id`
        pipeline: Ready-made SubmissionPipeline (instead of create_operation)
        initial_values: Values applied over the field defaults, e.g. a
            snapshot of an earlier session
        status_publisher: Passed to the pipeline for status events
        eager_validation: Validate each edited field immediately and expose
            its message in `state.errors`
    """

    def __init__(
        self,
        definition: WizardDefinition,
        create_operation: Optional[CreateOperation] = None,
        pipeline: Optional[SubmissionPipeline] = None,
        initial_values: Optional[Mapping[str, Any]] = None,
        status_publisher: Optional[Any] = None,
        eager_validation: bool = False,
    ):
        if pipeline is None and create_operation is None:
            raise ValueError("Either create_operation or pipeline is required")
        self.definition = definition
        self.validator = StepValidator(definition)
        self.pipeline = pipeline or SubmissionPipeline(
            create_operation,
            resource_type=definition.resource_type,
            status_publisher=status_publisher,
        )
        self.eager_validation = eager_validation
        self._listeners: List[ChangeListener] = []

        state = WizardState(store=definition.default_store(initial_values))
        self._state, _ = self._enter_step(state, 0)

    @classmethod
    def from_snapshot(
        cls, definition: WizardDefinition, snapshot: Mapping[str, Any], **kwargs: Any
    ) -> "WizardController":
        """Fresh session pre-filled from a configuration snapshot."""
        return cls(definition, initial_values=snapshot, **kwargs)

    # --- Read access ---

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def store(self) -> FieldStore:
        return self._state.store

    @property
    def status(self) -> ControllerState:
        return self._state.status

    @property
    def active_step_index(self) -> int:
        return self._state.active_step_index

    @property
    def active_step(self) -> Step:
        return self.definition.steps[self._state.active_step_index]

    @property
    def errors(self) -> Mapping[str, str]:
        return self._state.errors

    def get(self, field_id: str, default: Any = None) -> Any:
        return self._state.store.get(field_id, default)

    def options(self, field_id: str) -> Tuple[Option, ...]:
        """Option set of a select field for the current upstream values."""
        cached = self._state.options.get(field_id)
        if cached is not None:
            return cached
        return self.definition.resolver.options_for(field_id, self._state.store)

    def snapshot(self) -> Dict[str, Any]:
        return self._state.store.snapshot()

    def configuration(self) -> Dict[str, Any]:
        """The create payload the current values would produce."""
        return self.definition.build_payload(self.snapshot())

    def summary(self) -> List[SummarySection]:
        return build_summary(self.definition, self._state.store, self.options)

    def validate_step(self, step_id: Optional[str] = None) -> ValidationResult:
        return self.validator.validate_step(step_id or self.active_step.id, self._state.store)

    def validate_field(self, field_id: str) -> Dict[str, str]:
        return self.validator.validate_field(field_id, self._state.store)

    def can_submit(self) -> bool:
        return all(r.valid for r in self.validator.validate_all(self._state.store).values())

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register `listener(field_id, old, new)` for every value change,
        cascaded resets included. Returns an unsubscribe callable.
        """
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # --- Operations ---

    def set_field(self, field_id: str, value: Any) -> ActionResult:
        """Store a value and cascade it to dependent fields."""
        rejection = self._guard()
        if rejection is not None:
            return rejection
        if not self.definition.has_field(field_id):
            return self._reject(Rejection.UNKNOWN_FIELD, f"set_field({field_id})")

        state = self._state
        old_store = state.store
        if old_store.get(field_id) == value:
            # Re-selecting the current value does not cascade
            self._state = state.evolve(status=ControllerState.NAVIGATING)
            return ActionResult.ok()
        resolution = self.definition.resolver.resolve(old_store.set(field_id, value), field_id)
        touched = (field_id,) + resolution.changed

        errors = self._drop_errors(state.errors, touched)
        if self.eager_validation:
            errors.update(self.validator.validate_field(field_id, resolution.store))

        dirty = set(state.dirty_steps)
        dirty.update(self.definition.step_for_field(fid) for fid in touched)
        new_state = state.evolve(
            store=resolution.store,
            options=self._merge_options(state.options, resolution),
            dirty_steps=frozenset(dirty),
            errors=errors,
            status=ControllerState.NAVIGATING,
        )
        if resolution.cleared:
            logger.debug("Change of %s cleared %s", field_id, ", ".join(resolution.cleared))
        self._commit(new_state, old_store, touched)
        return ActionResult.ok()

    def request_next(self) -> ActionResult:
        """
        Validate the active step and advance when it passes.

        Optional steps are left forward even when their validation fails.
        """
        rejection = self._guard()
        if rejection is not None:
            return rejection

        state = self._state
        step = self.active_step
        result = self.validator.validate_step(step.id, state.store)
        if not result.valid and not step.optional:
            self._state = state.evolve(errors=dict(result.errors), status=ControllerState.NAVIGATING)
            return self._reject(Rejection.INVALID, f"request_next from {step.id}", result.errors)

        state = self._mark_validated(state, step.id, result)
        target = min(state.active_step_index + 1, self.definition.step_count - 1)
        self._move(state, target)
        return ActionResult.ok()

    def request_previous(self) -> ActionResult:
        """Go back one step. Never validates."""
        rejection = self._guard()
        if rejection is not None:
            return rejection
        self._move(self._state, max(self._state.active_step_index - 1, 0))
        return ActionResult.ok()

    def jump_to_step(self, index: int) -> ActionResult:
        """
        Move directly to step `index`.

        Backward jumps always succeed. A forward jump needs the active step
        to pass (or be optional) and every required step in between to have
        passed validation before; steps edited since are re-validated.
        """
        rejection = self._guard()
        if rejection is not None:
            return rejection
        if not 0 <= index < self.definition.step_count:
            return self._reject(Rejection.OUT_OF_RANGE, f"jump_to_step({index})")

        state = self._state
        current = state.active_step_index
        if index <= current:
            self._move(state, index)
            return ActionResult.ok()

        step = self.active_step
        result = self.validator.validate_step(step.id, state.store)
        if not result.valid and not step.optional:
            self._state = state.evolve(errors=dict(result.errors), status=ControllerState.NAVIGATING)
            return self._reject(Rejection.INVALID, f"jump_to_step({index})", result.errors)
        state = self._mark_validated(state, step.id, result)

        for between in self.definition.steps[current + 1:index]:
            if between.optional:
                continue
            if between.id not in state.visited_steps:
                return self._reject(Rejection.NOT_VISITED, f"jump_to_step({index}) over {between.id}")
            if between.id in state.dirty_steps:
                check = self.validator.validate_step(between.id, state.store)
                if not check.valid:
                    return self._reject(Rejection.INVALID, f"jump_to_step({index}) over {between.id}", check.errors)
                state = self._mark_validated(state, between.id, check)

        self._move(state, index)
        return ActionResult.ok()

    async def submit(self) -> SubmissionOutcome:
        """
        Validate every required step, then run the create operation once.

        On failure the session returns to NAVIGATING with all values kept and
        the error exposed as `state.last_error`.
        """
        state = self._state
        if state.busy:
            logger.info("Ignoring submit: a submission is already in flight")
            return SubmissionOutcome.busy()
        if state.closed:
            logger.info("Ignoring submit: wizard is %s", state.status.value)
            return SubmissionOutcome(
                False,
                error=SubmissionError("The wizard is no longer active"),
                rejection=Rejection.CLOSED,
            )

        results = self.validator.validate_all(state.store)
        errors: Dict[str, str] = {}
        for result in results.values():
            errors.update(result.errors)
        if errors:
            self._state = state.evolve(errors=errors, status=ControllerState.NAVIGATING)
            failing = [step_id for step_id, r in results.items() if not r.valid]
            logger.info("Submit blocked by invalid step(s): %s", ", ".join(failing))
            return SubmissionOutcome(False, rejection=Rejection.INCOMPLETE, errors=errors)

        try:
            payload = self.configuration()
        except Exception as exc:
            error = SubmissionError(
                f"Could not build the {self.definition.resource_type} payload: {exc}",
                cause=exc,
                resource_type=self.definition.resource_type,
                fields=sorted(state.store),
            )
            logger.warning("Payload for %s failed: %s", self.definition.id, exc)
            self._state = state.evolve(
                status=ControllerState.NAVIGATING,
                submission_status=SubmissionStatus.FAILED,
                last_error=error,
            )
            return SubmissionOutcome(False, error=error)

        # Enter SUBMITTING before the first await so a second call sees it
        self._state = state.evolve(
            status=ControllerState.SUBMITTING,
            submission_status=SubmissionStatus.IN_FLIGHT,
            errors={},
            last_error=None,
        )
        try:
            outcome = await self.pipeline.submit(payload)
        except BaseException as exc:
            # Cancelled or interrupted: values are kept and the wizard stays usable
            self._state = self._state.evolve(
                status=ControllerState.NAVIGATING,
                submission_status=SubmissionStatus.FAILED,
                last_error=SubmissionError(
                    f"Submission of {self.definition.resource_type} was interrupted",
                    cause=exc,
                    resource_type=self.definition.resource_type,
                    fields=sorted(payload),
                ),
            )
            raise

        if outcome.rejected:
            self._state = self._state.evolve(
                status=ControllerState.NAVIGATING, submission_status=state.submission_status
            )
            return outcome
        if outcome.succeeded:
            logger.info("Wizard %s completed: %s", self.definition.id, outcome.resource_id)
            self._state = self._state.evolve(
                status=ControllerState.COMPLETED,
                submission_status=SubmissionStatus.SUCCEEDED,
                resource_id=outcome.resource_id,
                store=FieldStore(),
                options={},
            )
            return outcome

        self._state = self._state.evolve(
            status=ControllerState.NAVIGATING,
            submission_status=SubmissionStatus.FAILED,
            last_error=outcome.error,
        )
        return outcome

    def cancel(self) -> ActionResult:
        """Abandon the session. Refused while a submission is in flight."""
        state = self._state
        if state.busy:
            return self._reject(Rejection.BUSY, "cancel")
        if state.status == ControllerState.CANCELLED:
            return ActionResult.ok()
        if state.status == ControllerState.COMPLETED:
            return self._reject(Rejection.CLOSED, "cancel")
        logger.debug("Wizard %s cancelled", self.definition.id)
        self._state = state.evolve(
            status=ControllerState.CANCELLED,
            store=FieldStore(),
            options={},
            errors={},
        )
        return ActionResult.ok()

    # --- Internals ---

    def _guard(self) -> Optional[ActionResult]:
        if self._state.busy:
            return self._reject(Rejection.BUSY, "operation during submission")
        if self._state.closed:
            return self._reject(Rejection.CLOSED, f"operation after {self._state.status.value}")
        return None

    def _reject(
        self, reason: Rejection, action: str, errors: Optional[Mapping[str, str]] = None
    ) -> ActionResult:
        logger.info("Rejected %s: %s", action, reason.value)
        return ActionResult.rejected(reason, errors)

    def _mark_validated(self, state: WizardState, step_id: str, result: ValidationResult) -> WizardState:
        if not result.valid:
            return state
        return state.evolve(
            visited_steps=state.visited_steps | {step_id},
            dirty_steps=state.dirty_steps - {step_id},
        )

    def _move(self, state: WizardState, index: int):
        old_store = state.store
        new_state, resolution = self._enter_step(state, index)
        new_state = new_state.evolve(errors={}, status=ControllerState.NAVIGATING)
        logger.debug("Wizard %s at step %d", self.definition.id, index)
        self._commit(new_state, old_store, resolution.changed)

    def _enter_step(self, state: WizardState, index: int) -> Tuple[WizardState, Resolution]:
        """
        Recompute option sets of the entered step's fields.

        Selections that are no longer offered are dropped (and cascaded), so
        skipping an optional step never leaves a later step pointing at stale
        options.
        """
        step = self.definition.steps[index]
        resolution = self.definition.resolver.refresh(state.store, step.field_ids)
        dirty = set(state.dirty_steps)
        dirty.update(self.definition.step_for_field(fid) for fid in resolution.changed)
        new_state = state.evolve(
            active_step_index=index,
            store=resolution.store,
            options=self._merge_options(state.options, resolution),
            dirty_steps=frozenset(dirty),
        )
        return new_state, resolution

    @staticmethod
    def _merge_options(
        current: Mapping[str, Tuple[Option, ...]], resolution: Resolution
    ) -> Dict[str, Tuple[Option, ...]]:
        merged = dict(current)
        merged.update(resolution.options)
        return merged

    @staticmethod
    def _drop_errors(errors: Mapping[str, str], field_ids: Sequence[str]) -> Dict[str, str]:
        prefixes = tuple(f"{fid}[" for fid in field_ids)
        return {
            key: message
            for key, message in errors.items()
            if key not in field_ids and not key.startswith(prefixes)
        }

    def _commit(self, new_state: WizardState, old_store: FieldStore, field_ids: Iterable[str]):
        self._state = new_state
        for fid in field_ids:
            old, new = old_store.get(fid), new_state.store.get(fid)
            if old == new:
                continue
            for listener in list(self._listeners):
                try:
                    listener(fid, old, new)
                except Exception as exc:
                    logger.error(f"Change listener failed for {fid}: {exc}")
