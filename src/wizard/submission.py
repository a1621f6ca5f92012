"""
Submission pipeline: hands a finished configuration to the create operation.
"""

import asyncio
import copy
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from .errors import ConcurrentSubmissionRejected, SubmissionError
from .state import Rejection

logger = logging.getLogger(__name__)

CreateOperation = Callable[[Dict[str, Any]], Union[Awaitable[str], str]]


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Result of a submit call.

    A rejected outcome means the create operation was never invoked; the
    `rejection` tells why (BUSY for a concurrent call, INCOMPLETE when steps
    fail validation, CLOSED after the wizard exited).
    """

    succeeded: bool
    resource_id: Optional[str] = None
    error: Optional[Exception] = None
    rejection: Optional[Rejection] = None
    errors: Mapping[str, str] = field(default_factory=dict)

    @property
    def rejected(self) -> bool:
        return self.rejection is not None

    @classmethod
    def busy(cls) -> "SubmissionOutcome":
        return cls(False, error=ConcurrentSubmissionRejected(), rejection=Rejection.BUSY)


class SubmissionPipeline:
    """
    Invokes exactly one create operation per submission.

    The pipeline is not re-entrant: a call made while another is in flight
    is answered with ConcurrentSubmissionRejected and never reaches the
    create operation. Plain (non-async) create operations run in a worker
    thread. No timeout is applied here.

    Args:
        create_operation: `(snapshot) -> resource id`, async or sync; raises
            on failure
        resource_type: Kind of resource created, used in events and errors
        status_publisher: Optional RedisClient-like object with
            `publish_status`; receives "submission" events
    """

    def __init__(
        self,
        create_operation: CreateOperation,
        resource_type: str = "resource",
        status_publisher: Optional[Any] = None,
    ):
        self.create_operation = create_operation
        self.resource_type = resource_type
        self.status_publisher = status_publisher
        self._in_flight = False
        self.calls = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(self, snapshot: Dict[str, Any]) -> SubmissionOutcome:
        if self._in_flight:
            logger.info("Rejected concurrent %s submission", self.resource_type)
            return SubmissionOutcome.busy()

        self._in_flight = True
        self.calls += 1
        request_id = uuid.uuid4().hex
        # The operation must never see live references into the wizard
        payload = copy.deepcopy(snapshot)
        self._publish("in_progress", request_id, {"message": f"Creating {self.resource_type}..."})
        try:
            resource_id = await self._invoke(payload)
        except asyncio.CancelledError:
            logger.warning("Submission of %s was cancelled", self.resource_type)
            self._publish(
                "error",
                request_id,
                {"error": "cancelled", "cause": "CancelledError", "resource_type": self.resource_type},
            )
            raise
        except Exception as exc:
            error = SubmissionError(
                f"Failed to create {self.resource_type}: {exc}",
                cause=exc,
                resource_type=self.resource_type,
                fields=sorted(snapshot),
            )
            logger.warning("Submission of %s failed: %s", self.resource_type, exc)
            self._publish("error", request_id, error.to_dict())
            return SubmissionOutcome(False, error=error)
        finally:
            self._in_flight = False

        logger.info(f"Created {self.resource_type}: {resource_id}")
        self._publish(
            "success",
            request_id,
            {"resource_type": self.resource_type, "resource_id": resource_id},
        )
        return SubmissionOutcome(True, resource_id=resource_id)

    async def _invoke(self, payload: Dict[str, Any]) -> str:
        if inspect.iscoroutinefunction(self.create_operation):
            result = await self.create_operation(payload)
        else:
            result = await asyncio.to_thread(self.create_operation, payload)
            if inspect.isawaitable(result):
                result = await result
        if not result:
            raise ValueError("create operation returned no resource id")
        return str(result)

    def _publish(self, status: str, request_id: str, data: Dict[str, Any]):
        if self.status_publisher is None:
            return
        try:
            self.status_publisher.publish_status(
                "submission", data=data, request_id=request_id, status=status
            )
        except Exception as exc:
            logger.error(f"Error publishing submission status: {exc}")


def generate_resource_id(prefix: str) -> str:
    """Console-style identifier, e.g. `vpc-0a1b2c3d4e5f67890`."""
    return f"{prefix}-{uuid.uuid4().hex[:17]}"


def simulated_create(prefix: str, delay: Optional[float] = None) -> Callable[[Dict[str, Any]], Awaitable[str]]:
    """
    Create operation that only waits and returns a generated id.

    Stands in for a real provisioning call; `delay` defaults to
    SIMULATED_CREATE_DELAY from the app config.
    """
    if delay is None:
        from app.core.config import SIMULATED_CREATE_DELAY

        delay = SIMULATED_CREATE_DELAY

    async def _create(snapshot: Dict[str, Any]) -> str:
        await asyncio.sleep(delay)
        resource_id = generate_resource_id(prefix)
        logger.debug("Simulated create of %s with %d field(s)", resource_id, len(snapshot))
        return resource_id

    return _create
