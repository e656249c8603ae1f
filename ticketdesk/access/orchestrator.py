"""Authorize-then-apply sequencing shared by every mutating endpoint.

``TransitionOrchestrator.execute`` always runs the same steps in the same
order: fetch the target, check parent consistency, ask the policy engine, ask
the lifecycle validator, then invoke the single ``apply`` write. A missing
resource is reported before any authorization happens so that error codes do
not reveal whether a resource exists. Outcomes are returned as result values;
nothing here raises across the boundary and nothing is retried.

The orchestrator keeps no state between calls. ``apply`` must be atomic with
respect to the fields it writes (one conditional SQL statement), otherwise
the window between the decision and the write is unprotected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar

from opentelemetry import trace

from ..metrics import MetricsRegistry, metrics_registry
from ..metrics.base import timed
from ..metrics.definitions import ACCESS_DECISIONS, TRANSITION_DURATION, TRANSITION_RESULTS
from .lifecycle import Rejection, SanitizedChanges, validate
from .models import Action, CommentSnapshot, Principal, ReasonCode, Snapshot
from .policy import Decision, decide

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ConflictError(RuntimeError):
    """Raised by persistence callbacks when a write violates a uniqueness rule."""

    def __init__(self, reason: ReasonCode = ReasonCode.DUPLICATE_ENTRY, message: str = "") -> None:
        super().__init__(message or reason.value)
        self.reason = reason


@dataclass(frozen=True, slots=True)
class Ok:
    kind: ClassVar[str] = "ok"

    value: Any = None


@dataclass(frozen=True, slots=True)
class NotFound:
    kind: ClassVar[str] = "not_found"

    resource_id: Any = None


@dataclass(frozen=True, slots=True)
class Forbidden:
    kind: ClassVar[str] = "forbidden"

    reason: ReasonCode


@dataclass(frozen=True, slots=True)
class BadRequest:
    kind: ClassVar[str] = "bad_request"

    reason: ReasonCode
    field: str | None = None


@dataclass(frozen=True, slots=True)
class Conflict:
    kind: ClassVar[str] = "conflict"

    reason: ReasonCode


@dataclass(frozen=True, slots=True)
class InternalError:
    kind: ClassVar[str] = "internal_error"

    detail: str = ""


Result = Ok | NotFound | Forbidden | BadRequest | Conflict | InternalError

Fetch = Callable[[Any], Awaitable[Snapshot | None]]
Apply = Callable[[SanitizedChanges], Awaitable[Any]]


def _parent_id(resource: Snapshot) -> Any:
    if isinstance(resource, CommentSnapshot):
        return resource.ticket_id
    return None


class TransitionOrchestrator:
    """Compose fetch, policy, validation and apply into one operation."""

    def __init__(self, *, metrics: MetricsRegistry | None = None) -> None:
        self._metrics = metrics or metrics_registry
        self._decisions = self._metrics.counter(ACCESS_DECISIONS, label_names=("action", "outcome"))
        self._results = self._metrics.counter(TRANSITION_RESULTS, label_names=("action", "result"))
        self._durations = self._metrics.histogram(TRANSITION_DURATION, label_names=("action",))

    async def authorize(
        self,
        principal: Principal,
        action: Action,
        resource_id: Any,
        fetch: Fetch | None,
        *,
        expected_parent_id: Any = None,
    ) -> Result:
        """Resolve the target and check the policy; ``Ok`` carries the snapshot.

        ``fetch`` is ``None`` for actions without a target resource (creation,
        collection reads); the policy engine then receives ``None``.
        """

        resource: Snapshot | None = None
        if fetch is not None:
            try:
                resource = await fetch(resource_id)
            except Exception as exc:
                logger.exception("Fetching %s for %s failed", resource_id, action.value)
                return InternalError(detail=str(exc))
            if resource is None:
                return NotFound(resource_id)
            if expected_parent_id is not None and _parent_id(resource) != expected_parent_id:
                logger.info(
                    "Rejected %s on %s: parent %s does not match %s",
                    action.value,
                    resource_id,
                    _parent_id(resource),
                    expected_parent_id,
                )
                return BadRequest(ReasonCode.TICKET_MISMATCH)

        decision = decide(principal, action, resource)
        self._record_decision(action, decision)
        if not decision.allowed:
            logger.info(
                "Denied %s for principal %s (%s): %s",
                action.value,
                principal.id,
                principal.role_name,
                decision.reason.value if decision.reason else "unknown",
            )
            return Forbidden(decision.reason or ReasonCode.FORBIDDEN_ROLE)
        return Ok(resource)

    async def execute(
        self,
        principal: Principal,
        action: Action,
        resource_id: Any,
        payload: Any,
        fetch: Fetch | None,
        apply: Apply,
        *,
        expected_parent_id: Any = None,
    ) -> Result:
        labels = {"action": action.value}
        with tracer.start_as_current_span(f"ticketdesk.{action.value}") as span:
            span.set_attribute("ticketdesk.principal_id", principal.id)
            span.set_attribute("ticketdesk.principal_role", principal.role_name)
            if resource_id is not None:
                span.set_attribute("ticketdesk.resource_id", str(resource_id))
            with timed(self._durations, labels=labels):
                result = await self._execute(
                    principal,
                    action,
                    resource_id,
                    payload,
                    fetch,
                    apply,
                    expected_parent_id=expected_parent_id,
                )
            span.set_attribute("ticketdesk.result", result.kind)
        self._results.inc(labels={"action": action.value, "result": result.kind})
        return result

    async def _execute(
        self,
        principal: Principal,
        action: Action,
        resource_id: Any,
        payload: Any,
        fetch: Fetch | None,
        apply: Apply,
        *,
        expected_parent_id: Any,
    ) -> Result:
        authorized = await self.authorize(
            principal, action, resource_id, fetch, expected_parent_id=expected_parent_id
        )
        if not isinstance(authorized, Ok):
            return authorized

        outcome = validate(principal, action, authorized.value, payload)
        if isinstance(outcome, Rejection):
            logger.info(
                "Rejected %s for principal %s: %s (%s)",
                action.value,
                principal.id,
                outcome.reason.value,
                outcome.field,
            )
            return BadRequest(outcome.reason, outcome.field)

        try:
            applied = await apply(outcome)
        except ConflictError as exc:
            logger.info("Conflict while applying %s: %s", action.value, exc)
            return Conflict(exc.reason)
        except Exception as exc:
            logger.exception("Applying %s on %s failed", action.value, resource_id)
            return InternalError(detail=str(exc))

        if applied is None:
            # The row disappeared between fetch and apply.
            return NotFound(resource_id)
        return Ok(applied)

    def _record_decision(self, action: Action, decision: Decision) -> None:
        outcome = "allow" if decision.allowed else "deny"
        self._decisions.inc(labels={"action": action.value, "outcome": outcome})
