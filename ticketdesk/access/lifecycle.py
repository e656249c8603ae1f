"""Field-level mutability and value checks for ticket, comment and profile changes.

The validator runs after the policy engine has allowed the principal to act on
the resource. It filters a proposed change set down to what the principal may
actually write and rejects malformed values. Role-gated ticket fields supplied
by a client are dropped without error; unknown keys are dropped as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, TypeVar

from .models import (
    Action,
    Principal,
    ReasonCode,
    Snapshot,
    TicketPriority,
    TicketSnapshot,
    TicketStatus,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True, slots=True)
class SanitizedChanges:
    """The subset of a requested change that is allowed to be written."""

    fields: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.fields


@dataclass(frozen=True, slots=True)
class Rejection:
    reason: ReasonCode
    field: str | None = None


ValidationOutcome = SanitizedChanges | Rejection
Validator = Callable[[Principal, Snapshot | None, Mapping[str, Any]], ValidationOutcome]

_SHARED_TICKET_FIELDS = ("title", "description")
_PROFILE_FIELDS = ("email", "name")


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _to_user_id(value: Any) -> int | None:
    """Positive integer ids, given as numbers or digit strings."""

    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def _coerce(enum_type: type[E], value: Any) -> E | None:
    try:
        return enum_type(value)
    except ValueError:
        return None


def _dropped(changes: Mapping[str, Any], kept: Mapping[str, Any]) -> list[str]:
    return sorted(name for name in changes if name not in kept)


def _validate_ticket_creation(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    for name in _SHARED_TICKET_FIELDS:
        if _is_blank(changes.get(name)):
            return Rejection(ReasonCode.MISSING_FIELD, name)

    priority = _coerce(TicketPriority, changes.get("priority") or TicketPriority.MEDIUM)
    if priority is None:
        return Rejection(ReasonCode.INVALID_FIELD, "priority")

    return SanitizedChanges(
        {
            "title": changes["title"],
            "description": changes["description"],
            "priority": priority,
            "status": TicketStatus.OPEN,
            "created_by": principal.id,
            "assigned_to": None,
        }
    )


def _validate_ticket_update(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    sanitized: dict[str, Any] = {}

    for name in _SHARED_TICKET_FIELDS:
        if changes.get(name) is None:
            continue
        if _is_blank(changes[name]):
            return Rejection(ReasonCode.INVALID_FIELD, name)
        sanitized[name] = changes[name]

    if principal.is_agent:
        if changes.get("status") is not None:
            status = _coerce(TicketStatus, changes["status"])
            if status is None:
                return Rejection(ReasonCode.INVALID_FIELD, "status")
            sanitized["status"] = status

        if changes.get("priority") is not None:
            priority = _coerce(TicketPriority, changes["priority"])
            if priority is None:
                return Rejection(ReasonCode.INVALID_FIELD, "priority")
            sanitized["priority"] = priority

        if "assigned_to" in changes:
            assignee = changes["assigned_to"]
            if assignee is not None:
                assignee = _to_user_id(assignee)
                if assignee is None:
                    return Rejection(ReasonCode.INVALID_FIELD, "assigned_to")
            sanitized["assigned_to"] = assignee

    dropped = _dropped(changes, sanitized)
    if dropped:
        logger.debug("Dropped ticket fields %s for principal %s", dropped, principal.id)
    return SanitizedChanges(sanitized)


def _validate_assignment(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    # The target is not checked for existence or agent role.
    agent_id = changes.get("agent_id")
    if not agent_id:
        return Rejection(ReasonCode.MISSING_AGENT_ID, "agent_id")
    agent_id = _to_user_id(agent_id)
    if agent_id is None:
        return Rejection(ReasonCode.INVALID_FIELD, "agent_id")
    return SanitizedChanges({"assigned_to": agent_id})


def _validate_comment_creation(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    message = changes.get("message")
    if _is_blank(message):
        return Rejection(ReasonCode.EMPTY_MESSAGE, "message")
    if not isinstance(resource, TicketSnapshot):
        return Rejection(ReasonCode.INVALID_FIELD, "ticket_id")
    return SanitizedChanges(
        {"ticket_id": resource.id, "author_id": principal.id, "message": message.strip()}
    )


def _validate_comment_update(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    message = changes.get("message")
    if _is_blank(message):
        return Rejection(ReasonCode.EMPTY_MESSAGE, "message")
    return SanitizedChanges({"message": message.strip()})


def _validate_profile_update(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    sanitized: dict[str, Any] = {}
    for name in _PROFILE_FIELDS:
        if changes.get(name) is None:
            continue
        value = changes[name]
        if _is_blank(value):
            return Rejection(ReasonCode.INVALID_FIELD, name)
        sanitized[name] = value.strip()

    if "email" in sanitized and "@" not in sanitized["email"]:
        return Rejection(ReasonCode.INVALID_FIELD, "email")
    return SanitizedChanges(sanitized)


def _no_payload(
    principal: Principal, resource: Snapshot | None, changes: Mapping[str, Any]
) -> ValidationOutcome:
    return SanitizedChanges({})


_VALIDATORS: Mapping[Action, Validator] = {
    Action.CREATE_TICKET: _validate_ticket_creation,
    Action.UPDATE_TICKET_FIELDS: _validate_ticket_update,
    Action.ASSIGN_TICKET: _validate_assignment,
    Action.DELETE_TICKET: _no_payload,
    Action.CREATE_COMMENT: _validate_comment_creation,
    Action.UPDATE_COMMENT: _validate_comment_update,
    Action.DELETE_COMMENT: _no_payload,
    Action.DELETE_USER: _no_payload,
    Action.UPDATE_OWN_PROFILE: _validate_profile_update,
}


def validate(
    principal: Principal,
    action: Action,
    resource: Snapshot | None,
    changes: Mapping[str, Any] | None,
) -> ValidationOutcome:
    """Sanitize ``changes`` for ``action`` or explain why they cannot apply."""

    validator = _VALIDATORS.get(action, _no_payload)
    return validator(principal, resource, changes or {})
