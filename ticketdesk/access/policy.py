"""Authorization decisions for ticket, comment and user operations.

Every rule is a pure function of the principal and the resource snapshot, so
``decide`` can be called from any number of concurrent requests without
coordination. The function is total: missing or mismatched resources produce a
denial instead of an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Mapping

from .models import (
    Action,
    CommentSnapshot,
    Principal,
    ReasonCode,
    Snapshot,
    TicketPriority,
    TicketSnapshot,
    TicketStatus,
    UserSnapshot,
)


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of a policy check."""

    allowed: bool
    reason: ReasonCode | None = None

    @classmethod
    def deny(cls, reason: ReasonCode) -> "Decision":
        return cls(allowed=False, reason=reason)


_ALLOW = Decision(allowed=True)

Rule = Callable[[Principal, Snapshot | None], Decision]


def _allow_any(principal: Principal, resource: Snapshot | None) -> Decision:
    return _ALLOW


def _agent_only(principal: Principal, resource: Snapshot | None) -> Decision:
    if principal.is_agent:
        return _ALLOW
    return Decision.deny(ReasonCode.FORBIDDEN_ROLE)


def _check_resource(resource: Snapshot | None, kind: type) -> Decision | None:
    if resource is None:
        return Decision.deny(ReasonCode.MISSING_RESOURCE)
    if not isinstance(resource, kind):
        return Decision.deny(ReasonCode.INVALID_RESOURCE)
    return None


def _agent_on_ticket(principal: Principal, resource: Snapshot | None) -> Decision:
    return _check_resource(resource, TicketSnapshot) or _agent_only(principal, resource)


def _agent_on_user(principal: Principal, resource: Snapshot | None) -> Decision:
    return _check_resource(resource, UserSnapshot) or _agent_only(principal, resource)


def _ticket_owner_or_agent(principal: Principal, resource: Snapshot | None) -> Decision:
    denied = _check_resource(resource, TicketSnapshot)
    if denied is not None:
        return denied
    if principal.is_agent or resource.created_by == principal.id:
        return _ALLOW
    return Decision.deny(ReasonCode.NOT_OWNER)


def _comment_author_or_agent(principal: Principal, resource: Snapshot | None) -> Decision:
    denied = _check_resource(resource, CommentSnapshot)
    if denied is not None:
        return denied
    if principal.is_agent or resource.author_id == principal.id:
        return _ALLOW
    return Decision.deny(ReasonCode.NOT_AUTHOR)


def _agent_or_self(principal: Principal, resource: Snapshot | None) -> Decision:
    denied = _check_resource(resource, UserSnapshot)
    if denied is not None:
        return denied
    if principal.is_agent or resource.id == principal.id:
        return _ALLOW
    return Decision.deny(ReasonCode.FORBIDDEN_ROLE)


# Comment creation and listing are judged against the parent ticket.
_RULES: Mapping[Action, Rule] = {
    Action.CREATE_TICKET: _allow_any,
    Action.READ_TICKET: _ticket_owner_or_agent,
    Action.LIST_TICKETS: _allow_any,
    Action.UPDATE_TICKET_FIELDS: _ticket_owner_or_agent,
    Action.ASSIGN_TICKET: _agent_on_ticket,
    Action.DELETE_TICKET: _ticket_owner_or_agent,
    Action.READ_TICKET_STATS: _agent_only,
    Action.CREATE_COMMENT: _ticket_owner_or_agent,
    Action.READ_COMMENTS: _ticket_owner_or_agent,
    Action.UPDATE_COMMENT: _comment_author_or_agent,
    Action.DELETE_COMMENT: _comment_author_or_agent,
    Action.READ_ALL_USERS: _agent_only,
    Action.READ_USER_BY_ID: _agent_on_user,
    Action.DELETE_USER: _agent_or_self,
    Action.READ_OWN_PROFILE: _allow_any,
    Action.UPDATE_OWN_PROFILE: _allow_any,
}


def decide(principal: Principal, action: Action, resource: Snapshot | None = None) -> Decision:
    """Return whether ``principal`` may perform ``action`` on ``resource``."""

    rule = _RULES.get(action)
    if rule is None:
        return Decision.deny(ReasonCode.FORBIDDEN_ROLE)
    return rule(principal, resource)


@dataclass(frozen=True, slots=True)
class TicketListScope:
    """Filters applied when listing tickets."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assigned_to: int | None = None
    created_by: int | None = None
    limit: int | None = None


def scope_ticket_listing(principal: Principal, requested: TicketListScope) -> TicketListScope:
    """Clients only ever see their own tickets, whatever filter they asked for."""

    if principal.is_agent:
        return requested
    return replace(requested, created_by=principal.id)
