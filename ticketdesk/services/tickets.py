from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ticketdesk.access import (
    Action,
    CommentSnapshot,
    Ok,
    Principal,
    Result,
    SanitizedChanges,
    TicketListScope,
    TicketSnapshot,
    TicketStatus,
    TransitionOrchestrator,
    scope_ticket_listing,
)
from ticketdesk.storage import CommentRepository, TicketRepository, TicketStats

_DASHBOARD_LIMIT = 5


@dataclass(slots=True)
class TicketDetail:
    """Ticket together with its comments."""

    ticket: TicketSnapshot
    comments: Sequence[CommentSnapshot]


@dataclass(slots=True)
class AgentDashboard:
    stats: TicketStats
    recent_tickets: Sequence[TicketSnapshot]
    my_tickets: Sequence[TicketSnapshot]


class TicketService:
    """Ticket and comment operations routed through the transition orchestrator."""

    def __init__(
        self,
        tickets: TicketRepository,
        comments: CommentRepository,
        *,
        orchestrator: TransitionOrchestrator | None = None,
    ) -> None:
        self._tickets = tickets
        self._comments = comments
        self._orchestrator = orchestrator or TransitionOrchestrator()

    async def create_ticket(self, principal: Principal, payload: Mapping[str, Any]) -> Result:
        async def _apply(changes: SanitizedChanges) -> TicketSnapshot:
            return await self._tickets.create_ticket(changes.fields)

        return await self._orchestrator.execute(
            principal, Action.CREATE_TICKET, None, payload, None, _apply
        )

    async def get_ticket(self, principal: Principal, ticket_id: int) -> Result:
        authorized = await self._orchestrator.authorize(
            principal, Action.READ_TICKET, ticket_id, self._tickets.get_ticket
        )
        if not isinstance(authorized, Ok):
            return authorized
        comments = await self._comments.list_for_ticket(ticket_id)
        return Ok(TicketDetail(ticket=authorized.value, comments=comments))

    async def list_tickets(self, principal: Principal, requested: TicketListScope) -> Result:
        authorized = await self._orchestrator.authorize(principal, Action.LIST_TICKETS, None, None)
        if not isinstance(authorized, Ok):
            return authorized
        scope = scope_ticket_listing(principal, requested)
        return Ok(await self._tickets.list_tickets(scope))

    async def update_ticket(self, principal: Principal, ticket_id: int, payload: Mapping[str, Any]) -> Result:
        async def _apply(changes: SanitizedChanges) -> TicketSnapshot | None:
            return await self._tickets.apply_changes(ticket_id, changes.fields)

        return await self._orchestrator.execute(
            principal, Action.UPDATE_TICKET_FIELDS, ticket_id, payload, self._tickets.get_ticket, _apply
        )

    async def assign_ticket(self, principal: Principal, ticket_id: int, payload: Mapping[str, Any]) -> Result:
        async def _apply(changes: SanitizedChanges) -> TicketSnapshot | None:
            return await self._tickets.apply_changes(ticket_id, changes.fields)

        return await self._orchestrator.execute(
            principal, Action.ASSIGN_TICKET, ticket_id, payload, self._tickets.get_ticket, _apply
        )

    async def delete_ticket(self, principal: Principal, ticket_id: int) -> Result:
        async def _apply(changes: SanitizedChanges) -> TicketSnapshot | None:
            return await self._tickets.delete_ticket(ticket_id)

        return await self._orchestrator.execute(
            principal, Action.DELETE_TICKET, ticket_id, None, self._tickets.get_ticket, _apply
        )

    async def get_stats(self, principal: Principal) -> Result:
        authorized = await self._orchestrator.authorize(principal, Action.READ_TICKET_STATS, None, None)
        if not isinstance(authorized, Ok):
            return authorized
        return Ok(await self._tickets.get_stats())

    async def get_agent_dashboard(self, principal: Principal) -> Result:
        authorized = await self._orchestrator.authorize(principal, Action.READ_TICKET_STATS, None, None)
        if not isinstance(authorized, Ok):
            return authorized
        stats = await self._tickets.get_stats()
        recent = await self._tickets.list_tickets(TicketListScope(limit=_DASHBOARD_LIMIT))
        mine = await self._tickets.list_tickets(
            TicketListScope(
                status=TicketStatus.IN_PROGRESS,
                assigned_to=principal.id,
                limit=_DASHBOARD_LIMIT,
            )
        )
        return Ok(AgentDashboard(stats=stats, recent_tickets=recent, my_tickets=mine))

    async def add_comment(self, principal: Principal, ticket_id: int, payload: Mapping[str, Any]) -> Result:
        async def _apply(changes: SanitizedChanges) -> CommentSnapshot:
            return await self._comments.create_comment(changes.fields)

        return await self._orchestrator.execute(
            principal, Action.CREATE_COMMENT, ticket_id, payload, self._tickets.get_ticket, _apply
        )

    async def list_comments(self, principal: Principal, ticket_id: int) -> Result:
        authorized = await self._orchestrator.authorize(
            principal, Action.READ_COMMENTS, ticket_id, self._tickets.get_ticket
        )
        if not isinstance(authorized, Ok):
            return authorized
        return Ok(await self._comments.list_for_ticket(ticket_id))

    async def update_comment(
        self,
        principal: Principal,
        ticket_id: int,
        comment_id: int,
        payload: Mapping[str, Any],
    ) -> Result:
        async def _apply(changes: SanitizedChanges) -> CommentSnapshot | None:
            return await self._comments.update_message(comment_id, changes.fields["message"])

        return await self._orchestrator.execute(
            principal,
            Action.UPDATE_COMMENT,
            comment_id,
            payload,
            self._comments.get_comment,
            _apply,
            expected_parent_id=ticket_id,
        )

    async def delete_comment(self, principal: Principal, ticket_id: int, comment_id: int) -> Result:
        async def _apply(changes: SanitizedChanges) -> CommentSnapshot | None:
            return await self._comments.delete_comment(comment_id)

        return await self._orchestrator.execute(
            principal,
            Action.DELETE_COMMENT,
            comment_id,
            None,
            self._comments.get_comment,
            _apply,
            expected_parent_id=ticket_id,
        )
