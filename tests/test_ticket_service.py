from __future__ import annotations

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from ticketdesk.access import (
    BadRequest,
    Forbidden,
    NotFound,
    Ok,
    ReasonCode,
    TicketListScope,
    TicketPriority,
    TicketStatus,
    TransitionOrchestrator,
)
from ticketdesk.metrics import MetricsRegistry
from ticketdesk.services import AgentDashboard, TicketDetail, TicketService
from ticketdesk.storage import TicketStats

from tests.factories import make_comment, make_ticket


class DummyTicketRepository:
    def __init__(self, ticket=None):
        self.get_ticket = AsyncMock(return_value=ticket)
        self.create_ticket = AsyncMock()
        self.apply_changes = AsyncMock()
        self.delete_ticket = AsyncMock()
        self.list_tickets = AsyncMock(return_value=[])
        self.get_stats = AsyncMock(return_value=TicketStats(total=0))


class DummyCommentRepository:
    def __init__(self, comment=None):
        self.get_comment = AsyncMock(return_value=comment)
        self.list_for_ticket = AsyncMock(return_value=[])
        self.create_comment = AsyncMock()
        self.update_message = AsyncMock()
        self.delete_comment = AsyncMock()


def _service(tickets, comments=None) -> TicketService:
    return TicketService(
        tickets,
        comments or DummyCommentRepository(),
        orchestrator=TransitionOrchestrator(metrics=MetricsRegistry()),
    )


@pytest.mark.asyncio
async def test_created_ticket_is_open_and_unassigned(client_principal):
    tickets = DummyTicketRepository()
    tickets.create_ticket.side_effect = lambda fields: make_ticket(
        created_by=fields["created_by"], status=fields["status"], assigned_to=fields["assigned_to"]
    )
    service = _service(tickets)

    result = await service.create_ticket(client_principal, {"title": "VPN", "description": "Down"})

    assert isinstance(result, Ok)
    assert result.value.status is TicketStatus.OPEN
    assert result.value.assigned_to is None
    assert result.value.created_by == client_principal.id


@pytest.mark.asyncio
async def test_assign_sets_assignee_and_keeps_status(agent_principal):
    ticket = make_ticket(status=TicketStatus.OPEN)
    tickets = DummyTicketRepository(ticket)
    tickets.apply_changes.side_effect = lambda ticket_id, fields: replace(ticket, **fields)
    service = _service(tickets)

    result = await service.assign_ticket(agent_principal, 1, {"agent_id": 21})

    assert result.value.assigned_to == 21
    assert result.value.status is TicketStatus.OPEN
    tickets.apply_changes.assert_awaited_once_with(1, {"assigned_to": 21})


@pytest.mark.asyncio
async def test_agent_update_advances_updated_at(agent_principal, later):
    ticket = make_ticket()
    tickets = DummyTicketRepository(ticket)
    tickets.apply_changes.side_effect = lambda ticket_id, fields: replace(ticket, updated_at=later, **fields)
    service = _service(tickets)

    result = await service.update_ticket(
        agent_principal, 1, {"status": "in_progress", "priority": "high"}
    )

    assert result.value.status is TicketStatus.IN_PROGRESS
    assert result.value.priority is TicketPriority.HIGH
    assert result.value.updated_at > ticket.updated_at


@pytest.mark.asyncio
async def test_client_cannot_update_foreign_ticket(other_client):
    tickets = DummyTicketRepository(make_ticket(created_by=10))
    service = _service(tickets)

    result = await service.update_ticket(other_client, 1, {"title": "mine now"})

    assert result == Forbidden(ReasonCode.NOT_OWNER)
    tickets.apply_changes.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_ticket_returns_detail_with_comments(client_principal):
    ticket = make_ticket(created_by=client_principal.id)
    comments = DummyCommentRepository()
    comments.list_for_ticket.return_value = [make_comment()]
    service = _service(DummyTicketRepository(ticket), comments)

    result = await service.get_ticket(client_principal, 1)

    assert result == Ok(TicketDetail(ticket=ticket, comments=[make_comment()]))


@pytest.mark.asyncio
async def test_get_missing_ticket_is_not_found_for_anyone(other_client):
    comments = DummyCommentRepository()
    service = _service(DummyTicketRepository(None), comments)

    assert await service.get_ticket(other_client, 5) == NotFound(5)
    comments.list_for_ticket.assert_not_awaited()


@pytest.mark.asyncio
async def test_client_listing_is_scoped_to_own_tickets(client_principal):
    tickets = DummyTicketRepository()
    service = _service(tickets)

    await service.list_tickets(client_principal, TicketListScope(created_by=99))

    scope = tickets.list_tickets.await_args.args[0]
    assert scope.created_by == client_principal.id


@pytest.mark.asyncio
async def test_comment_on_foreign_ticket_is_forbidden(other_client):
    comments = DummyCommentRepository()
    service = _service(DummyTicketRepository(make_ticket(created_by=10)), comments)

    result = await service.add_comment(other_client, 1, {"message": "hello"})

    assert result == Forbidden(ReasonCode.NOT_OWNER)
    comments.create_comment.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_comment_stores_trimmed_message(client_principal):
    comments = DummyCommentRepository()
    comments.create_comment.return_value = make_comment(message="hello")
    service = _service(DummyTicketRepository(make_ticket(created_by=client_principal.id)), comments)

    result = await service.add_comment(client_principal, 1, {"message": "  hello "})

    assert isinstance(result, Ok)
    comments.create_comment.assert_awaited_once_with(
        {"ticket_id": 1, "author_id": client_principal.id, "message": "hello"}
    )


@pytest.mark.asyncio
async def test_comment_path_mismatch_is_bad_request(client_principal):
    comments = DummyCommentRepository(make_comment(ticket_id=2, author_id=client_principal.id))
    service = _service(DummyTicketRepository(), comments)

    result = await service.update_comment(client_principal, 1, 100, {"message": "edit"})

    assert result == BadRequest(ReasonCode.TICKET_MISMATCH)
    comments.update_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_agent_deletes_any_comment(agent_principal):
    comment = make_comment(author_id=10)
    comments = DummyCommentRepository(comment)
    comments.delete_comment.return_value = comment
    service = _service(DummyTicketRepository(), comments)

    result = await service.delete_comment(agent_principal, 1, 100)

    assert result == Ok(comment)
    comments.delete_comment.assert_awaited_once_with(100)


@pytest.mark.asyncio
async def test_stats_are_agent_only(client_principal, agent_principal):
    tickets = DummyTicketRepository()
    service = _service(tickets)

    assert await service.get_stats(client_principal) == Forbidden(ReasonCode.FORBIDDEN_ROLE)
    assert await service.get_stats(agent_principal) == Ok(TicketStats(total=0))


@pytest.mark.asyncio
async def test_agent_dashboard_lists_recent_and_own_in_progress(agent_principal):
    tickets = DummyTicketRepository()
    service = _service(tickets)

    result = await service.get_agent_dashboard(agent_principal)

    assert isinstance(result.value, AgentDashboard)
    recent_scope, mine_scope = (call.args[0] for call in tickets.list_tickets.await_args_list)
    assert recent_scope == TicketListScope(limit=5)
    assert mine_scope == TicketListScope(
        status=TicketStatus.IN_PROGRESS, assigned_to=agent_principal.id, limit=5
    )
