from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from ticketdesk.access import (
    BadRequest,
    Conflict,
    Forbidden,
    InternalError,
    NotFound,
    Ok,
    Principal,
    ReasonCode,
    Role,
    TicketListScope,
    TicketStatus,
    TransitionOrchestrator,
)
from ticketdesk.dependencies import auth as auth_deps
from ticketdesk.dependencies import services as service_deps
from ticketdesk.main import create_app
from ticketdesk.metrics import MetricsRegistry
from ticketdesk.services import AgentDashboard, TicketDetail, TicketService
from ticketdesk.storage import TicketStats

from tests.factories import make_comment, make_ticket

AGENT = Principal(id=20, role=Role.AGENT)


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()

    async def override_service():
        return service

    app.dependency_overrides[service_deps.get_ticket_service] = override_service
    app.dependency_overrides[auth_deps.get_current_principal] = lambda: AGENT

    client = TestClient(app)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def test_create_ticket_endpoint_returns_created(ticket_client):
    client, service = ticket_client
    service.create_ticket = AsyncMock(return_value=Ok(make_ticket(created_by=AGENT.id)))

    response = client.post("/tickets", json={"title": "Printer offline", "description": "Broken"})

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "open"
    assert body["assigned_to"] is None
    service.create_ticket.assert_awaited_with(AGENT, {"title": "Printer offline", "description": "Broken"})


def test_create_ticket_missing_title_is_bad_request(ticket_client):
    client, service = ticket_client
    service.create_ticket = AsyncMock(return_value=BadRequest(ReasonCode.MISSING_FIELD, "title"))

    response = client.post("/tickets", json={"description": "Broken"})

    assert response.status_code == 400
    assert response.json()["detail"] == "missing_field"


def test_list_tickets_passes_filters(ticket_client):
    client, service = ticket_client
    service.list_tickets = AsyncMock(return_value=Ok([make_ticket(status=TicketStatus.RESOLVED)]))

    response = client.get("/tickets", params={"status": "resolved", "created_by": 10})

    assert response.status_code == 200
    assert response.json()[0]["status"] == "resolved"
    service.list_tickets.assert_awaited_with(
        AGENT, TicketListScope(status=TicketStatus.RESOLVED, created_by=10)
    )


def test_get_ticket_includes_comments(ticket_client):
    client, service = ticket_client
    comment = make_comment()
    service.get_ticket = AsyncMock(return_value=Ok(TicketDetail(ticket=make_ticket(), comments=[comment])))

    response = client.get("/tickets/1")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 1
    assert body["comments"][0]["message"] == comment.message


def test_get_ticket_not_found(ticket_client):
    client, service = ticket_client
    service.get_ticket = AsyncMock(return_value=NotFound(1))

    response = client.get("/tickets/1")

    assert response.status_code == 404
    assert response.json()["detail"] == "not_found"


def test_update_forwards_only_sent_fields(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(return_value=Ok(make_ticket(assigned_to=None)))

    response = client.put("/tickets/1", json={"assignedTo": None, "title": "New"})

    assert response.status_code == 200
    service.update_ticket.assert_awaited_with(AGENT, 1, {"assigned_to": None, "title": "New"})


def test_update_forbidden_maps_to_403(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(return_value=Forbidden(ReasonCode.NOT_OWNER))

    response = client.put("/tickets/1", json={"title": "New"})

    assert response.status_code == 403
    assert response.json()["detail"] == "not_owner"


def test_assign_ticket_uses_agent_id_alias(ticket_client):
    client, service = ticket_client
    service.assign_ticket = AsyncMock(return_value=Ok(make_ticket(assigned_to=21)))

    response = client.post("/tickets/1/assign", json={"agentId": 21})

    assert response.status_code == 200
    assert response.json()["assigned_to"] == 21
    service.assign_ticket.assert_awaited_with(AGENT, 1, {"agent_id": 21})


def test_delete_ticket_returns_no_content(ticket_client):
    client, service = ticket_client
    service.delete_ticket = AsyncMock(return_value=Ok(make_ticket()))

    response = client.delete("/tickets/1")

    assert response.status_code == 204


def test_internal_error_hides_detail(ticket_client):
    client, service = ticket_client
    service.delete_ticket = AsyncMock(return_value=InternalError(detail="password=secret"))

    response = client.delete("/tickets/1")

    assert response.status_code == 500
    assert response.json()["detail"] == "internal_error"


def test_stats_summary(ticket_client):
    client, service = ticket_client
    stats = TicketStats(total=2, by_status={"open": 2}, by_priority={"medium": 2})
    service.get_stats = AsyncMock(return_value=Ok(stats))

    response = client.get("/tickets/stats/summary")

    assert response.status_code == 200
    assert response.json() == {"total": 2, "by_status": {"open": 2}, "by_priority": {"medium": 2}}


def test_agent_dashboard(ticket_client):
    client, service = ticket_client
    dashboard = AgentDashboard(
        stats=TicketStats(total=1),
        recent_tickets=[make_ticket()],
        my_tickets=[],
    )
    service.get_agent_dashboard = AsyncMock(return_value=Ok(dashboard))

    response = client.get("/tickets/agent/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["total"] == 1
    assert len(body["recent_tickets"]) == 1
    assert body["my_tickets"] == []


def test_comment_routes(ticket_client):
    client, service = ticket_client
    service.add_comment = AsyncMock(return_value=Ok(make_comment(message="hello")))
    service.update_comment = AsyncMock(return_value=BadRequest(ReasonCode.TICKET_MISMATCH))
    service.delete_comment = AsyncMock(return_value=Ok(make_comment()))

    created = client.post("/tickets/1/comments", json={"message": "hello"})
    mismatched = client.put("/tickets/1/comments/100", json={"message": "edit"})
    deleted = client.delete("/tickets/1/comments/100")

    assert created.status_code == 201
    assert created.json()["message"] == "hello"
    assert mismatched.status_code == 400
    assert mismatched.json()["detail"] == "ticket_mismatch"
    assert deleted.status_code == 204
    service.update_comment.assert_awaited_with(AGENT, 1, 100, {"message": "edit"})


def test_conflict_maps_to_409(ticket_client):
    client, service = ticket_client
    service.update_ticket = AsyncMock(return_value=Conflict(ReasonCode.DUPLICATE_ENTRY))

    response = client.put("/tickets/1", json={"title": "New"})

    assert response.status_code == 409


def test_service_not_configured_returns_503():
    app = create_app()
    app.dependency_overrides[auth_deps.get_current_principal] = lambda: AGENT
    client = TestClient(app)

    response = client.get("/tickets")

    assert response.status_code == 503


@pytest.fixture
def wired_client():
    """Routes backed by a real ticket service over mocked repositories."""

    app = create_app()
    tickets = AsyncMock()
    tickets.get_ticket = AsyncMock(return_value=make_ticket())
    tickets.apply_changes = AsyncMock(return_value=make_ticket(assigned_to=21))
    comments = AsyncMock()
    service = TicketService(
        tickets, comments, orchestrator=TransitionOrchestrator(metrics=MetricsRegistry())
    )

    async def override_service():
        return service

    app.dependency_overrides[service_deps.get_ticket_service] = override_service
    app.dependency_overrides[auth_deps.get_current_principal] = lambda: AGENT

    client = TestClient(app)
    try:
        yield client, tickets, comments
    finally:
        app.dependency_overrides.clear()


def test_assignment_paths_accept_the_same_id_forms(wired_client):
    client, tickets, _ = wired_client

    updated = client.put("/tickets/1", json={"assignedTo": "21"})
    assigned = client.post("/tickets/1/assign", json={"agentId": "21"})

    assert updated.status_code == 200
    assert assigned.status_code == 200
    assert assigned.json()["assigned_to"] == 21
    for call in tickets.apply_changes.await_args_list:
        assert call.args == (1, {"assigned_to": 21})


@pytest.mark.parametrize("agent_id", [0, "", None])
def test_assign_without_agent_id_is_bad_request(wired_client, agent_id):
    client, tickets, _ = wired_client

    response = client.post("/tickets/1/assign", json={"agentId": agent_id})

    assert response.status_code == 400
    assert response.json()["detail"] == "missing_agent_id"
    tickets.apply_changes.assert_not_awaited()


@pytest.mark.parametrize(
    "payload",
    [{"assignedTo": "bob"}, {"status": 5}, {"title": ["x"]}],
)
def test_malformed_update_values_reach_validator(wired_client, payload):
    client, tickets, _ = wired_client

    response = client.put("/tickets/1", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "invalid_field"
    tickets.apply_changes.assert_not_awaited()


def test_non_text_comment_is_bad_request(wired_client):
    client, _, comments = wired_client

    response = client.post("/tickets/1/comments", json={"message": 42})

    assert response.status_code == 400
    assert response.json()["detail"] == "empty_message"
    comments.create_comment.assert_not_awaited()
