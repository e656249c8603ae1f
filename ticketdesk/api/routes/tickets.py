from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ticketdesk.access import TicketListScope, TicketPriority, TicketSnapshot, TicketStatus
from ticketdesk.api.results import unwrap
from ticketdesk.api.schemas import CommentResponse, TicketResponse
from ticketdesk.dependencies.auth import CurrentPrincipal
from ticketdesk.dependencies.services import TicketServiceDep
from ticketdesk.services import AgentDashboard, TicketDetail
from ticketdesk.storage import TicketStats

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    title: Any = None
    description: Any = None
    priority: Any = None


class TicketUpdateRequest(BaseModel):
    """Fields a caller may send; which of them apply depends on the caller's role.

    Values are checked by the access layer so bad input becomes a 400.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Any = None
    description: Any = None
    status: Any = None
    priority: Any = None
    assigned_to: int | str | None = Field(default=None, alias="assignedTo")


class TicketAssignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent_id: int | str | None = Field(default=None, alias="agentId")


class TicketDetailResponse(TicketResponse):
    comments: list[CommentResponse] = Field(default_factory=list)


class TicketStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]


class AgentDashboardResponse(BaseModel):
    stats: TicketStatsResponse
    recent_tickets: list[TicketResponse]
    my_tickets: list[TicketResponse]


def _to_response(ticket: TicketSnapshot) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_detail_response(detail: TicketDetail) -> TicketDetailResponse:
    ticket = TicketResponse.model_validate(detail.ticket)
    return TicketDetailResponse(
        **ticket.model_dump(),
        comments=[CommentResponse.model_validate(comment) for comment in detail.comments],
    )


def _to_stats_response(stats: TicketStats) -> TicketStatsResponse:
    return TicketStatsResponse.model_validate(stats)


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> TicketResponse:
    ticket = unwrap(await service.create_ticket(principal, payload.model_dump(exclude_unset=True)))
    return _to_response(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    principal: CurrentPrincipal,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = Query(default=None),
    assigned_to: int | None = Query(default=None),
    created_by: int | None = Query(default=None),
) -> list[TicketResponse]:
    requested = TicketListScope(
        status=status_filter,
        priority=priority,
        assigned_to=assigned_to,
        created_by=created_by,
    )
    tickets = unwrap(await service.list_tickets(principal, requested))
    return [_to_response(ticket) for ticket in tickets]


@router.get("/stats/summary", response_model=TicketStatsResponse)
async def get_ticket_stats(service: TicketServiceDep, principal: CurrentPrincipal) -> TicketStatsResponse:
    return _to_stats_response(unwrap(await service.get_stats(principal)))


@router.get("/agent/dashboard", response_model=AgentDashboardResponse)
async def get_agent_dashboard(service: TicketServiceDep, principal: CurrentPrincipal) -> AgentDashboardResponse:
    dashboard: AgentDashboard = unwrap(await service.get_agent_dashboard(principal))
    return AgentDashboardResponse(
        stats=_to_stats_response(dashboard.stats),
        recent_tickets=[_to_response(ticket) for ticket in dashboard.recent_tickets],
        my_tickets=[_to_response(ticket) for ticket in dashboard.my_tickets],
    )


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(ticket_id: int, service: TicketServiceDep, principal: CurrentPrincipal) -> TicketDetailResponse:
    return _to_detail_response(unwrap(await service.get_ticket(principal, ticket_id)))


@router.put("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(
    ticket_id: int,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> TicketResponse:
    result = await service.update_ticket(principal, ticket_id, payload.model_dump(exclude_unset=True))
    return _to_response(unwrap(result))


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(ticket_id: int, service: TicketServiceDep, principal: CurrentPrincipal) -> None:
    unwrap(await service.delete_ticket(principal, ticket_id))


@router.post("/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: int,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> TicketResponse:
    result = await service.assign_ticket(principal, ticket_id, payload.model_dump(exclude_unset=True))
    return _to_response(unwrap(result))
