from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel

from ticketdesk.access import CommentSnapshot
from ticketdesk.api.results import unwrap
from ticketdesk.api.schemas import CommentResponse
from ticketdesk.dependencies.auth import CurrentPrincipal
from ticketdesk.dependencies.services import TicketServiceDep

router = APIRouter(prefix="/tickets", tags=["comments"])


class CommentRequest(BaseModel):
    message: Any = None


def _to_response(comment: CommentSnapshot) -> CommentResponse:
    return CommentResponse.model_validate(comment)


@router.get("/{ticket_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    ticket_id: int, service: TicketServiceDep, principal: CurrentPrincipal
) -> list[CommentResponse]:
    comments = unwrap(await service.list_comments(principal, ticket_id))
    return [_to_response(comment) for comment in comments]


@router.post("/{ticket_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: int,
    payload: CommentRequest,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> CommentResponse:
    result = await service.add_comment(principal, ticket_id, payload.model_dump(exclude_unset=True))
    return _to_response(unwrap(result))


@router.put("/{ticket_id}/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    ticket_id: int,
    comment_id: int,
    payload: CommentRequest,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> CommentResponse:
    result = await service.update_comment(
        principal, ticket_id, comment_id, payload.model_dump(exclude_unset=True)
    )
    return _to_response(unwrap(result))


@router.delete("/{ticket_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    ticket_id: int,
    comment_id: int,
    service: TicketServiceDep,
    principal: CurrentPrincipal,
) -> None:
    unwrap(await service.delete_comment(principal, ticket_id, comment_id))
