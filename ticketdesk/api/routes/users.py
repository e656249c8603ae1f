from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel

from ticketdesk.access import UserSnapshot
from ticketdesk.api.results import unwrap
from ticketdesk.api.schemas import UserResponse
from ticketdesk.dependencies.auth import CurrentPrincipal
from ticketdesk.dependencies.services import UserServiceDep

router = APIRouter(prefix="/users", tags=["users"])


class ProfileUpdateRequest(BaseModel):
    # Any other key, role included, is ignored.
    email: Any = None
    name: Any = None


def _to_response(user: UserSnapshot) -> UserResponse:
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(service: UserServiceDep, principal: CurrentPrincipal) -> list[UserResponse]:
    users = unwrap(await service.list_users(principal))
    return [_to_response(user) for user in users]


@router.get("/profile", response_model=UserResponse)
@router.get("/me", response_model=UserResponse)
async def get_profile(service: UserServiceDep, principal: CurrentPrincipal) -> UserResponse:
    return _to_response(unwrap(await service.get_profile(principal)))


@router.put("/profile", response_model=UserResponse)
@router.put("/me", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    service: UserServiceDep,
    principal: CurrentPrincipal,
) -> UserResponse:
    result = await service.update_profile(principal, payload.model_dump(exclude_unset=True))
    return _to_response(unwrap(result))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, service: UserServiceDep, principal: CurrentPrincipal) -> UserResponse:
    return _to_response(unwrap(await service.get_user(principal, user_id)))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, service: UserServiceDep, principal: CurrentPrincipal) -> None:
    unwrap(await service.delete_user(principal, user_id))
