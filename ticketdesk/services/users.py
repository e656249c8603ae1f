from __future__ import annotations

from typing import Any, Mapping

from ticketdesk.access import (
    Action,
    Ok,
    Principal,
    Result,
    SanitizedChanges,
    TransitionOrchestrator,
    UserSnapshot,
)
from ticketdesk.storage import UserRepository


class UserService:
    """User directory and own-profile operations."""

    def __init__(
        self,
        users: UserRepository,
        *,
        orchestrator: TransitionOrchestrator | None = None,
    ) -> None:
        self._users = users
        self._orchestrator = orchestrator or TransitionOrchestrator()

    async def list_users(self, principal: Principal) -> Result:
        authorized = await self._orchestrator.authorize(principal, Action.READ_ALL_USERS, None, None)
        if not isinstance(authorized, Ok):
            return authorized
        return Ok(await self._users.list_users())

    async def get_user(self, principal: Principal, user_id: int) -> Result:
        return await self._orchestrator.authorize(
            principal, Action.READ_USER_BY_ID, user_id, self._users.get_user
        )

    async def delete_user(self, principal: Principal, user_id: int) -> Result:
        async def _apply(changes: SanitizedChanges) -> UserSnapshot | None:
            return await self._users.delete_user(user_id)

        return await self._orchestrator.execute(
            principal, Action.DELETE_USER, user_id, None, self._users.get_user, _apply
        )

    async def get_profile(self, principal: Principal) -> Result:
        return await self._orchestrator.authorize(
            principal, Action.READ_OWN_PROFILE, principal.id, self._users.get_user
        )

    async def update_profile(self, principal: Principal, payload: Mapping[str, Any]) -> Result:
        async def _apply(changes: SanitizedChanges) -> UserSnapshot | None:
            return await self._users.update_profile(principal.id, changes.fields)

        return await self._orchestrator.execute(
            principal, Action.UPDATE_OWN_PROFILE, principal.id, payload, self._users.get_user, _apply
        )
