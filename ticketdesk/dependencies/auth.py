from __future__ import annotations

import logging
from typing import Annotated, Mapping

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ticketdesk.access import Principal, Role
from ticketdesk.core.config import get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenPrincipalResolver:
    """Map bearer tokens issued by the external auth service onto principals.

    Tokens are configured as ``token -> "<user_id>:<role>"``. Entries that do
    not parse are skipped at load time rather than failing every request.
    """

    def __init__(self, principals: Mapping[str, Principal]) -> None:
        self._principals = dict(principals)

    @classmethod
    def from_settings(cls, tokens: Mapping[str, str]) -> "TokenPrincipalResolver":
        principals: dict[str, Principal] = {}
        for token, entry in tokens.items():
            user_id, _, role = entry.partition(":")
            try:
                principals[token] = Principal(id=int(user_id), role=Role(role.strip().lower()))
            except ValueError:
                logger.warning("Ignoring malformed auth token mapping %r", entry)
        return cls(principals)

    def resolve(self, token: str) -> Principal | None:
        return self._principals.get(token)


def get_principal_resolver(request: Request) -> TokenPrincipalResolver:
    resolver = getattr(request.app.state, "principal_resolver", None)
    if resolver is None:
        resolver = TokenPrincipalResolver.from_settings(get_settings().auth_tokens)
        request.app.state.principal_resolver = resolver
    return resolver


async def get_current_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    resolver: Annotated[TokenPrincipalResolver, Depends(get_principal_resolver)],
) -> Principal:
    """Resolve the caller once per request; every route requires authentication."""

    cached = getattr(request.state, "principal", None)
    if cached is not None:
        return cached

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = resolver.resolve(credentials.credentials)
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.principal = principal
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
