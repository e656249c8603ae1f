from fastapi import APIRouter

from ticketdesk.dependencies.auth import CurrentPrincipal

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/secure", summary="Authenticated health probe")
async def secure_ping(principal: CurrentPrincipal) -> dict[str, str | int]:
    return {"status": "ok", "user_id": principal.id, "role": principal.role_name}
