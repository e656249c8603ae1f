"""Translate orchestrator results into HTTP responses."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status

from ticketdesk.access import BadRequest, Conflict, Forbidden, InternalError, NotFound, Ok, Result
from ticketdesk.core.config import get_settings

GENERIC_INTERNAL_ERROR = "internal_error"


def internal_error_detail(detail: str) -> str:
    if get_settings().development_mode and detail:
        return detail
    return GENERIC_INTERNAL_ERROR


def unwrap(result: Result) -> Any:
    """Return the ``Ok`` payload or raise the matching ``HTTPException``."""

    if isinstance(result, Ok):
        return result.value
    if isinstance(result, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NotFound.kind)
    if isinstance(result, Forbidden):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.reason.value)
    if isinstance(result, BadRequest):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.reason.value)
    if isinstance(result, Conflict):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.reason.value)
    if isinstance(result, InternalError):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=internal_error_detail(result.detail),
        )
    raise TypeError(f"Unsupported result: {result!r}")
