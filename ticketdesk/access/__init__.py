"""Access and lifecycle policy core."""

from .lifecycle import Rejection, SanitizedChanges, validate
from .models import (
    Action,
    CommentSnapshot,
    Principal,
    ReasonCode,
    Role,
    TicketPriority,
    TicketSnapshot,
    TicketStatus,
    UserSnapshot,
)
from .orchestrator import (
    BadRequest,
    Conflict,
    ConflictError,
    Forbidden,
    InternalError,
    NotFound,
    Ok,
    Result,
    TransitionOrchestrator,
)
from .policy import Decision, TicketListScope, decide, scope_ticket_listing

__all__ = [
    "Action",
    "BadRequest",
    "CommentSnapshot",
    "Conflict",
    "ConflictError",
    "Decision",
    "Forbidden",
    "InternalError",
    "NotFound",
    "Ok",
    "Principal",
    "ReasonCode",
    "Rejection",
    "Result",
    "Role",
    "SanitizedChanges",
    "TicketListScope",
    "TicketPriority",
    "TicketSnapshot",
    "TicketStatus",
    "TransitionOrchestrator",
    "UserSnapshot",
    "decide",
    "scope_ticket_listing",
    "validate",
]
