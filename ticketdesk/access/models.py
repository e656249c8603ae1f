from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Roles an authenticated principal can hold."""

    CLIENT = "client"
    AGENT = "agent"


class Action(str, Enum):
    """Operations the policy engine knows how to decide."""

    CREATE_TICKET = "create_ticket"
    READ_TICKET = "read_ticket"
    LIST_TICKETS = "list_tickets"
    UPDATE_TICKET_FIELDS = "update_ticket_fields"
    ASSIGN_TICKET = "assign_ticket"
    DELETE_TICKET = "delete_ticket"
    READ_TICKET_STATS = "read_ticket_stats"
    CREATE_COMMENT = "create_comment"
    READ_COMMENTS = "read_comments"
    UPDATE_COMMENT = "update_comment"
    DELETE_COMMENT = "delete_comment"
    READ_ALL_USERS = "read_all_users"
    READ_USER_BY_ID = "read_user_by_id"
    DELETE_USER = "delete_user"
    READ_OWN_PROFILE = "read_own_profile"
    UPDATE_OWN_PROFILE = "update_own_profile"


class TicketStatus(str, Enum):
    """Ticket states. Any state may follow any other when set by an agent."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReasonCode(str, Enum):
    """Stable codes carried by denials and rejections."""

    NOT_OWNER = "not_owner"
    NOT_AUTHOR = "not_author"
    FORBIDDEN_ROLE = "forbidden_role"
    MISSING_RESOURCE = "missing_resource"
    INVALID_RESOURCE = "invalid_resource"
    INVALID_FIELD = "invalid_field"
    MISSING_FIELD = "missing_field"
    EMPTY_MESSAGE = "empty_message"
    MISSING_AGENT_ID = "missing_agent_id"
    TICKET_MISMATCH = "ticket_mismatch"
    DUPLICATE_ENTRY = "duplicate_entry"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated actor for the duration of one request."""

    id: int
    role: Role

    @property
    def is_agent(self) -> bool:
        # Equality so a plain "agent" string counts too.
        return self.role == Role.AGENT

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, Role) else str(self.role)


@dataclass(frozen=True, slots=True)
class TicketSnapshot:
    """Persisted state of a ticket at decision time."""

    id: int
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    created_by: int
    assigned_to: int | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class CommentSnapshot:
    """Persisted state of a ticket comment."""

    id: int
    ticket_id: int
    author_id: int
    message: str
    created_at: datetime
    updated_at: datetime
    author_name: str | None = None
    author_role: Role | None = None


@dataclass(frozen=True, slots=True)
class UserSnapshot:
    id: int
    email: str
    name: str
    role: Role
    created_at: datetime
    updated_at: datetime


Snapshot = TicketSnapshot | CommentSnapshot | UserSnapshot
