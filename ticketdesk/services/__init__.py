"""Service layer exports."""

from .tickets import AgentDashboard, TicketDetail, TicketService
from .users import UserService

__all__ = [
    "AgentDashboard",
    "TicketDetail",
    "TicketService",
    "UserService",
]
