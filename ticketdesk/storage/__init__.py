"""Postgres-backed snapshot providers and apply callbacks."""

from .comments import CommentRepository
from .postgres import PostgresDatabase
from .tickets import TicketRepository, TicketStats
from .users import UserRepository

__all__ = [
    "CommentRepository",
    "PostgresDatabase",
    "TicketRepository",
    "TicketStats",
    "UserRepository",
]
