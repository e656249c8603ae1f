"""Route modules exposed by the API package."""

from . import comments, metrics, ping, tickets, users

__all__ = ["comments", "metrics", "ping", "tickets", "users"]
