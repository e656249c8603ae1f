from __future__ import annotations

from typing import Any, Mapping, Sequence

import asyncpg

from ticketdesk.access.models import CommentSnapshot, Role

from .rows import ensure_datetime


class CommentRepository:
    """Data access for ticket comments."""

    _COLUMNS = "id, ticket_id, author_id, message, created_at, updated_at"

    _CREATE_COMMENTS_SQL = """
    CREATE TABLE IF NOT EXISTS comments (
        id SERIAL PRIMARY KEY,
        ticket_id INTEGER NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
        author_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        message TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _INSERT_COMMENT_SQL = f"""
    INSERT INTO comments (ticket_id, author_id, message)
    VALUES ($1, $2, $3)
    RETURNING {_COLUMNS}
    """

    _SELECT_COMMENT_SQL = f"""
    SELECT {_COLUMNS} FROM comments WHERE id = $1
    """

    _SELECT_TICKET_COMMENTS_SQL = """
    SELECT c.id, c.ticket_id, c.author_id, c.message, c.created_at, c.updated_at,
           u.name AS author_name, u.role AS author_role
    FROM comments c
    JOIN users u ON c.author_id = u.id
    WHERE c.ticket_id = $1
    ORDER BY c.created_at ASC
    """

    _UPDATE_MESSAGE_SQL = f"""
    UPDATE comments
    SET message = $2, updated_at = CURRENT_TIMESTAMP
    WHERE id = $1
    RETURNING {_COLUMNS}
    """

    _DELETE_COMMENT_SQL = f"""
    DELETE FROM comments WHERE id = $1 RETURNING {_COLUMNS}
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_COMMENTS_SQL)

    async def get_comment(self, comment_id: int) -> CommentSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_COMMENT_SQL, comment_id)
        if row is None:
            return None
        return self._row_to_comment(row)

    async def list_for_ticket(self, ticket_id: int) -> Sequence[CommentSnapshot]:
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(self._SELECT_TICKET_COMMENTS_SQL, ticket_id)
        return [self._row_to_comment(row) for row in rows]

    async def create_comment(self, fields: Mapping[str, Any]) -> CommentSnapshot:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(
                self._INSERT_COMMENT_SQL,
                fields["ticket_id"],
                fields["author_id"],
                fields["message"],
            )
        if row is None:
            raise RuntimeError("Failed to insert comment")
        return self._row_to_comment(row)

    async def update_message(self, comment_id: int, message: str) -> CommentSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._UPDATE_MESSAGE_SQL, comment_id, message)
        if row is None:
            return None
        return self._row_to_comment(row)

    async def delete_comment(self, comment_id: int) -> CommentSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._DELETE_COMMENT_SQL, comment_id)
        if row is None:
            return None
        return self._row_to_comment(row)

    @staticmethod
    def _row_to_comment(row: Mapping[str, Any]) -> CommentSnapshot:
        author_role = row.get("author_role")
        return CommentSnapshot(
            id=int(row["id"]),
            ticket_id=int(row["ticket_id"]),
            author_id=int(row["author_id"]),
            message=str(row["message"]),
            created_at=ensure_datetime(row["created_at"]),
            updated_at=ensure_datetime(row["updated_at"]),
            author_name=row.get("author_name"),
            author_role=Role(str(author_role)) if author_role else None,
        )
