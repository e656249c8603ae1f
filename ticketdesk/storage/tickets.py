from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import asyncpg

from ticketdesk.access.models import TicketPriority, TicketSnapshot, TicketStatus
from ticketdesk.access.policy import TicketListScope

from .rows import db_value, ensure_datetime, optional_int


@dataclass(slots=True)
class TicketStats:
    """Ticket counts grouped by status and priority."""

    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


class TicketRepository:
    """Data access for the `tickets` table."""

    _COLUMNS = "id, title, description, status, priority, created_by, assigned_to, created_at, updated_at"

    # assigned_to deliberately has no foreign key: assignment targets are not verified.
    _CREATE_TICKETS_SQL = """
    CREATE TABLE IF NOT EXISTS tickets (
        id SERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'open',
        priority TEXT NOT NULL DEFAULT 'medium',
        created_by INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        assigned_to INTEGER NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _INSERT_TICKET_SQL = f"""
    INSERT INTO tickets (title, description, status, priority, created_by, assigned_to)
    VALUES ($1, $2, $3, $4, $5, $6)
    RETURNING {_COLUMNS}
    """

    _SELECT_TICKET_SQL = f"""
    SELECT {_COLUMNS}
    FROM tickets
    WHERE id = $1
    """

    _DELETE_TICKET_SQL = f"""
    DELETE FROM tickets WHERE id = $1 RETURNING {_COLUMNS}
    """

    _COUNT_BY_STATUS_SQL = """
    SELECT status, COUNT(*) AS total FROM tickets GROUP BY status
    """

    _COUNT_BY_PRIORITY_SQL = """
    SELECT priority, COUNT(*) AS total FROM tickets GROUP BY priority
    """

    _UPDATABLE_COLUMNS = ("title", "description", "status", "priority", "assigned_to")

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_TICKETS_SQL)

    async def get_ticket(self, ticket_id: int) -> TicketSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_TICKET_SQL, ticket_id)
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def create_ticket(self, fields: Mapping[str, Any]) -> TicketSnapshot:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(
                self._INSERT_TICKET_SQL,
                fields["title"],
                fields["description"],
                db_value(fields["status"]),
                db_value(fields["priority"]),
                fields["created_by"],
                fields.get("assigned_to"),
            )
        if row is None:
            raise RuntimeError("Failed to insert ticket")
        return self._row_to_ticket(row)

    async def apply_changes(self, ticket_id: int, fields: Mapping[str, Any]) -> TicketSnapshot | None:
        """Write ``fields`` in one UPDATE; an empty change set reads the row back unchanged."""

        columns = [name for name in self._UPDATABLE_COLUMNS if name in fields]
        if not columns:
            return await self.get_ticket(ticket_id)

        assignments = ", ".join(f"{name} = ${index}" for index, name in enumerate(columns, start=2))
        query = (
            f"UPDATE tickets SET {assignments}, updated_at = CURRENT_TIMESTAMP "
            f"WHERE id = $1 RETURNING {self._COLUMNS}"
        )
        values = [db_value(fields[name]) for name in columns]
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(query, ticket_id, *values)
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def delete_ticket(self, ticket_id: int) -> TicketSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._DELETE_TICKET_SQL, ticket_id)
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def list_tickets(self, scope: TicketListScope) -> Sequence[TicketSnapshot]:
        conditions: list[str] = []
        values: list[Any] = []
        for column in ("status", "priority", "assigned_to", "created_by"):
            value = getattr(scope, column)
            if value is None:
                continue
            values.append(db_value(value))
            conditions.append(f"{column} = ${len(values)}")

        query = f"SELECT {self._COLUMNS} FROM tickets"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at DESC"
        if scope.limit is not None:
            values.append(scope.limit)
            query += f" LIMIT ${len(values)}"

        async with self._pool.acquire() as connection:
            rows = await connection.fetch(query, *values)
        return [self._row_to_ticket(row) for row in rows]

    async def get_stats(self) -> TicketStats:
        async with self._pool.acquire() as connection:
            status_rows = await connection.fetch(self._COUNT_BY_STATUS_SQL)
            priority_rows = await connection.fetch(self._COUNT_BY_PRIORITY_SQL)

        by_status = {status.value: 0 for status in TicketStatus}
        by_status.update({str(row["status"]): int(row["total"]) for row in status_rows})
        by_priority = {priority.value: 0 for priority in TicketPriority}
        by_priority.update({str(row["priority"]): int(row["total"]) for row in priority_rows})
        return TicketStats(total=sum(by_status.values()), by_status=by_status, by_priority=by_priority)

    @staticmethod
    def _row_to_ticket(row: Mapping[str, Any]) -> TicketSnapshot:
        return TicketSnapshot(
            id=int(row["id"]),
            title=str(row["title"]),
            description=str(row["description"]),
            status=TicketStatus(str(row["status"])),
            priority=TicketPriority(str(row["priority"])),
            created_by=int(row["created_by"]),
            assigned_to=optional_int(row["assigned_to"]),
            created_at=ensure_datetime(row["created_at"]),
            updated_at=ensure_datetime(row["updated_at"]),
        )
