from __future__ import annotations

from typing import Any, Mapping, Sequence

import asyncpg

from ticketdesk.access.models import ReasonCode, Role, UserSnapshot
from ticketdesk.access.orchestrator import ConflictError

from .rows import ensure_datetime


class UserRepository:
    """Data access for user profiles.

    Credentials live with the external authentication service; this table only
    carries what the ticketing core needs to reason about principals.
    """

    _COLUMNS = "id, email, name, role, created_at, updated_at"

    _CREATE_USERS_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'client',
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _SELECT_USER_SQL = f"""
    SELECT {_COLUMNS} FROM users WHERE id = $1
    """

    _SELECT_USERS_SQL = f"""
    SELECT {_COLUMNS} FROM users ORDER BY id ASC
    """

    _DELETE_USER_SQL = f"""
    DELETE FROM users WHERE id = $1 RETURNING {_COLUMNS}
    """

    _PROFILE_COLUMNS = ("email", "name")

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_USERS_SQL)

    async def get_user(self, user_id: int) -> UserSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_USER_SQL, user_id)
        if row is None:
            return None
        return self._row_to_user(row)

    async def list_users(self) -> Sequence[UserSnapshot]:
        async with self._pool.acquire() as connection:
            rows = await connection.fetch(self._SELECT_USERS_SQL)
        return [self._row_to_user(row) for row in rows]

    async def update_profile(self, user_id: int, fields: Mapping[str, Any]) -> UserSnapshot | None:
        columns = [name for name in self._PROFILE_COLUMNS if name in fields]
        if not columns:
            return await self.get_user(user_id)

        assignments = ", ".join(f"{name} = ${index}" for index, name in enumerate(columns, start=2))
        query = (
            f"UPDATE users SET {assignments}, updated_at = CURRENT_TIMESTAMP "
            f"WHERE id = $1 RETURNING {self._COLUMNS}"
        )
        try:
            async with self._pool.acquire() as connection:
                row = await connection.fetchrow(query, user_id, *(fields[name] for name in columns))
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(ReasonCode.DUPLICATE_ENTRY, "Email already in use") from exc
        if row is None:
            return None
        return self._row_to_user(row)

    async def delete_user(self, user_id: int) -> UserSnapshot | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._DELETE_USER_SQL, user_id)
        if row is None:
            return None
        return self._row_to_user(row)

    @staticmethod
    def _row_to_user(row: Mapping[str, Any]) -> UserSnapshot:
        return UserSnapshot(
            id=int(row["id"]),
            email=str(row["email"]),
            name=str(row["name"]),
            role=Role(str(row["role"])),
            created_at=ensure_datetime(row["created_at"]),
            updated_at=ensure_datetime(row["updated_at"]),
        )
