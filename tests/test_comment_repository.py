from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ticketdesk.access import Role
from ticketdesk.storage import CommentRepository

from tests.factories import NOW, DummyPool


def _comment_row(**overrides) -> dict:
    row = {
        "id": 100,
        "ticket_id": 1,
        "author_id": 10,
        "message": "Any update?",
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_list_for_ticket_includes_author_details():
    connection = AsyncMock()
    connection.fetch = AsyncMock(
        return_value=[_comment_row(author_name="Ada", author_role="client")]
    )
    repository = CommentRepository(DummyPool(connection))

    comments = await repository.list_for_ticket(1)

    assert comments[0].author_name == "Ada"
    assert comments[0].author_role is Role.CLIENT
    query, ticket_id = connection.fetch.await_args.args
    assert "JOIN users" in query
    assert "ORDER BY c.created_at ASC" in query
    assert ticket_id == 1


@pytest.mark.asyncio
async def test_get_comment_without_author_join():
    connection = AsyncMock()
    connection.fetchrow = AsyncMock(return_value=_comment_row())
    repository = CommentRepository(DummyPool(connection))

    comment = await repository.get_comment(100)

    assert comment is not None
    assert comment.ticket_id == 1
    assert comment.author_name is None
    assert comment.author_role is None


@pytest.mark.asyncio
async def test_create_comment_inserts_sanitized_fields():
    connection = AsyncMock()
    connection.fetchrow = AsyncMock(return_value=_comment_row(message="thanks"))
    repository = CommentRepository(DummyPool(connection))

    comment = await repository.create_comment({"ticket_id": 1, "author_id": 10, "message": "thanks"})

    assert connection.fetchrow.await_args.args[1:] == (1, 10, "thanks")
    assert comment.message == "thanks"


@pytest.mark.asyncio
async def test_update_message_returns_none_for_missing_comment():
    connection = AsyncMock()
    connection.fetchrow = AsyncMock(return_value=None)
    repository = CommentRepository(DummyPool(connection))

    assert await repository.update_message(100, "edited") is None
    assert connection.fetchrow.await_args.args[1:] == (100, "edited")
