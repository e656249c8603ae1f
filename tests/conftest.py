from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from ticketdesk.access import Principal, Role

from tests.factories import NOW


@pytest.fixture
def client_principal() -> Principal:
    return Principal(id=10, role=Role.CLIENT)


@pytest.fixture
def other_client() -> Principal:
    return Principal(id=11, role=Role.CLIENT)


@pytest.fixture
def agent_principal() -> Principal:
    return Principal(id=20, role=Role.AGENT)


@pytest.fixture
def later() -> datetime:
    return NOW + timedelta(minutes=5)
