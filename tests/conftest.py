from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.helpers import TENANT_ID, make_actor


@pytest.fixture
def tenant_id():
    return TENANT_ID


@pytest.fixture
def accountant():
    return make_actor("accountant")


@pytest.fixture
def admin():
    return make_actor("admin")


@pytest.fixture
def employee():
    return make_actor("employee")


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.add = MagicMock()
    return session
