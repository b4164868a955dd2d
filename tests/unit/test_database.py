"""
Unit tests for fincontrols/database.py and fincontrols/ids.py

Tests: set_tenant_context (SET LOCAL of the tenant id, malformed ids
       rejected before any SQL), get_db_with_tenant (log context),
       parse_uuid.
"""

import uuid
from unittest.mock import AsyncMock

import pytest
import structlog

from fincontrols.database import set_tenant_context
from fincontrols.exceptions import ValidationError
from fincontrols.ids import parse_uuid
from fincontrols.middleware.tenant import get_db_with_tenant
from tests.helpers import TENANT_ID, make_actor


@pytest.mark.asyncio
async def test_set_tenant_context_scopes_transaction():
    session = AsyncMock()
    await set_tenant_context(session, TENANT_ID)

    (stmt, params), _ = session.execute.await_args
    assert "set_config('app.current_tenant_id', :tid, true)" in str(stmt)
    assert params == {"tid": TENANT_ID}


@pytest.mark.asyncio
async def test_set_tenant_context_accepts_uuid():
    session = AsyncMock()
    await set_tenant_context(session, uuid.UUID(TENANT_ID))
    (_, params), _ = session.execute.await_args
    assert params == {"tid": TENANT_ID}


@pytest.mark.asyncio
async def test_set_tenant_context_rejects_malformed_id():
    session = AsyncMock()
    with pytest.raises(ValidationError) as exc_info:
        await set_tenant_context(session, "acme'; DROP TABLE users; --")
    assert exc_info.value.details == {"field": "tenant_id"}
    session.execute.assert_not_awaited()


@pytest.mark.parametrize("value", [None, "", "1234", 42])
def test_parse_uuid_rejects(value):
    with pytest.raises(ValidationError):
        parse_uuid(value, "record_id")


def test_parse_uuid_passes_uuid_through():
    value = uuid.uuid4()
    assert parse_uuid(value, "record_id") is value
    assert parse_uuid(str(value), "record_id") == value


@pytest.mark.asyncio
async def test_request_session_binds_tenant_log_context():
    actor = make_actor("admin")
    session = AsyncMock()
    structlog.contextvars.clear_contextvars()
    try:
        db = await get_db_with_tenant(actor=actor, db=session)
        bound = structlog.contextvars.get_contextvars()
    finally:
        structlog.contextvars.clear_contextvars()

    assert db is session
    assert bound == {"tenant_id": TENANT_ID, "user_id": actor.user_id, "role": "admin"}
    (_, params), _ = session.execute.await_args
    assert params == {"tid": TENANT_ID}
