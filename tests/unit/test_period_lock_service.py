"""
Unit tests for fincontrols/services/period_lock_service.py

Tests: validate_transaction_date (inside / outside a lock, future dates,
       overlapping locks, inactive locks), check_transaction_date,
       ensure_transaction_date_writable, create_period_lock, unlock_period
       (including a malformed lock id).
"""

import uuid
from datetime import date, datetime
from typing import Optional
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from fincontrols.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fincontrols.models.period_lock import PeriodLock
from fincontrols.services.period_lock_service import (
    check_transaction_date,
    create_period_lock,
    end_of_today,
    ensure_transaction_date_writable,
    unlock_period,
    validate_transaction_date,
)
from tests.helpers import make_actor

LUSAKA = ZoneInfo("Africa/Lusaka")
NOW = datetime(2024, 6, 15, 10, 0, tzinfo=LUSAKA)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_lock(
    start: date,
    end: date,
    reason: Optional[str] = "Month closed",
    is_active: bool = True,
):
    lock = MagicMock()
    lock.id = uuid.uuid4()
    lock.period_start = start
    lock.period_end = end
    lock.lock_reason = reason
    lock.is_active = is_active
    return lock


def _result_with(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    result.scalar_one_or_none.return_value = items[0] if items else None
    return result


MARCH = _make_lock(date(2024, 3, 1), date(2024, 3, 31))


# ---------------------------------------------------------------------------
# validate_transaction_date
# ---------------------------------------------------------------------------


def test_date_inside_lock_is_rejected():
    r = validate_transaction_date(date(2024, 3, 15), [MARCH], now=NOW)
    assert r.is_locked is True
    assert r.is_future_date is False
    assert r.is_valid is False
    assert r.lock_details.period_start == date(2024, 3, 1)
    assert r.lock_details.period_end == date(2024, 3, 31)
    assert r.message == (
        "This date falls within a locked period (2024-03-01 to 2024-03-31). Month closed"
    )


@pytest.mark.parametrize("on", [date(2024, 3, 1), date(2024, 3, 31)])
def test_lock_bounds_are_inclusive(on):
    assert validate_transaction_date(on, [MARCH], now=NOW).is_locked is True


def test_day_after_lock_end_is_valid():
    r = validate_transaction_date(date(2024, 4, 1), [MARCH], now=NOW)
    assert r.is_valid is True
    assert r.is_locked is False
    assert r.lock_details is None
    assert r.message == "Date is valid"


def test_inactive_lock_is_ignored():
    lock = _make_lock(date(2024, 3, 1), date(2024, 3, 31), is_active=False)
    assert validate_transaction_date(date(2024, 3, 15), [lock], now=NOW).is_valid is True


def test_future_date_is_rejected():
    r = validate_transaction_date(date(2024, 6, 16), [], now=NOW)
    assert r.is_future_date is True
    assert r.is_locked is False
    assert r.is_valid is False
    assert r.message == "Future-dated transactions are not allowed"


def test_today_is_not_future():
    assert validate_transaction_date(date(2024, 6, 15), [], now=NOW).is_valid is True
    late = datetime(2024, 6, 15, 23, 59, 59, tzinfo=LUSAKA)
    assert validate_transaction_date(late, [], now=NOW).is_future_date is False


def test_locked_and_future_reports_both():
    lock = _make_lock(date(2024, 6, 1), date(2024, 6, 30), reason=None)
    r = validate_transaction_date(date(2024, 6, 20), [lock], now=NOW)
    assert r.is_locked is True
    assert r.is_future_date is True
    assert r.is_valid is False
    # Lock message wins; no reason means no trailing text
    assert r.message == "This date falls within a locked period (2024-06-01 to 2024-06-30)."


def test_overlapping_locks_report_earliest_start():
    quarter = _make_lock(date(2024, 1, 1), date(2024, 3, 31), reason="Q1 closed")
    r = validate_transaction_date(date(2024, 3, 10), [MARCH, quarter], now=NOW)
    assert r.lock_details.period_start == date(2024, 1, 1)
    assert r.lock_details.lock_reason == "Q1 closed"


def test_end_of_today_uses_reference_timezone():
    # 23:30 UTC on the 14th is already the 15th in Lusaka (UTC+2)
    utc_now = datetime(2024, 6, 14, 23, 30, tzinfo=ZoneInfo("UTC"))
    assert end_of_today(utc_now).date() == date(2024, 6, 15)


# ---------------------------------------------------------------------------
# check_transaction_date / ensure_transaction_date_writable
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_check_transaction_date_loads_locks(mock_session, tenant_id):
    mock_session.execute.return_value = _result_with([MARCH])
    r = await check_transaction_date(mock_session, tenant_id, date(2024, 3, 5), now=NOW)
    assert r.is_locked is True
    mock_session.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_ensure_writable_raises_period_locked(mock_session, tenant_id):
    mock_session.execute.return_value = _result_with([MARCH])
    with pytest.raises(ValidationError) as exc_info:
        await ensure_transaction_date_writable(
            mock_session, tenant_id, date(2024, 3, 5), now=NOW
        )
    assert exc_info.value.code == "PERIOD_LOCKED"
    assert exc_info.value.details["period_start"] == "2024-03-01"


@pytest.mark.asyncio
async def test_ensure_writable_raises_future_date(mock_session, tenant_id):
    mock_session.execute.return_value = _result_with([])
    with pytest.raises(ValidationError) as exc_info:
        await ensure_transaction_date_writable(
            mock_session, tenant_id, date(2024, 7, 1), now=NOW
        )
    assert exc_info.value.code == "FUTURE_DATE"


@pytest.mark.asyncio
async def test_ensure_writable_passes_open_date(mock_session, tenant_id):
    mock_session.execute.return_value = _result_with([])
    r = await ensure_transaction_date_writable(
        mock_session, tenant_id, date(2024, 5, 2), now=NOW
    )
    assert r.is_valid is True


# ---------------------------------------------------------------------------
# Lock administration
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_lock(mock_session):
    actor = make_actor("financial_manager")
    lock = await create_period_lock(
        mock_session, actor, date(2024, 5, 1), date(2024, 5, 31), lock_reason="May close"
    )
    mock_session.add.assert_called_once_with(lock)
    mock_session.flush.assert_awaited_once()
    assert lock.is_active is True
    assert lock.locked_by == actor.user_id
    assert lock.tenant_id == actor.tenant_id


@pytest.mark.asyncio
async def test_create_lock_rejects_inverted_range(mock_session, admin):
    with pytest.raises(ValidationError):
        await create_period_lock(mock_session, admin, date(2024, 5, 31), date(2024, 5, 1))
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_lock_requires_period_admin(mock_session, accountant):
    with pytest.raises(AuthorizationError):
        await create_period_lock(mock_session, accountant, date(2024, 5, 1), date(2024, 5, 31))


@pytest.mark.asyncio
async def test_unlock_period(mock_session, admin):
    lock = PeriodLock(
        id=uuid.uuid4(),
        tenant_id=admin.tenant_id,
        period_start=date(2024, 3, 1),
        period_end=date(2024, 3, 31),
        is_active=True,
        locked_by=str(uuid.uuid4()),
    )
    mock_session.execute.return_value = _result_with([lock])
    unlocked = await unlock_period(mock_session, admin, str(lock.id))
    assert unlocked.is_active is False
    assert unlocked.unlocked_by == admin.user_id
    assert unlocked.unlocked_at is not None


@pytest.mark.asyncio
async def test_unlock_missing_lock(mock_session, admin):
    mock_session.execute.return_value = _result_with([])
    with pytest.raises(NotFoundError):
        await unlock_period(mock_session, admin, str(uuid.uuid4()))


@pytest.mark.asyncio
async def test_unlock_already_inactive(mock_session, admin):
    lock = _make_lock(date(2024, 3, 1), date(2024, 3, 31), is_active=False)
    mock_session.execute.return_value = _result_with([lock])
    with pytest.raises(ConflictError) as exc_info:
        await unlock_period(mock_session, admin, str(lock.id))
    assert exc_info.value.code == "PERIOD_ALREADY_UNLOCKED"


@pytest.mark.asyncio
async def test_unlock_malformed_lock_id(mock_session, admin):
    with pytest.raises(ValidationError) as exc_info:
        await unlock_period(mock_session, admin, "not-a-uuid")
    assert exc_info.value.status_code == 422
    assert exc_info.value.details == {"field": "lock_id"}
    mock_session.execute.assert_not_awaited()
