"""
Period lock service: transaction-date validation and lock administration.

A date is locked when it falls inside ANY active lock of the tenant
(period_start and period_end both inclusive). A date is future-dated
when it is later than the last instant of today on the reference clock.
Validation is a pure decision; callers reject the write when
``is_valid`` is False (or use ``ensure_transaction_date_writable``).
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fincontrols.actor import PERIOD_ADMIN_ROLES, ActorContext
from fincontrols.config import settings
from fincontrols.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fincontrols.ids import parse_uuid
from fincontrols.models.period_lock import PeriodLock

logger = structlog.get_logger()

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class LockDetails:
    period_start: date
    period_end: date
    lock_reason: Optional[str] = None


@dataclass(frozen=True)
class DateValidationResult:
    is_valid: bool
    is_locked: bool
    is_future_date: bool
    lock_details: Optional[LockDetails] = None
    message: str = "Date is valid"


def _reference_tz(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.REFERENCE_TIMEZONE)


def end_of_today(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """Last instant of the current day on the reference clock (tz-aware)."""
    tz = _reference_tz(tz_name)
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)
    return datetime.combine(now.date(), time.max, tzinfo=tz)


def _as_reference_datetime(value: DateLike, tz: ZoneInfo) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz)
        return value.astimezone(tz)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)
    raise ValidationError("transaction_date must be a date", details={"field": "transaction_date"})


def _lock_covers(lock, on_date: date) -> bool:
    return bool(lock.is_active) and lock.period_start <= on_date <= lock.period_end


def _build_message(is_future: bool, details: Optional[LockDetails]) -> str:
    if details is not None:
        return (
            f"This date falls within a locked period "
            f"({details.period_start.isoformat()} to {details.period_end.isoformat()}). "
            f"{details.lock_reason or ''}"
        ).strip()
    if is_future:
        return "Future-dated transactions are not allowed"
    return "Date is valid"


def validate_transaction_date(
    transaction_date: DateLike,
    locks: Iterable,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> DateValidationResult:
    """Decide whether a transaction may be written on ``transaction_date``.

    ``locks`` are PeriodLock-like objects (period_start, period_end,
    lock_reason, is_active). When several locks match, the one with the
    earliest period_start is reported.
    """
    tz = _reference_tz(tz_name)
    moment = _as_reference_datetime(transaction_date, tz)
    on_date = moment.date()

    is_future = moment > end_of_today(now, tz_name)

    matching = sorted(
        (lock for lock in locks if _lock_covers(lock, on_date)),
        key=lambda lock: (lock.period_start, lock.period_end),
    )
    details = None
    if matching:
        first = matching[0]
        details = LockDetails(
            period_start=first.period_start,
            period_end=first.period_end,
            lock_reason=first.lock_reason,
        )
    is_locked = details is not None

    return DateValidationResult(
        is_valid=not is_locked and not is_future,
        is_locked=is_locked,
        is_future_date=is_future,
        lock_details=details,
        message=_build_message(is_future, details),
    )


async def check_transaction_date(
    session: AsyncSession,
    tenant_id: str,
    transaction_date: DateLike,
    now: Optional[datetime] = None,
) -> DateValidationResult:
    """Load the tenant's active locks covering the date and validate against them."""
    on_date = _as_reference_datetime(transaction_date, _reference_tz()).date()
    result = await session.execute(
        select(PeriodLock)
        .where(
            PeriodLock.tenant_id == tenant_id,
            PeriodLock.is_active == True,  # noqa: E712
            PeriodLock.period_start <= on_date,
            PeriodLock.period_end >= on_date,
        )
        .order_by(PeriodLock.period_start, PeriodLock.period_end)
    )
    locks = list(result.scalars().all())
    outcome = validate_transaction_date(transaction_date, locks, now=now)
    if not outcome.is_valid:
        logger.info(
            "transaction_date_rejected",
            tenant_id=str(tenant_id),
            transaction_date=on_date.isoformat(),
            is_locked=outcome.is_locked,
            is_future_date=outcome.is_future_date,
        )
    return outcome


async def ensure_transaction_date_writable(
    session: AsyncSession,
    tenant_id: str,
    transaction_date: DateLike,
    now: Optional[datetime] = None,
) -> DateValidationResult:
    """Guard for ledger-affecting writes: raise ValidationError unless the date is valid."""
    outcome = await check_transaction_date(session, tenant_id, transaction_date, now=now)
    if outcome.is_locked:
        details = outcome.lock_details
        raise ValidationError(
            outcome.message,
            code="PERIOD_LOCKED",
            details={
                "period_start": details.period_start.isoformat(),
                "period_end": details.period_end.isoformat(),
                "lock_reason": details.lock_reason,
            },
        )
    if outcome.is_future_date:
        raise ValidationError(outcome.message, code="FUTURE_DATE")
    return outcome


# ---------- lock administration ----------


def _require_period_admin(actor: ActorContext) -> None:
    if not actor.has_role(PERIOD_ADMIN_ROLES):
        raise AuthorizationError(
            f"Role '{actor.role}' cannot manage period locks",
            details={"required": sorted(PERIOD_ADMIN_ROLES)},
        )


async def create_period_lock(
    session: AsyncSession,
    actor: ActorContext,
    period_start: date,
    period_end: date,
    lock_reason: Optional[str] = None,
    period_type: str = "month",
) -> PeriodLock:
    _require_period_admin(actor)
    if period_start is None or period_end is None:
        raise ValidationError("period_start and period_end are required")
    if period_start > period_end:
        raise ValidationError(
            "period_start must not be after period_end",
            details={
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
            },
        )

    lock = PeriodLock(
        tenant_id=actor.tenant_id,
        period_start=period_start,
        period_end=period_end,
        period_type=period_type,
        lock_reason=lock_reason,
        is_active=True,
        locked_by=actor.user_id,
        locked_at=datetime.utcnow(),
    )
    session.add(lock)
    await session.flush()

    logger.info(
        "period_lock_created",
        tenant_id=actor.tenant_id,
        period_start=period_start.isoformat(),
        period_end=period_end.isoformat(),
        locked_by=actor.user_id,
    )
    return lock


async def unlock_period(
    session: AsyncSession, actor: ActorContext, lock_id: str
) -> PeriodLock:
    _require_period_admin(actor)
    lock_uuid = parse_uuid(lock_id, "lock_id")
    result = await session.execute(
        select(PeriodLock)
        .where(PeriodLock.id == lock_uuid, PeriodLock.tenant_id == actor.tenant_id)
        .with_for_update()
    )
    lock = result.scalar_one_or_none()
    if not lock:
        raise NotFoundError("Period lock not found", details={"lock_id": str(lock_id)})
    if not lock.is_active:
        raise ConflictError(
            "Period lock is already inactive",
            code="PERIOD_ALREADY_UNLOCKED",
            details={"lock_id": str(lock_id)},
        )

    lock.is_active = False
    lock.unlocked_by = actor.user_id
    lock.unlocked_at = datetime.utcnow()
    await session.flush()

    logger.info(
        "period_unlocked",
        tenant_id=actor.tenant_id,
        lock_id=str(lock_id),
        unlocked_by=actor.user_id,
    )
    return lock


async def list_period_locks(
    session: AsyncSession, actor: ActorContext, include_inactive: bool = False
) -> list[PeriodLock]:
    q = select(PeriodLock).where(PeriodLock.tenant_id == actor.tenant_id)
    if not include_inactive:
        q = q.where(PeriodLock.is_active == True)  # noqa: E712
    result = await session.execute(q.order_by(PeriodLock.period_start.desc()))
    return list(result.scalars().all())
