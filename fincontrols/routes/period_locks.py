"""
Period lock routes: validate a transaction date before a ledger write,
and lock/unlock accounting periods.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fincontrols.actor import ActorContext
from fincontrols.middleware.auth import get_current_actor
from fincontrols.middleware.tenant import get_db_with_tenant
from fincontrols.schemas.period_lock import (
    DateValidationRequest,
    DateValidationResponse,
    PeriodLockCreate,
    PeriodLockResponse,
)
from fincontrols.services.period_lock_service import (
    check_transaction_date,
    create_period_lock,
    list_period_locks,
    unlock_period,
)

router = APIRouter()


@router.post("/validate", response_model=DateValidationResponse)
async def validate_date(
    body: DateValidationRequest,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    outcome = await check_transaction_date(db, actor.tenant_id, body.transaction_date)
    return DateValidationResponse.from_result(outcome)


@router.get("", response_model=List[PeriodLockResponse])
async def list_locks(
    include_inactive: bool = Query(False),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    locks = await list_period_locks(db, actor, include_inactive=include_inactive)
    return [PeriodLockResponse.from_model(lock) for lock in locks]


@router.post("", response_model=PeriodLockResponse, status_code=status.HTTP_201_CREATED)
async def lock_period(
    body: PeriodLockCreate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    lock = await create_period_lock(
        db,
        actor,
        period_start=body.period_start,
        period_end=body.period_end,
        lock_reason=body.lock_reason,
        period_type=body.period_type,
    )
    return PeriodLockResponse.from_model(lock)


@router.post("/{lock_id}/unlock", response_model=PeriodLockResponse)
async def unlock(
    lock_id: str,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    lock = await unlock_period(db, actor, lock_id)
    return PeriodLockResponse.from_model(lock)
