"""
Approvals API routes: submit a record for approval, list the caller's
pending queue, approve or reject a request.

Notifications are queued as background tasks only after the unit of
work has committed.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fincontrols.actor import ActorContext
from fincontrols.middleware.auth import get_current_actor
from fincontrols.middleware.tenant import get_db_with_tenant
from fincontrols.schemas.approval import (
    ApprovalCreateRequest,
    ApprovalRejectRequest,
    ApprovalRequestResponse,
)
from fincontrols.schemas.common import PaginatedResponse
from fincontrols.services.approval_service import (
    ACTION_APPROVE,
    ACTION_REJECT,
    create_approval_request,
    get_approval_request,
    list_pending_approvals,
    resolve_approval_request,
)
from fincontrols.services.notification_service import dispatch_notifications

logger = structlog.get_logger()
router = APIRouter()


@router.post("", response_model=ApprovalRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_for_approval(
    body: ApprovalCreateRequest,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    submission = await create_approval_request(
        db,
        actor,
        workflow_type=body.workflow_type,
        record_table=body.record_table,
        record_id=body.record_id,
        amount=body.amount,
        notes=body.notes,
    )
    # Commit before queuing notifications so they never outlive a rolled-back request
    await db.commit()
    background_tasks.add_task(dispatch_notifications, submission.notifications)
    return ApprovalRequestResponse.from_model(submission.approval)


@router.get("", response_model=PaginatedResponse[ApprovalRequestResponse])
async def list_my_pending_approvals(
    workflow_type: str = Query(None),
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=50),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    items, total = await list_pending_approvals(
        db, actor, page=page, limit=limit, workflow_type=workflow_type
    )
    return PaginatedResponse[ApprovalRequestResponse].of(
        [ApprovalRequestResponse.from_model(a) for a in items], page, limit, total
    )


@router.get("/{approval_id}", response_model=ApprovalRequestResponse)
async def get_approval(
    approval_id: str,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    approval = await get_approval_request(db, actor, approval_id)
    return ApprovalRequestResponse.from_model(approval)


@router.post("/{approval_id}/approve", response_model=ApprovalRequestResponse)
async def approve_request(
    approval_id: str,
    background_tasks: BackgroundTasks,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    resolution = await resolve_approval_request(db, actor, approval_id, ACTION_APPROVE)
    await db.commit()
    background_tasks.add_task(dispatch_notifications, resolution.notifications)
    return ApprovalRequestResponse.from_model(resolution.approval)


@router.post("/{approval_id}/reject", response_model=ApprovalRequestResponse)
async def reject_request(
    approval_id: str,
    background_tasks: BackgroundTasks,
    body: ApprovalRejectRequest = ApprovalRejectRequest(),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    resolution = await resolve_approval_request(
        db, actor, approval_id, ACTION_REJECT, rejection_reason=body.rejection_reason
    )
    await db.commit()
    background_tasks.add_task(dispatch_notifications, resolution.notifications)
    return ApprovalRequestResponse.from_model(resolution.approval)
