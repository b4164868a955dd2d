"""
Approval service: amount-tiered routing and the approval state machine.

Tier selection:
  Among the tenant's active tiers for a workflow type, the one with the
  greatest min_amount not exceeding the amount wins. Missing amount
  counts as 0. No match routes to DEFAULT_APPROVER_ROLE ("accountant").

State machine (per ApprovalRequest):
  pending → approved | rejected, both terminal.
  Resolution is a conditional UPDATE keyed on status = 'pending', so of
  two concurrent resolutions exactly one wins and the other gets
  ConflictError.

Record side effects:
  create   → record.approval_status = pending (is_locked untouched)
  approve  → record.approval_status = approved, is_locked = True
  reject   → record.approval_status = rejected, is_locked = False

All writes use the caller's session (flush only); get_db() commits the
unit of work or rolls all of it back. Notifications are returned, not
sent, so delivery stays outside the transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
import structlog

from fincontrols.actor import APPROVER_ROLES, WORKFLOW_ADMIN_ROLES, ActorContext
from fincontrols.config import settings
from fincontrols.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fincontrols.ids import parse_uuid
from fincontrols.models.approval import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    ApprovalRequest,
    ApprovalWorkflow,
)
from fincontrols.money import ZERO, to_money
from fincontrols.services.approvable import RecordKind, get_record
from fincontrols.services.notification_service import (
    NotificationEvent,
    approval_required_events,
    approval_resolved_event,
)
from fincontrols.services.user_service import (
    get_role,
    get_tenant_member,
    get_users_with_role,
)

logger = structlog.get_logger()

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"

# Roles that see every pending request, not only those routed to their role
QUEUE_OVERSEER_ROLES = frozenset({"super_admin", "admin"})


@dataclass
class ApprovalSubmission:
    approval: ApprovalRequest
    approver_role: str
    notifications: list[NotificationEvent] = field(default_factory=list)


@dataclass
class ApprovalResolution:
    approval: ApprovalRequest
    status: str
    notifications: list[NotificationEvent] = field(default_factory=list)


# ---------- tier selection ----------


def select_workflow_tier(
    workflows: Iterable[ApprovalWorkflow], amount: Optional[Decimal]
) -> Optional[ApprovalWorkflow]:
    """Active tier with the greatest min_amount <= amount, or None."""
    amount = ZERO if amount is None else amount
    match = None
    for workflow in workflows:
        if not workflow.is_active:
            continue
        min_amount = Decimal(workflow.min_amount or 0)
        if min_amount > amount:
            continue
        if match is None or min_amount > Decimal(match.min_amount or 0):
            match = workflow
    return match


async def resolve_approver_role(
    session: AsyncSession,
    tenant_id: str,
    workflow_type: str,
    amount: Optional[Decimal],
) -> str:
    effective_amount = ZERO if amount is None else amount
    result = await session.execute(
        select(ApprovalWorkflow)
        .where(
            ApprovalWorkflow.tenant_id == tenant_id,
            ApprovalWorkflow.workflow_type == workflow_type,
            ApprovalWorkflow.is_active == True,  # noqa: E712
            ApprovalWorkflow.min_amount <= effective_amount,
        )
        .order_by(ApprovalWorkflow.min_amount.desc(), ApprovalWorkflow.created_at)
    )
    tier = select_workflow_tier(result.scalars().all(), effective_amount)
    if tier is None:
        return settings.DEFAULT_APPROVER_ROLE
    return tier.required_role


# ---------- create ----------


async def create_approval_request(
    session: AsyncSession,
    actor: ActorContext,
    workflow_type: str,
    record_table: str,
    record_id: str,
    amount=None,
    notes: Optional[str] = None,
) -> ApprovalSubmission:
    """Open a pending approval for a record and route it to the matching approver role."""
    missing = [
        name
        for name, value in (
            ("workflow_type", workflow_type),
            ("record_table", record_table),
            ("record_id", record_id),
        )
        if value is None or not str(value).strip()
    ]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            details={"fields": missing},
        )
    workflow_type = workflow_type.strip()
    record_uuid = parse_uuid(record_id, "record_id")
    money = None if amount is None else to_money(amount, "amount")

    requester = await get_tenant_member(session, actor.tenant_id, actor.user_id)
    if not requester:
        raise NotFoundError(
            "Requester has no membership in this company",
            code="TENANT_MEMBERSHIP_NOT_FOUND",
        )

    kind = RecordKind.parse(record_table.strip())
    record = await get_record(session, kind, record_uuid, actor.tenant_id, for_update=True)
    if record is None:
        raise NotFoundError(
            f"{kind.value} record not found",
            details={"record_table": kind.value, "record_id": str(record_uuid)},
        )

    approver_role = await resolve_approver_role(
        session, actor.tenant_id, workflow_type, money
    )

    approval = ApprovalRequest(
        tenant_id=actor.tenant_id,
        workflow_type=workflow_type,
        record_table=kind.value,
        record_id=record_uuid,
        requested_by=actor.user_id,
        current_approver_role=approver_role,
        amount=money,
        notes=notes,
        status=APPROVAL_PENDING,
    )
    session.add(approval)
    record.set_approval_status(APPROVAL_PENDING)
    await session.flush()

    approver_ids = await get_users_with_role(session, actor.tenant_id, approver_role)
    notifications = approval_required_events(
        actor.tenant_id, approver_ids, workflow_type, kind.value, str(record_uuid)
    )

    logger.info(
        "approval_request_created",
        approval_id=str(approval.id),
        workflow_type=workflow_type,
        record_table=kind.value,
        record_id=str(record_uuid),
        approver_role=approver_role,
        amount=str(money) if money is not None else None,
        approvers_notified=len(approver_ids),
    )
    if not approver_ids:
        logger.warning(
            "approval_no_approvers_for_role",
            tenant_id=actor.tenant_id,
            approver_role=approver_role,
        )

    return ApprovalSubmission(
        approval=approval, approver_role=approver_role, notifications=notifications
    )


# ---------- resolve ----------


async def get_approval_request(
    session: AsyncSession, actor: ActorContext, approval_id: str
) -> ApprovalRequest:
    approval_uuid = parse_uuid(approval_id, "approval_id")
    result = await session.execute(
        select(ApprovalRequest).where(
            ApprovalRequest.id == approval_uuid,
            ApprovalRequest.tenant_id == actor.tenant_id,
        )
    )
    approval = result.scalar_one_or_none()
    if not approval:
        raise NotFoundError(
            "Approval request not found", details={"approval_id": str(approval_id)}
        )
    return approval


def _already_resolved(approval_id, status: Optional[str]) -> ConflictError:
    return ConflictError(
        f"Approval request is already {status or 'resolved'}",
        code="APPROVAL_ALREADY_RESOLVED",
        details={"approval_id": str(approval_id), "status": status},
    )


async def resolve_approval_request(
    session: AsyncSession,
    actor: ActorContext,
    approval_id: str,
    action: str,
    rejection_reason: Optional[str] = None,
) -> ApprovalResolution:
    """Approve or reject a pending request, exactly once."""
    if action not in (ACTION_APPROVE, ACTION_REJECT):
        raise ValidationError(
            "action must be 'approve' or 'reject'", details={"action": action}
        )

    approval = await get_approval_request(session, actor, approval_id)

    # Any approver-class role may resolve any pending request in the tenant.
    # The stored role decides, not the token claim
    role = await get_role(session, actor.tenant_id, actor.user_id)
    if role not in APPROVER_ROLES:
        logger.warning(
            "approval_resolver_not_authorized",
            approval_id=str(approval.id),
            token_role=actor.role,
            stored_role=role,
        )
        raise AuthorizationError(
            f"Role '{role or actor.role}' cannot resolve approval requests",
            details={"required": sorted(APPROVER_ROLES)},
        )

    if approval.status != APPROVAL_PENDING:
        logger.warning(
            "approval_conflict",
            approval_id=str(approval.id),
            status=approval.status,
            attempted=action,
        )
        raise _already_resolved(approval.id, approval.status)

    kind = RecordKind.parse(approval.record_table)
    approved = action == ACTION_APPROVE
    new_status = APPROVAL_APPROVED if approved else APPROVAL_REJECTED
    reason = None if approved else rejection_reason
    now = datetime.utcnow()

    values = {
        "status": new_status,
        "approved_by": actor.user_id,
        "approved_at": now,
        "rejection_reason": reason,
        "updated_at": now,
    }
    result = await session.execute(
        update(ApprovalRequest)
        .where(
            ApprovalRequest.id == approval.id,
            ApprovalRequest.status == APPROVAL_PENDING,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Another resolver committed first
        logger.warning(
            "approval_conflict",
            approval_id=str(approval.id),
            attempted=action,
            reason="lost_race",
        )
        raise _already_resolved(approval.id, None)

    for key, value in values.items():
        set_committed_value(approval, key, value)

    record = await get_record(
        session, kind, approval.record_id, actor.tenant_id, for_update=True
    )
    if record is None:
        # Raising rolls back the status change with the rest of the unit of work
        raise NotFoundError(
            f"{kind.value} record not found",
            details={"record_table": kind.value, "record_id": str(approval.record_id)},
        )
    record.set_approval_status(new_status)
    record.set_locked(approved)
    await session.flush()

    notification = approval_resolved_event(
        approval.tenant_id,
        approval.requested_by,
        approval.workflow_type,
        approved,
        kind.value,
        str(approval.record_id),
        rejection_reason=reason,
    )

    logger.info(
        "approval_resolved",
        approval_id=str(approval.id),
        status=new_status,
        resolved_by=actor.user_id,
        record_table=kind.value,
        record_id=str(approval.record_id),
    )
    return ApprovalResolution(
        approval=approval, status=new_status, notifications=[notification]
    )


# ---------- queue ----------


async def list_pending_approvals(
    session: AsyncSession,
    actor: ActorContext,
    page: int = 1,
    limit: int = 20,
    workflow_type: Optional[str] = None,
) -> tuple[list[ApprovalRequest], int]:
    """Pending requests routed to the actor's role (all of them for overseers)."""
    filters = [
        ApprovalRequest.tenant_id == actor.tenant_id,
        ApprovalRequest.status == APPROVAL_PENDING,
    ]
    if not actor.has_role(QUEUE_OVERSEER_ROLES):
        filters.append(ApprovalRequest.current_approver_role == actor.role)
    if workflow_type:
        filters.append(ApprovalRequest.workflow_type == workflow_type)

    total = (
        await session.execute(select(func.count(ApprovalRequest.id)).where(*filters))
    ).scalar() or 0
    result = await session.execute(
        select(ApprovalRequest)
        .where(*filters)
        .order_by(ApprovalRequest.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


# ---------- tier administration ----------


def _require_workflow_admin(actor: ActorContext) -> None:
    if not actor.has_role(WORKFLOW_ADMIN_ROLES):
        raise AuthorizationError(
            f"Role '{actor.role}' cannot manage approval workflows",
            details={"required": sorted(WORKFLOW_ADMIN_ROLES)},
        )


async def create_workflow_tier(
    session: AsyncSession,
    actor: ActorContext,
    workflow_type: str,
    required_role: str,
    min_amount=0,
    max_amount=None,
    approval_order: int = 1,
) -> ApprovalWorkflow:
    _require_workflow_admin(actor)
    if not workflow_type or not workflow_type.strip():
        raise ValidationError("workflow_type is required", details={"field": "workflow_type"})
    if not required_role or not required_role.strip():
        raise ValidationError("required_role is required", details={"field": "required_role"})
    low = to_money(min_amount, "min_amount")
    high = None if max_amount is None else to_money(max_amount, "max_amount")
    if high is not None and high <= low:
        raise ValidationError(
            "max_amount must exceed min_amount",
            details={"min_amount": str(low), "max_amount": str(high)},
        )

    tier = ApprovalWorkflow(
        tenant_id=actor.tenant_id,
        workflow_type=workflow_type.strip(),
        required_role=required_role.strip(),
        min_amount=low,
        max_amount=high,
        approval_order=approval_order,
        is_active=True,
    )
    session.add(tier)
    await session.flush()

    logger.info(
        "approval_workflow_tier_created",
        workflow_id=str(tier.id),
        workflow_type=tier.workflow_type,
        min_amount=str(low),
        required_role=tier.required_role,
    )
    return tier


async def list_workflow_tiers(
    session: AsyncSession, actor: ActorContext, workflow_type: Optional[str] = None
) -> list[ApprovalWorkflow]:
    q = select(ApprovalWorkflow).where(
        ApprovalWorkflow.tenant_id == actor.tenant_id,
        ApprovalWorkflow.is_active == True,  # noqa: E712
    )
    if workflow_type:
        q = q.where(ApprovalWorkflow.workflow_type == workflow_type)
    result = await session.execute(
        q.order_by(ApprovalWorkflow.workflow_type, ApprovalWorkflow.min_amount.desc())
    )
    return list(result.scalars().all())


async def deactivate_workflow_tier(
    session: AsyncSession, actor: ActorContext, workflow_id: str
) -> ApprovalWorkflow:
    _require_workflow_admin(actor)
    result = await session.execute(
        select(ApprovalWorkflow).where(
            ApprovalWorkflow.id == parse_uuid(workflow_id, "workflow_id"),
            ApprovalWorkflow.tenant_id == actor.tenant_id,
        )
    )
    tier = result.scalar_one_or_none()
    if not tier:
        raise NotFoundError("Approval workflow not found", details={"workflow_id": str(workflow_id)})
    tier.is_active = False
    await session.flush()
    logger.info("approval_workflow_tier_deactivated", workflow_id=str(workflow_id))
    return tier
