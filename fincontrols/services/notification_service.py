"""
Notification service: user-facing alerts emitted by the approval workflow.

Events are built DURING the request (while the session can resolve
recipients), then persisted AFTER the unit of work commits, in their own
session, via BackgroundTasks. Delivery is best-effort: a failure is
retried, then logged, and never rolls back the state transition that
produced it.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
import structlog

from fincontrols.config import settings
from fincontrols.database import AsyncSessionLocal, set_tenant_context
from fincontrols.exceptions import DependencyError, ValidationError
from fincontrols.models.notification import Notification

logger = structlog.get_logger()

DEFAULT_RETRY_WAIT = wait_exponential(multiplier=0.5, min=0.5, max=5)


@dataclass(frozen=True)
class NotificationEvent:
    tenant_id: str
    user_id: str
    title: str
    message: str
    type: str
    related_table: Optional[str] = None
    related_id: Optional[str] = None


def approval_required_events(
    tenant_id: str,
    approver_ids: Sequence[str],
    workflow_type: str,
    record_table: str,
    record_id: str,
) -> list[NotificationEvent]:
    return [
        NotificationEvent(
            tenant_id=str(tenant_id),
            user_id=str(user_id),
            title="Approval Required",
            message=f"A {workflow_type} request requires your approval",
            type="approval_required",
            related_table=record_table,
            related_id=str(record_id),
        )
        for user_id in approver_ids
    ]


def approval_resolved_event(
    tenant_id: str,
    requested_by: str,
    workflow_type: str,
    approved: bool,
    record_table: str,
    record_id: str,
    rejection_reason: Optional[str] = None,
) -> NotificationEvent:
    outcome = "approved" if approved else "rejected"
    message = f"Your {workflow_type} request has been {outcome}"
    if rejection_reason:
        message = f"{message}: {rejection_reason}"
    return NotificationEvent(
        tenant_id=str(tenant_id),
        user_id=str(requested_by),
        title="Request Approved" if approved else "Request Rejected",
        message=message,
        type="success" if approved else "error",
        related_table=record_table,
        related_id=str(record_id),
    )


def _by_tenant(events: Sequence[NotificationEvent]) -> dict[str, list[NotificationEvent]]:
    groups: dict[str, list[NotificationEvent]] = {}
    for e in events:
        groups.setdefault(str(e.tenant_id), []).append(e)
    return groups


async def _persist(session_factory, tenant_id: str, events: Sequence[NotificationEvent]) -> None:
    async with session_factory() as session:
        try:
            # RLS on notifications only admits rows for the session's tenant
            await set_tenant_context(session, tenant_id)
            session.add_all(
                [
                    Notification(
                        tenant_id=e.tenant_id,
                        user_id=e.user_id,
                        title=e.title,
                        message=e.message,
                        type=e.type,
                        related_table=e.related_table,
                        related_id=e.related_id,
                    )
                    for e in events
                ]
            )
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise DependencyError("Notification store unavailable") from exc


async def dispatch_notifications(
    events: Sequence[NotificationEvent],
    session_factory=None,
    wait=DEFAULT_RETRY_WAIT,
) -> int:
    """Persist events, one transaction per tenant; returns how many were stored.

    A failing tenant group is retried, then logged and dropped. Never raises
    on store failure.
    """
    if not events:
        return 0
    factory = session_factory or AsyncSessionLocal

    stored = 0
    for tenant_id, group in _by_tenant(events).items():
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(DependencyError),
                stop=stop_after_attempt(settings.NOTIFICATION_MAX_ATTEMPTS),
                wait=wait,
                reraise=True,
            ):
                with attempt:
                    await _persist(factory, tenant_id, group)
        except (DependencyError, ValidationError) as exc:
            logger.warning(
                "notification_dispatch_failed",
                tenant_id=tenant_id,
                count=len(group),
                types=sorted({e.type for e in group}),
                error=str(exc.__cause__ or exc),
            )
            continue
        stored += len(group)

    logger.info(
        "notifications_dispatched",
        count=stored,
        dropped=len(events) - stored,
        types=sorted({e.type for e in events}),
    )
    return stored
