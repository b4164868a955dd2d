from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fincontrols.actor import ActorContext
from fincontrols.database import get_db, set_tenant_context
from fincontrols.middleware.auth import get_current_actor


async def get_db_with_tenant(
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
) -> AsyncSession:
    """Request session scoped to the caller's company; tags the request's log lines with it."""
    structlog.contextvars.bind_contextvars(
        tenant_id=str(actor.tenant_id), user_id=str(actor.user_id), role=actor.role
    )
    await set_tenant_context(db, actor.tenant_id)
    return db
