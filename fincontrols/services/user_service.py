"""Identity lookups scoped to a tenant: a user's role and the holders of a role."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fincontrols.models.user import User


async def get_tenant_member(
    session: AsyncSession, tenant_id: str, user_id: str
) -> Optional[User]:
    result = await session.execute(
        select(User).where(
            User.id == user_id,
            User.tenant_id == tenant_id,
            User.is_active == True,  # noqa: E712
            User.deleted_at == None,  # noqa: E711
        )
    )
    return result.scalar_one_or_none()


async def get_role(session: AsyncSession, tenant_id: str, user_id: str) -> Optional[str]:
    member = await get_tenant_member(session, tenant_id, user_id)
    return member.role if member else None


async def get_users_with_role(
    session: AsyncSession, tenant_id: str, role: str
) -> list[str]:
    result = await session.execute(
        select(User.id).where(
            User.tenant_id == tenant_id,
            User.role == role,
            User.is_active == True,  # noqa: E712
            User.deleted_at == None,  # noqa: E711
        )
    )
    return [str(row[0]) for row in result.all()]
