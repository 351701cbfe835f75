"""Organization-scoped access checks.

Every organization-scoped read or write goes through ``require_role`` (via
``require_membership`` or ``require_admin``) before touching tenant data.
Denials are identical whether or not the organization exists.
"""

import logging
import uuid
from collections.abc import Collection

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgledger.models.membership import Membership, OrganizationRole
from orgledger.models.user import User

logger = logging.getLogger(__name__)

ALL_ROLES = (OrganizationRole.ADMIN, OrganizationRole.MEMBER)
ADMIN_ROLES = (OrganizationRole.ADMIN,)


async def get_membership(
    db: AsyncSession, user_id: uuid.UUID, organization_id: uuid.UUID
) -> Membership | None:
    result = await db.execute(
        select(Membership)
        .where(
            Membership.user_id == user_id,
            Membership.organization_id == organization_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_role(
    db: AsyncSession,
    user: User,
    organization_id: uuid.UUID,
    roles: Collection[OrganizationRole],
    detail: str,
) -> Membership:
    membership = await get_membership(db, user.id, organization_id)
    if membership is None or membership.role not in roles:
        logger.warning(
            "Access denied",
            extra={"user_id": str(user.id), "org_id": str(organization_id)},
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return membership


async def require_membership(
    db: AsyncSession, user: User, organization_id: uuid.UUID
) -> Membership:
    return await require_role(
        db,
        user,
        organization_id,
        ALL_ROLES,
        "You do not have access to this organization",
    )


async def require_admin(db: AsyncSession, user: User, organization_id: uuid.UUID) -> Membership:
    return await require_role(
        db,
        user,
        organization_id,
        ADMIN_ROLES,
        "Only organization admins can perform this action",
    )
