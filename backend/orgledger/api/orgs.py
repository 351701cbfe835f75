import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgledger.core.access import require_membership
from orgledger.core.dependencies import get_current_user
from orgledger.database import get_db
from orgledger.models.membership import Membership, OrganizationRole
from orgledger.models.org import Organization
from orgledger.models.user import User
from orgledger.schemas.org import (
    MembershipSummary,
    MyOrgResponse,
    OrgCreateRequest,
    OrgMemberResponse,
    OrgMembershipResponse,
    OrgSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orgs", tags=["orgs"])


@router.get("", response_model=list[MyOrgResponse], summary="List My Organizations")
async def list_orgs(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's memberships, ordered by organization name."""
    result = await db.execute(
        select(Membership, Organization.name)
        .join(Organization, Organization.id == Membership.organization_id)
        .where(Membership.user_id == current_user.id)
        .order_by(Organization.name.asc())
        .execution_options(populate_existing=True)
    )
    return [
        MyOrgResponse(
            membership_id=membership.id,
            organization_id=membership.organization_id,
            organization_name=org_name,
            role=membership.role,
            joined_at=membership.created_at,
        )
        for membership, org_name in result.all()
    ]


@router.post("", response_model=OrgMembershipResponse, status_code=201, summary="Create Organization")
async def create_org(
    request: OrgCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an organization with the caller as its founding admin."""
    name = request.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization name is required",
        )

    org = Organization(name=name, created_by_id=current_user.id)
    db.add(org)
    await db.flush()

    # Same transaction as the organization row: never an org without an admin
    membership = Membership(
        organization_id=org.id,
        user_id=current_user.id,
        role=OrganizationRole.ADMIN,
    )
    db.add(membership)
    await db.flush()

    logger.info(
        f"Organization {org.id} created",
        extra={"user_id": str(current_user.id), "org_id": str(org.id)},
    )
    return OrgMembershipResponse(
        organization=OrgSummary(id=org.id, name=org.name),
        membership=MembershipSummary(id=membership.id, role=membership.role),
    )


@router.get(
    "/{organization_id}/members",
    response_model=list[OrgMemberResponse],
    summary="List Organization Members",
)
async def list_members(
    organization_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List members of an organization the caller belongs to."""
    await require_membership(db, current_user, organization_id)

    result = await db.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.organization_id == organization_id)
        .order_by(Membership.created_at)
        .execution_options(populate_existing=True)
    )
    return [
        OrgMemberResponse(
            membership_id=membership.id,
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=membership.role,
            joined_at=membership.created_at,
        )
        for membership, user in result.all()
    ]
