"""Organization invitations.

An invitation is an offer to join an organization at a role, bound to an
email address and redeemed with its token. Status (pending / accepted /
expired) is derived from ``accepted_at`` and ``expires_at`` at read time.
"""

import logging
import secrets
import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgledger.config import INVITATION_EXPIRY_DAYS, INVITATION_TOKEN_BYTES, settings
from orgledger.core.access import require_admin
from orgledger.core.dependencies import get_current_user
from orgledger.database import get_db, utcnow
from orgledger.models.invitation import Invitation
from orgledger.models.membership import Membership, OrganizationRole
from orgledger.models.org import Organization
from orgledger.models.user import User
from orgledger.schemas.invitation import (
    InvitationAcceptRequest,
    InvitationCreateRequest,
    InvitationCreateResponse,
    InvitationResponse,
    MyInvitationResponse,
)
from orgledger.schemas.org import MembershipSummary, OrgMembershipResponse, OrgSummary

logger = logging.getLogger(__name__)

PENDING_CONFLICT_DETAIL = "An invitation for this email is already pending"

org_router = APIRouter(prefix="/orgs/{organization_id}/invitations", tags=["invitations"])
router = APIRouter(prefix="/invitations", tags=["invitations"])


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _generate_token() -> str:
    return secrets.token_hex(INVITATION_TOKEN_BYTES)


def _frontend_url() -> str:
    if settings.frontend_url:
        return settings.frontend_url.rstrip("/")
    return settings.cors_origin_list[0] if settings.cors_origin_list else "http://localhost:3000"


def _invite_url(token: str) -> str:
    return f"{_frontend_url()}/invitations/accept?token={token}"


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT that supports ON CONFLICT."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def _find_pending_invitation(
    db: AsyncSession, organization_id: uuid.UUID, email: str
) -> Invitation | None:
    result = await db.execute(
        select(Invitation)
        .where(
            Invitation.organization_id == organization_id,
            Invitation.email == email,
            Invitation.accepted_at.is_(None),
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def _find_invitation_by_token(
    db: AsyncSession, token: str
) -> tuple[Invitation, Organization] | None:
    result = await db.execute(
        select(Invitation, Organization)
        .join(Organization, Organization.id == Invitation.organization_id)
        .where(Invitation.token == token)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    return tuple(row) if row is not None else None


async def _upsert_membership(
    db: AsyncSession,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    role: OrganizationRole,
) -> tuple[uuid.UUID, OrganizationRole]:
    """Create the membership, or overwrite its role if one already exists."""
    insert = _insert_for(db)
    stmt = insert(Membership).values(
        id=uuid.uuid4(),
        organization_id=organization_id,
        user_id=user_id,
        role=role,
        created_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "organization_id"],
        set_={"role": stmt.excluded.role},
    ).returning(Membership.id, Membership.role)
    result = await db.execute(stmt)
    membership_id, membership_role = result.one()
    return membership_id, OrganizationRole(membership_role)


# ---------------------------------------------------------------------------
# Admin: issue and review invitations
# ---------------------------------------------------------------------------


@org_router.post("", response_model=InvitationCreateResponse, status_code=201, summary="Invite User")
async def create_invitation(
    organization_id: uuid.UUID,
    request: InvitationCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Invite an email address to the organization, re-issuing any pending invite."""
    await require_admin(db, current_user, organization_id)
    email = normalize_email(str(request.email))

    if current_user.email and normalize_email(current_user.email) == email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot invite yourself",
        )

    member_result = await db.execute(
        select(Membership.id)
        .join(User, User.id == Membership.user_id)
        .where(
            func.lower(User.email) == email,
            Membership.organization_id == organization_id,
        )
    )
    if member_result.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this organization",
        )

    token = _generate_token()
    now = utcnow()
    expires_at = now + timedelta(days=INVITATION_EXPIRY_DAYS)

    invitation = await _find_pending_invitation(db, organization_id, email)

    if invitation:
        invitation.role = request.role
        invitation.token = token
        invitation.invited_by_id = current_user.id
        invitation.expires_at = expires_at
        invitation.created_at = now
        action = "re-issued"
    else:
        invitation = Invitation(
            organization_id=organization_id,
            email=email,
            role=request.role,
            token=token,
            invited_by_id=current_user.id,
            created_at=now,
            expires_at=expires_at,
        )
        db.add(invitation)
        action = "created"
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent first-time invite to the same address
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=PENDING_CONFLICT_DETAIL)

    logger.info(
        f"Invitation {invitation.id} {action} ({invitation.role.value})",
        extra={
            "user_id": str(current_user.id),
            "org_id": str(organization_id),
            "invitation_id": str(invitation.id),
        },
    )
    return InvitationCreateResponse(
        id=invitation.id,
        token=invitation.token,
        email=invitation.email,
        role=invitation.role,
        expires_at=invitation.expires_at,
        invite_url=_invite_url(invitation.token),
    )


@org_router.get("", response_model=list[InvitationResponse], summary="List Invitations")
async def list_invitations(
    organization_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List every invitation of the organization, newest first."""
    await require_admin(db, current_user, organization_id)

    result = await db.execute(
        select(Invitation)
        .where(Invitation.organization_id == organization_id)
        .order_by(Invitation.created_at.desc())
        .execution_options(populate_existing=True)
    )
    now = utcnow()
    return [
        InvitationResponse(
            id=inv.id,
            email=inv.email,
            role=inv.role,
            invited_by_id=inv.invited_by_id,
            invited_at=inv.created_at,
            expires_at=inv.expires_at,
            accepted_at=inv.accepted_at,
            status=inv.status_at(now),
            token=None if inv.accepted_at else inv.token,
        )
        for inv in result.scalars().all()
    ]


# ---------------------------------------------------------------------------
# Invitee: self-service
# ---------------------------------------------------------------------------


@router.get("/mine", response_model=list[MyInvitationResponse], summary="List My Invitations")
async def my_invitations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Pending invitations addressed to the caller's own email."""
    if not current_user.email:
        return []
    email = current_user.email.lower()

    result = await db.execute(
        select(Invitation, Organization)
        .join(Organization, Organization.id == Invitation.organization_id)
        .where(
            Invitation.email == email,
            Invitation.accepted_at.is_(None),
            Invitation.expires_at > utcnow(),
        )
        .order_by(Invitation.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return [
        MyInvitationResponse(
            id=inv.id,
            token=inv.token,
            role=inv.role,
            expires_at=inv.expires_at,
            invited_at=inv.created_at,
            organization=OrgSummary(id=org.id, name=org.name),
        )
        for inv, org in result.all()
    ]


@router.post("/accept", response_model=OrgMembershipResponse, summary="Accept Invitation")
async def accept_invitation(
    request: InvitationAcceptRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Redeem an invitation token and join (or change role in) the organization."""
    row = await _find_invitation_by_token(db, request.token)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    invitation, org = row

    if invitation.accepted_at:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation has already been accepted",
        )

    now = utcnow()
    if invitation.expires_at < now:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation has expired",
        )

    if not current_user.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Authenticated user does not have an email address",
        )

    if current_user.email.lower() != invitation.email:
        logger.warning(
            f"Invitation {invitation.id} presented by a different address",
            extra={"user_id": str(current_user.id), "invitation_id": str(invitation.id)},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invitation email does not match the authenticated user",
        )

    # Conditional claim: a concurrent acceptance that got here first wins
    claimed = await db.execute(
        update(Invitation)
        .where(Invitation.id == invitation.id, Invitation.accepted_at.is_(None))
        .values(accepted_at=now, accepted_by_id=current_user.id)
    )
    if claimed.rowcount != 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation has already been accepted",
        )

    membership_id, role = await _upsert_membership(
        db, current_user.id, invitation.organization_id, invitation.role
    )

    logger.info(
        f"Invitation {invitation.id} accepted as {role.value}",
        extra={
            "user_id": str(current_user.id),
            "org_id": str(invitation.organization_id),
            "invitation_id": str(invitation.id),
        },
    )
    return OrgMembershipResponse(
        organization=OrgSummary(id=org.id, name=org.name),
        membership=MembershipSummary(id=membership_id, role=role),
    )
