import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from orgledger.models.invitation import InvitationStatus
from orgledger.models.membership import OrganizationRole
from orgledger.schemas.org import OrgSummary


class InvitationCreateRequest(BaseModel):
    email: EmailStr
    role: OrganizationRole = OrganizationRole.MEMBER


class InvitationCreateResponse(BaseModel):
    id: uuid.UUID
    token: str
    email: str
    role: OrganizationRole
    expires_at: datetime
    invite_url: str


class InvitationResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: OrganizationRole
    invited_by_id: uuid.UUID
    invited_at: datetime
    expires_at: datetime
    accepted_at: datetime | None
    status: InvitationStatus
    # Suppressed once the invitation has been used
    token: str | None


class MyInvitationResponse(BaseModel):
    id: uuid.UUID
    token: str
    role: OrganizationRole
    expires_at: datetime
    invited_at: datetime
    organization: OrgSummary


class InvitationAcceptRequest(BaseModel):
    token: str = Field(min_length=1)
