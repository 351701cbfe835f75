import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from orgledger.config import ORG_NAME_MAX_LENGTH, ORG_NAME_MIN_LENGTH
from orgledger.models.membership import OrganizationRole


class OrgCreateRequest(BaseModel):
    name: str = Field(min_length=ORG_NAME_MIN_LENGTH, max_length=ORG_NAME_MAX_LENGTH)


class OrgSummary(BaseModel):
    id: uuid.UUID
    name: str


class MembershipSummary(BaseModel):
    id: uuid.UUID
    role: OrganizationRole


class OrgMembershipResponse(BaseModel):
    """Result of creating an organization or accepting an invitation."""

    organization: OrgSummary
    membership: MembershipSummary


class MyOrgResponse(BaseModel):
    membership_id: uuid.UUID
    organization_id: uuid.UUID
    organization_name: str
    role: OrganizationRole
    joined_at: datetime


class OrgMemberResponse(BaseModel):
    membership_id: uuid.UUID
    user_id: uuid.UUID
    email: str | None
    name: str | None
    role: OrganizationRole
    joined_at: datetime
