import enum
import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgledger.database import Base, UTCDateTime, utcnow
from orgledger.models.membership import OrganizationRole, organization_role_enum


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


def invitation_status(
    accepted_at: datetime | None, expires_at: datetime, now: datetime
) -> InvitationStatus:
    """Derive an invitation's status from its timestamps. Never stored."""
    if accepted_at is not None:
        return InvitationStatus.ACCEPTED
    if expires_at < now:
        return InvitationStatus.EXPIRED
    return InvitationStatus.PENDING


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        # At most one unaccepted invitation per address and organization
        Index(
            "uq_invitations_pending_org_email",
            "organization_id",
            "email",
            unique=True,
            postgresql_where=text("accepted_at IS NULL"),
            sqlite_where=text("accepted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    role: Mapped[OrganizationRole] = mapped_column(
        organization_role_enum,
        nullable=False,
        default=OrganizationRole.MEMBER,
    )
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    invited_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    accepted_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(back_populates="invitations")  # noqa: F821
    inviter: Mapped["User"] = relationship(foreign_keys=[invited_by_id])  # noqa: F821

    def status_at(self, now: datetime) -> InvitationStatus:
        return invitation_status(self.accepted_at, self.expires_at, now)
