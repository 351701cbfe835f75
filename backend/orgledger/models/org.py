import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgledger.database import Base, UTCDateTime, utcnow


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    # Audit metadata only; authority comes from Membership
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(back_populates="organization")  # noqa: F821
    invitations: Mapped[list["Invitation"]] = relationship(back_populates="organization")  # noqa: F821
    categories: Mapped[list["ExpenseCategory"]] = relationship(  # noqa: F821
        back_populates="organization"
    )
