from orgledger.models.category import ExpenseCategory
from orgledger.models.invitation import Invitation, InvitationStatus, invitation_status
from orgledger.models.membership import Membership, OrganizationRole
from orgledger.models.org import Organization
from orgledger.models.user import User

__all__ = [
    "User",
    "Organization",
    "Membership",
    "OrganizationRole",
    "Invitation",
    "InvitationStatus",
    "invitation_status",
    "ExpenseCategory",
]
