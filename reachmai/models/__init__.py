from .account import Account
from .profile import Profile, ProfileType, ContactMethod, ADMIN_PROFILE_TYPES, SELF_SERVICE_PROFILE_TYPES
from .staff_invitation import (
    StaffInvitation,
    StaffRole,
    InvitationStatus,
    INVITATION_STATUS_TRANSITIONS,
    TERMINAL_INVITATION_STATUSES,
    open_statuses,
    statuses_leading_to,
)
from .audit import AuditEvent

__all__ = [
    "Account",
    "Profile",
    "ProfileType",
    "ContactMethod",
    "ADMIN_PROFILE_TYPES",
    "SELF_SERVICE_PROFILE_TYPES",
    "StaffInvitation",
    "StaffRole",
    "InvitationStatus",
    "INVITATION_STATUS_TRANSITIONS",
    "TERMINAL_INVITATION_STATUSES",
    "open_statuses",
    "statuses_leading_to",
    "AuditEvent",
]
