from .auth import AuthService
from .audit import AuditService
from .activation import ProfileActivationService
from .gate import AuthGate, Capability, Identity
from .invitations import InvitationService
from .passwords import PasswordResetService
from .tokens import TokenService

__all__ = [
    "AuthService",
    "AuditService",
    "ProfileActivationService",
    "AuthGate",
    "Capability",
    "Identity",
    "InvitationService",
    "PasswordResetService",
    "TokenService",
]
