from .auth import (
    AccountResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SuccessResponse,
    SystemAdminResponse,
    TokenResponse,
)
from .invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    CancelInvitationResult,
    InvitationResponse,
    InviteRequest,
    InviteResult,
)
from .profile import ProfileCreate, ProfileResponse
from .setup import CompleteProfileRequest, SetupValidationResponse
from .user import EmailSentResponse, UserCreate, UserCreateResponse

__all__ = [
    "AccountResponse",
    "LoginRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "SuccessResponse",
    "SystemAdminResponse",
    "TokenResponse",
    "AcceptInvitationRequest",
    "AcceptInvitationResponse",
    "CancelInvitationResult",
    "InvitationResponse",
    "InviteRequest",
    "InviteResult",
    "ProfileCreate",
    "ProfileResponse",
    "CompleteProfileRequest",
    "SetupValidationResponse",
    "EmailSentResponse",
    "UserCreate",
    "UserCreateResponse",
]
