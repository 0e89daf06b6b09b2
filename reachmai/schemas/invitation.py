from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from .auth import AccountResponse
from .base import CamelModel
from .profile import ProfileResponse


class InviteRequest(CamelModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    # Checked against the staff roles by the service so that a wrong role
    # is reported like other validation failures
    role: str


class InvitationResponse(CamelModel):
    """Invitation as shown to administrators. The lookup token is omitted."""
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    status: str
    invited_by: Optional[int] = None
    invited_at: datetime
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    is_expired: bool


class InviteResult(CamelModel):
    invitation: InvitationResponse
    email_sent: bool
    # Lets an administrator share the link by hand when email fails
    invitation_url: str


class CancelInvitationResult(CamelModel):
    invitation: InvitationResponse
    message: str


class AcceptInvitationRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str


class AcceptInvitationResponse(CamelModel):
    token: str
    account: AccountResponse
    profile: ProfileResponse
