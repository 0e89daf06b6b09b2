from typing import Optional

from pydantic import EmailStr, Field

from ..models.profile import ContactMethod, ProfileType
from .auth import AccountResponse
from .base import CamelModel
from .profile import ProfileResponse


class UserProfileInput(CamelModel):
    type: ProfileType
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    preferred_contact_method: ContactMethod = ContactMethod.EMAIL


class UserCreate(CamelModel):
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    profile: UserProfileInput
    send_invitation: bool = True


class UserCreateResponse(CamelModel):
    account: AccountResponse
    profile: ProfileResponse
    email_sent: bool


class EmailSentResponse(CamelModel):
    email_sent: bool
    message: str
