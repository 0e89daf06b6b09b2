from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from ..models.profile import ProfileType
from .base import CamelModel
from .profile import ProfileResponse


class AccountResponse(CamelModel):
    id: int
    email: str
    phone: Optional[str] = None
    email_verified: bool
    phone_verified: bool
    created_at: datetime
    profiles: List[ProfileResponse] = []

    @classmethod
    def from_account(cls, account, active_only: bool = True) -> "AccountResponse":
        profiles = account.active_profiles if active_only else account.profiles
        return cls(
            id=account.id,
            email=account.email,
            phone=account.phone,
            email_verified=account.email_verified,
            phone_verified=account.phone_verified,
            created_at=account.created_at,
            profiles=[ProfileResponse.model_validate(p) for p in profiles],
        )


class LoginRequest(CamelModel):
    email: str
    password: str


class RegisterProfile(CamelModel):
    type: ProfileType
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = Field(None, max_length=50)
    profile: RegisterProfile


class TokenResponse(CamelModel):
    token: str
    account: AccountResponse


class SystemAdminResponse(CamelModel):
    success: bool = True
    is_system_admin: bool = True


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str


class SuccessResponse(CamelModel):
    success: bool
    message: str
