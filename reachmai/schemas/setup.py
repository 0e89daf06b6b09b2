from typing import Any, Optional

from pydantic import Field

from ..models.profile import ContactMethod
from .base import CamelModel


class SetupValidationResponse(CamelModel):
    valid: bool
    data: Optional[dict[str, Any]] = None
    message: Optional[str] = None


class CompleteProfileRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: Optional[str] = None
    preferred_contact_method: ContactMethod = ContactMethod.EMAIL
    phone: Optional[str] = Field(None, max_length=50)
