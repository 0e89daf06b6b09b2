from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from ..models.profile import ContactMethod, ProfileType
from .base import CamelModel


class ProfileResponse(CamelModel):
    id: int
    account_id: int
    type: str = Field(validation_alias=AliasChoices("type", "profile_type", "profileType"))
    first_name: str
    last_name: str
    preferred_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    preferred_contact_method: str
    is_active: bool
    created_at: datetime


class ProfileCreate(CamelModel):
    type: ProfileType
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    preferred_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    preferred_contact_method: ContactMethod = ContactMethod.EMAIL
