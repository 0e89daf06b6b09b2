from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class ProfileType(str, Enum):
    STUDENT = "student"
    PARENT = "parent"
    ADULT = "adult"
    TEACHER = "teacher"
    ADMIN = "admin"
    MANAGER = "manager"


class ContactMethod(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    SMS = "sms"


# Profile types allowed to manage staff and users
ADMIN_PROFILE_TYPES = frozenset({ProfileType.ADMIN, ProfileType.MANAGER})

# Profile types an account may give itself; staff profiles come from invitations
SELF_SERVICE_PROFILE_TYPES = frozenset({ProfileType.STUDENT, ProfileType.PARENT, ProfileType.ADULT})


class Profile(Base):
    """Role-scoped persona owned by exactly one account.

    Profiles created by an administrator start inactive and are activated
    once through the setup flow; activation is never reversed there.
    """
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(
        Integer,
        ForeignKey("auth_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_type = Column(String(20), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    preferred_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    preferred_contact_method = Column(String(20), nullable=False, default=ContactMethod.EMAIL.value)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    account = relationship("Account", back_populates="profiles")
