from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from ..database import Base


class Account(Base):
    """Login identity. Emails are stored lower-cased."""
    __tablename__ = "auth_accounts"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    profiles = relationship(
        "Profile",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="Profile.id",
    )

    @property
    def active_profiles(self) -> list:
        return [p for p in self.profiles if p.is_active]
