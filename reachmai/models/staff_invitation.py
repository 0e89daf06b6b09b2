"""Staff invitation model.

An invitation offers a staff profile (admin, teacher or manager) to an email
that has no account yet. Accepting it creates the account and profile.
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text

from ..database import Base


class StaffRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    MANAGER = "manager"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


INVITATION_STATUS_TRANSITIONS = {
    InvitationStatus.PENDING: frozenset({
        InvitationStatus.ACCEPTED,
        InvitationStatus.CANCELLED,
        InvitationStatus.EXPIRED,
    }),
    InvitationStatus.ACCEPTED: frozenset(),
    InvitationStatus.CANCELLED: frozenset(),
    InvitationStatus.EXPIRED: frozenset(),
}

TERMINAL_INVITATION_STATUSES = frozenset({
    InvitationStatus.ACCEPTED,
    InvitationStatus.CANCELLED,
    InvitationStatus.EXPIRED,
})


def can_transition(current: InvitationStatus, target: InvitationStatus) -> bool:
    return target in INVITATION_STATUS_TRANSITIONS.get(current, frozenset())


def statuses_leading_to(target: InvitationStatus) -> list[str]:
    """Stored status values an invitation may move to ``target`` from."""
    return sorted(s.value for s in InvitationStatus if can_transition(s, target))


def open_statuses() -> list[str]:
    """Stored status values that can still change."""
    return sorted(s.value for s in InvitationStatus if s not in TERMINAL_INVITATION_STATUSES)


class StaffInvitation(Base):
    __tablename__ = "staff_invitations"
    __table_args__ = (
        # At most one pending invitation per email
        Index(
            "uq_staff_invitations_pending_email",
            "email",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=InvitationStatus.PENDING.value)
    invited_by = Column(Integer, ForeignKey("user_profiles.id"), nullable=True)
    invited_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    token = Column(String(64), unique=True, nullable=False, index=True)

    @property
    def is_expired(self) -> bool:
        """Expiry is derived from expires_at; status is not swept."""
        return datetime.utcnow() >= self.expires_at
