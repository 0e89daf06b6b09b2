"""Staff invitation lifecycle: create, list, cancel, resend, accept.

State lives in ``staff_invitations``. Every transition is a conditional
UPDATE restricted to the statuses the transition table allows it from, so
the store, not this module, decides which of two racing requests wins.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    DuplicateAccountError,
    DuplicatePendingInvitationError,
    InvalidOrExpiredInvitationError,
    InvalidRoleError,
    InvitationNotFoundError,
    PasswordMismatchError,
)
from ..models.account import Account
from ..models.profile import Profile, ProfileType
from ..models.staff_invitation import (
    InvitationStatus,
    StaffInvitation,
    StaffRole,
    open_statuses,
    statuses_leading_to,
)
from .audit import AuditService
from .auth import AuthService, normalize_email
from .email import STAFF_INVITATION_TEMPLATE, Notifier
from .tokens import TokenService, issue_session_token

logger = logging.getLogger(__name__)


def generate_invitation_token() -> str:
    """Opaque lookup token; compared by equality, never decoded."""
    return secrets.token_urlsafe(32)


def parse_staff_role(role) -> StaffRole:
    try:
        return StaffRole(role)
    except ValueError:
        raise InvalidRoleError(str(getattr(role, "value", role)))


class InvitationService:
    def __init__(
        self,
        db: Session,
        tokens: TokenService,
        notifier: Notifier,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.tokens = tokens
        self.notifier = notifier
        self.settings = settings or get_settings()

    @property
    def expiry(self) -> timedelta:
        return timedelta(days=self.settings.staff_invitation_expire_days)

    def _get(self, invitation_id: int) -> Optional[StaffInvitation]:
        return self.db.get(StaffInvitation, invitation_id, populate_existing=True)

    def _expire_stale_pending(self, email: str, now: datetime) -> int:
        """Mark a lapsed pending invitation for ``email`` as expired."""
        result = self.db.execute(
            update(StaffInvitation)
            .where(
                StaffInvitation.email == email,
                StaffInvitation.status.in_(statuses_leading_to(InvitationStatus.EXPIRED)),
                StaffInvitation.expires_at <= now,
            )
            .values(status=InvitationStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _send_invitation_email(self, invitation: StaffInvitation) -> bool:
        sent = self.notifier.send(
            invitation.email,
            STAFF_INVITATION_TEMPLATE,
            {
                "first_name": invitation.first_name,
                "last_name": invitation.last_name,
                "role": invitation.role,
                "token": invitation.token,
                "expiry_days": self.settings.staff_invitation_expire_days,
            },
        )
        if not sent:
            logger.warning(
                "Invitation email not delivered",
                extra={"invitation_id": invitation.id, "email": invitation.email},
            )
        return sent

    def _reject_registered_email(self, invitation: StaffInvitation):
        """Fail an acceptance whose email registered after the invite.

        The caller holds only a link, so this is reported like any other
        dead link and the claim is rolled back.
        """
        email = invitation.email
        self.db.rollback()
        logger.warning(
            "Invitation acceptance rejected",
            extra={"email": email, "rejection_reason": "DUPLICATE_ACCOUNT"},
        )
        raise InvalidOrExpiredInvitationError()

    def create_invitation(
        self,
        email: str,
        first_name: str,
        last_name: str,
        role,
        invited_by: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> tuple[StaffInvitation, bool]:
        """
        Create a pending invitation and email it.

        Returns:
            Tuple of (invitation, email_sent). A failed send does not undo
            the invitation.
        """
        staff_role = parse_staff_role(role)
        email = normalize_email(email)

        if AuthService.get_account_by_email(self.db, email):
            logger.info(
                "Invitation rejected",
                extra={"email": email, "rejection_reason": "DUPLICATE_ACCOUNT"},
            )
            raise DuplicateAccountError(email)

        now = datetime.utcnow()
        self._expire_stale_pending(email, now)

        existing = self.db.query(StaffInvitation).filter(
            StaffInvitation.email == email,
            StaffInvitation.status == InvitationStatus.PENDING.value,
        ).first()
        if existing:
            self.db.rollback()
            logger.info(
                "Invitation rejected",
                extra={"email": email, "rejection_reason": "DUPLICATE_PENDING_INVITATION"},
            )
            raise DuplicatePendingInvitationError(email)

        invitation = StaffInvitation(
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=staff_role.value,
            status=InvitationStatus.PENDING.value,
            invited_by=invited_by,
            invited_at=now,
            expires_at=now + self.expiry,
            token=generate_invitation_token(),
        )
        self.db.add(invitation)
        try:
            self.db.flush()
        except IntegrityError:
            # Lost a race against another invite for the same email
            self.db.rollback()
            raise DuplicatePendingInvitationError(email)

        AuditService.log_invitation_event(self.db, "STAFF_INVITATION_CREATED", invitation, actor=actor)
        self.db.commit()
        self.db.refresh(invitation)

        logger.info(
            "Staff invitation created",
            extra={"invitation_id": invitation.id, "email": email, "role": invitation.role},
        )
        return invitation, self._send_invitation_email(invitation)

    def list_invitations(self, status: Optional[InvitationStatus] = None) -> List[StaffInvitation]:
        query = self.db.query(StaffInvitation)
        if status is not None:
            query = query.filter(StaffInvitation.status == InvitationStatus(status).value)
        return query.order_by(StaffInvitation.invited_at.desc(), StaffInvitation.id.desc()).all()

    def cancel_invitation(self, invitation_id: int, actor: Optional[str] = None) -> StaffInvitation:
        result = self.db.execute(
            update(StaffInvitation)
            .where(
                StaffInvitation.id == invitation_id,
                StaffInvitation.status.in_(statuses_leading_to(InvitationStatus.CANCELLED)),
            )
            .values(status=InvitationStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise InvitationNotFoundError(invitation_id)

        invitation = self._get(invitation_id)
        AuditService.log_invitation_event(self.db, "STAFF_INVITATION_CANCELLED", invitation, actor=actor)
        self.db.commit()
        self.db.refresh(invitation)
        logger.info("Staff invitation cancelled", extra={"invitation_id": invitation_id})
        return invitation

    def resend_invitation(self, invitation_id: int, actor: Optional[str] = None) -> tuple[StaffInvitation, bool]:
        """Rotate the token, restart the expiry window and email again."""
        now = datetime.utcnow()
        result = self.db.execute(
            update(StaffInvitation)
            .where(
                StaffInvitation.id == invitation_id,
                StaffInvitation.status.in_(open_statuses()),
            )
            .values(token=generate_invitation_token(), expires_at=now + self.expiry)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise InvitationNotFoundError(invitation_id)

        invitation = self._get(invitation_id)
        AuditService.log_invitation_event(self.db, "STAFF_INVITATION_RESENT", invitation, actor=actor)
        self.db.commit()
        self.db.refresh(invitation)
        logger.info("Staff invitation resent", extra={"invitation_id": invitation_id})
        return invitation, self._send_invitation_email(invitation)

    def accept_invitation(
        self,
        token: str,
        password: str,
        confirm_password: str,
    ) -> tuple[Account, Profile, str]:
        """
        Turn a pending invitation into an account and an active profile.

        Unknown, expired, cancelled and already-accepted tokens all fail
        the same way. Claiming the invitation, creating the account and
        profile and recording the acceptance commit together.

        Returns:
            Tuple of (account, profile, session_token)
        """
        if password != confirm_password:
            raise PasswordMismatchError()

        now = datetime.utcnow()
        claimed = self.db.execute(
            update(StaffInvitation)
            .where(
                StaffInvitation.token == token,
                StaffInvitation.status.in_(statuses_leading_to(InvitationStatus.ACCEPTED)),
                StaffInvitation.expires_at > now,
            )
            .values(status=InvitationStatus.ACCEPTED.value, accepted_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            self.db.rollback()
            logger.warning(
                "Invitation acceptance rejected",
                extra={"rejection_reason": "INVALID_OR_EXPIRED_INVITATION"},
            )
            raise InvalidOrExpiredInvitationError()

        invitation = (
            self.db.query(StaffInvitation)
            .filter(StaffInvitation.token == token)
            .populate_existing()
            .one()
        )

        if AuthService.get_account_by_email(self.db, invitation.email):
            self._reject_registered_email(invitation)

        # Delivery of the invitation email is taken as proof of ownership
        account = AuthService.build_account(
            invitation.email,
            AuthService.get_password_hash(password),
            email_verified=True,
        )
        profile = AuthService.build_profile(
            account,
            ProfileType(invitation.role),
            invitation.first_name,
            invitation.last_name,
            is_active=True,
        )
        self.db.add(account)
        try:
            self.db.flush()
        except IntegrityError:
            self._reject_registered_email(invitation)

        AuditService.log_invitation_event(
            self.db,
            "STAFF_INVITATION_ACCEPTED",
            invitation,
            actor=str(account.id),
            metadata={"account_id": account.id, "profile_id": profile.id},
        )
        self.db.commit()
        self.db.refresh(account)
        self.db.refresh(profile)

        logger.info(
            "Staff invitation accepted",
            extra={"invitation_id": invitation.id, "account_id": account.id, "role": profile.profile_type},
        )
        session_token = issue_session_token(self.tokens, account, self.settings)
        return account, profile, session_token
