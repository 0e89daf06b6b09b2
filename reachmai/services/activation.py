"""First-login setup for profiles created by an administrator.

An admin creates an account with an inactive profile and the user receives
a signed setup token. Completing setup chooses a password and contact
preference and flips the profile to active, exactly once.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    InvalidTokenError,
    PasswordMismatchError,
    ProfileAlreadyActiveError,
    ProfileNotFoundError,
    SetupTokenInvalidError,
    ValidationError,
)
from ..models.account import Account
from ..models.profile import ContactMethod, Profile, ProfileType
from .audit import AuditService
from .auth import AuthService
from .email import USER_SETUP_TEMPLATE, Notifier
from .tokens import SETUP_TOKEN_TYPE, TokenService, issue_setup_token

logger = logging.getLogger(__name__)

PHONE_CONTACT_METHODS = frozenset({ContactMethod.PHONE, ContactMethod.SMS})


@dataclass
class SetupTokenResult:
    valid: bool
    data: dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    code: Optional[str] = None


class ProfileActivationService:
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

    def _send_setup_email(self, account: Account, profile: Profile) -> bool:
        token = issue_setup_token(self.tokens, account, profile, self.settings)
        sent = self.notifier.send(
            account.email,
            USER_SETUP_TEMPLATE,
            {
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "profile_type": profile.profile_type,
                "token": token,
                "expiry_days": self.settings.setup_token_expire_days,
            },
        )
        if not sent:
            logger.warning(
                "Setup email not delivered",
                extra={"account_id": account.id, "profile_id": profile.id},
            )
        return sent

    def create_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        profile_type: ProfileType,
        phone: Optional[str] = None,
        preferred_contact_method: ContactMethod = ContactMethod.EMAIL,
        send_invitation: bool = True,
        actor: Optional[str] = None,
    ) -> tuple[Account, Profile, bool]:
        """Create an account awaiting setup with one inactive profile.

        The account gets a random password nobody knows until setup
        replaces it.
        """
        AuthService.ensure_email_available(self.db, email)

        account = AuthService.build_account(
            email,
            AuthService.get_unusable_password_hash(),
            phone=phone,
        )
        profile = AuthService.build_profile(
            account,
            profile_type,
            first_name,
            last_name,
            phone=phone,
            preferred_contact_method=preferred_contact_method,
            is_active=False,
        )
        self.db.add(account)
        self.db.flush()
        AuditService.log_profile_event(self.db, "USER_CREATED", profile, actor=actor)
        self.db.commit()
        self.db.refresh(account)
        self.db.refresh(profile)

        logger.info(
            "User created pending setup",
            extra={"account_id": account.id, "profile_id": profile.id, "profile_type": profile.profile_type},
        )

        email_sent = self._send_setup_email(account, profile) if send_invitation else False
        return account, profile, email_sent

    def resend_setup(self, profile_id: int, actor: Optional[str] = None) -> tuple[Profile, bool]:
        profile = self.db.get(Profile, profile_id, populate_existing=True)
        if not profile:
            raise ProfileNotFoundError()
        if profile.is_active:
            # A fresh setup link cannot put an active profile back to pending
            raise ProfileAlreadyActiveError()

        AuditService.log_profile_event(self.db, "SETUP_INVITATION_RESENT", profile, actor=actor)
        self.db.commit()
        self.db.refresh(profile)
        return profile, self._send_setup_email(profile.account, profile)

    def _decode_setup_token(self, token: str) -> dict[str, Any]:
        try:
            claims = self.tokens.verify(token)
        except InvalidTokenError as e:
            logger.info("Setup token rejected", extra={"rejection_reason": e.code})
            raise SetupTokenInvalidError()

        if claims.get("tokenType") != SETUP_TOKEN_TYPE:
            logger.info("Setup token rejected", extra={"rejection_reason": "WRONG_TOKEN_TYPE"})
            raise SetupTokenInvalidError()
        if not isinstance(claims.get("accountId"), int) or not isinstance(claims.get("profileId"), int):
            raise SetupTokenInvalidError()
        return claims

    def _load_pending(self, claims: dict[str, Any]) -> tuple[Account, Profile]:
        profile = (
            self.db.query(Profile)
            .filter(
                Profile.id == claims["profileId"],
                Profile.account_id == claims["accountId"],
            )
            .populate_existing()
            .first()
        )
        if not profile:
            raise ProfileNotFoundError()
        if profile.is_active:
            raise ProfileAlreadyActiveError()
        return profile.account, profile

    def validate_setup_token(self, token: str) -> SetupTokenResult:
        try:
            claims = self._decode_setup_token(token)
            account, profile = self._load_pending(claims)
        except (SetupTokenInvalidError, ProfileNotFoundError, ProfileAlreadyActiveError) as e:
            return SetupTokenResult(valid=False, message=e.message, code=e.code)

        return SetupTokenResult(
            valid=True,
            data={
                "accountId": account.id,
                "profileId": profile.id,
                "email": account.email,
                "profileType": profile.profile_type,
                "firstName": profile.first_name,
                "lastName": profile.last_name,
                "phone": profile.phone or account.phone,
                "preferredContactMethod": profile.preferred_contact_method,
            },
        )

    def complete_profile_setup(
        self,
        token: str,
        password: str,
        preferred_contact_method: ContactMethod,
        phone: Optional[str] = None,
        confirm_password: Optional[str] = None,
    ) -> Profile:
        """
        Activate a pending profile.

        State is re-read here rather than trusted from a prior validation;
        the activation itself only matches a still-inactive row, so a second
        submit fails with ProfileAlreadyActiveError instead of silently
        overwriting the password.
        """
        if confirm_password is not None and password != confirm_password:
            raise PasswordMismatchError()

        contact_method = ContactMethod(preferred_contact_method)
        claims = self._decode_setup_token(token)
        account, profile = self._load_pending(claims)

        phone = phone.strip() if phone else None
        if contact_method in PHONE_CONTACT_METHODS and not (phone or profile.phone):
            raise ValidationError(
                "Phone number is required when phone is the preferred contact method",
                code="PHONE_REQUIRED",
            )

        now = datetime.utcnow()
        values = {
            "is_active": True,
            "preferred_contact_method": contact_method.value,
            "updated_at": now,
        }
        if phone:
            values["phone"] = phone

        activated = self.db.execute(
            update(Profile)
            .where(
                Profile.id == profile.id,
                Profile.account_id == account.id,
                Profile.is_active.is_(False),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if activated.rowcount != 1:
            self.db.rollback()
            logger.warning(
                "Profile activation conflict",
                extra={"profile_id": profile.id, "rejection_reason": "ALREADY_ACTIVE"},
            )
            raise ProfileAlreadyActiveError()

        account.password_hash = AuthService.get_password_hash(password)
        if phone:
            account.phone = phone

        profile = self.db.get(Profile, profile.id, populate_existing=True)
        AuditService.log_profile_event(self.db, "PROFILE_ACTIVATED", profile, actor=str(account.id))
        self.db.commit()
        self.db.refresh(profile)

        logger.info("Profile activated", extra={"account_id": account.id, "profile_id": profile.id})
        return profile
