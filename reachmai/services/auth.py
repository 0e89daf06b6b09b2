import logging
import secrets
from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from ..exceptions import DuplicateAccountError, ProfileTypeNotAllowedError
from ..models.account import Account
from ..models.profile import SELF_SERVICE_PROFILE_TYPES, ContactMethod, Profile, ProfileType

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of the password
BCRYPT_MAX_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES],
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            # Malformed stored hash
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            bcrypt.gensalt(),
        ).decode("utf-8")

    @staticmethod
    def get_unusable_password_hash() -> str:
        """Hash of a random secret nobody knows, for accounts awaiting setup."""
        return AuthService.get_password_hash(secrets.token_urlsafe(32))

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Optional[Account]:
        account = AuthService.get_account_by_email(db, email)
        if not account:
            return None
        if not AuthService.verify_password(password, account.password_hash):
            return None
        return account

    @staticmethod
    def get_account_by_email(db: Session, email: str) -> Optional[Account]:
        return db.query(Account).filter(Account.email == normalize_email(email)).first()

    @staticmethod
    def get_account_by_id(db: Session, account_id: int) -> Optional[Account]:
        return db.query(Account).filter(Account.id == account_id).first()

    @staticmethod
    def ensure_email_available(db: Session, email: str, message: Optional[str] = None) -> None:
        if AuthService.get_account_by_email(db, email):
            if message:
                raise DuplicateAccountError(normalize_email(email), message)
            raise DuplicateAccountError(normalize_email(email))

    @staticmethod
    def ensure_self_service_profile_type(profile_type: ProfileType) -> None:
        profile_type = ProfileType(profile_type)
        if profile_type not in SELF_SERVICE_PROFILE_TYPES:
            logger.warning("Self-assigned staff profile rejected", extra={"profile_type": profile_type.value})
            raise ProfileTypeNotAllowedError(profile_type.value)

    @staticmethod
    def build_account(
        email: str,
        password_hash: str,
        phone: Optional[str] = None,
        email_verified: bool = False,
    ) -> Account:
        return Account(
            email=normalize_email(email),
            password_hash=password_hash,
            phone=phone,
            email_verified=email_verified,
        )

    @staticmethod
    def build_profile(
        account: Account,
        profile_type: ProfileType,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        preferred_name: Optional[str] = None,
        preferred_contact_method: ContactMethod = ContactMethod.EMAIL,
        is_active: bool = True,
    ) -> Profile:
        profile = Profile(
            profile_type=ProfileType(profile_type).value,
            first_name=first_name,
            last_name=last_name,
            preferred_name=preferred_name,
            email=account.email,
            phone=phone,
            preferred_contact_method=ContactMethod(preferred_contact_method).value,
            is_active=is_active,
        )
        account.profiles.append(profile)
        return profile

    @staticmethod
    def register(
        db: Session,
        email: str,
        password: str,
        profile_type: ProfileType,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
    ) -> tuple[Account, Profile]:
        """Self-service registration: a new account with one active profile."""
        AuthService.ensure_email_available(db, email, "Account already exists")

        account = AuthService.build_account(email, AuthService.get_password_hash(password), phone=phone)
        profile = AuthService.build_profile(account, profile_type, first_name, last_name, phone=phone)
        db.add(account)
        db.commit()
        db.refresh(account)
        logger.info("Account registered", extra={"account_id": account.id, "profile_type": profile.profile_type})
        return account, profile

    @staticmethod
    def add_profile(
        db: Session,
        account: Account,
        profile_type: ProfileType,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        preferred_name: Optional[str] = None,
        preferred_contact_method: ContactMethod = ContactMethod.EMAIL,
    ) -> Profile:
        profile = AuthService.build_profile(
            account,
            profile_type,
            first_name,
            last_name,
            phone=phone,
            preferred_name=preferred_name,
            preferred_contact_method=preferred_contact_method,
        )
        db.commit()
        db.refresh(profile)
        return profile
