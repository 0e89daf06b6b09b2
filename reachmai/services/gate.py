"""
Request authentication.

Three modes share one ``AuthGate``:

* bearer: ``Authorization: Bearer <session token>``
* system admin: static username/password from configuration
* flexible: bearer first, then system-admin credentials

Every mode produces an ``Identity``; role checks happen once, in
``AuthGate.authorize``, instead of in each route.
"""

import hmac
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    ReachError,
)
from ..models.profile import Profile, ProfileType
from .audit import SYSTEM_ADMIN_ACTOR
from .tokens import SESSION_TOKEN_TYPE, TokenService

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    SYSTEM_ADMIN = "system_admin"
    AUTHENTICATED_ACCOUNT = "authenticated_account"


@dataclass(frozen=True)
class Identity:
    capability: Capability
    account_id: Optional[int] = None
    email: Optional[str] = None
    # Set by authorize() to the profile that satisfied the role check
    profile_id: Optional[int] = None

    @property
    def is_system_admin(self) -> bool:
        return self.capability == Capability.SYSTEM_ADMIN

    @property
    def actor(self) -> str:
        """Audit actor label."""
        if self.is_system_admin:
            return SYSTEM_ADMIN_ACTOR
        return str(self.account_id)


SYSTEM_ADMIN_IDENTITY = Identity(capability=Capability.SYSTEM_ADMIN)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class AuthGate:
    def __init__(self, tokens: TokenService, sys_admin_username: str, sys_admin_password: str):
        self.tokens = tokens
        self._sys_admin_username = sys_admin_username
        self._sys_admin_password = sys_admin_password

    @classmethod
    def from_settings(cls, tokens: TokenService, settings: Optional[Settings] = None) -> "AuthGate":
        settings = settings or get_settings()
        return cls(tokens, settings.sys_admin_username, settings.sys_admin_password)

    def authenticate_bearer(self, authorization: Optional[str]) -> Identity:
        """
        Raises:
            MissingTokenError: no bearer token in the header (401)
            InvalidTokenError: bad, expired or non-session token (403)
        """
        token = extract_bearer_token(authorization)
        if not token:
            raise MissingTokenError()

        try:
            claims = self.tokens.verify(token)
        except InvalidTokenError as e:
            logger.info("Bearer token rejected", extra={"rejection_reason": e.code})
            raise InvalidTokenError()

        account_id = claims.get("accountId")
        if claims.get("tokenType") != SESSION_TOKEN_TYPE or not isinstance(account_id, int):
            logger.info("Bearer token rejected", extra={"rejection_reason": "WRONG_TOKEN_TYPE"})
            raise InvalidTokenError()

        return Identity(
            capability=Capability.AUTHENTICATED_ACCOUNT,
            account_id=account_id,
            email=claims.get("email"),
        )

    def authenticate_system_admin(self, username: Optional[str], password: Optional[str]) -> Identity:
        if not username or not password:
            raise InvalidCredentialsError()

        # Compare both fields regardless of the first result
        username_ok = hmac.compare_digest(username.encode("utf-8"), self._sys_admin_username.encode("utf-8"))
        password_ok = hmac.compare_digest(password.encode("utf-8"), self._sys_admin_password.encode("utf-8"))
        if not (username_ok and password_ok):
            logger.warning("System admin authentication failed", extra={"rejection_reason": "BAD_SYS_ADMIN_CREDENTIALS"})
            raise InvalidCredentialsError()

        return SYSTEM_ADMIN_IDENTITY

    def authenticate_flexible(
        self,
        authorization: Optional[str],
        username: Optional[str],
        password: Optional[str],
    ) -> Identity:
        """Bearer token first, then system-admin credentials.

        Failure is a single generic 401 whichever sub-mode failed.
        """
        try:
            return self.authenticate_bearer(authorization)
        except ReachError:
            pass

        try:
            return self.authenticate_system_admin(username, password)
        except ReachError:
            pass

        raise AuthenticationError("Authentication required", code="AUTHENTICATION_REQUIRED")

    def authorize(
        self,
        db: Session,
        identity: Identity,
        roles: Optional[Iterable[ProfileType]] = None,
    ) -> Identity:
        """Check the role predicate for an authenticated identity.

        System admins always pass. Accounts pass when they hold an active
        profile of one of ``roles``; with no roles any account passes.
        """
        if identity.is_system_admin or roles is None:
            return identity

        role_values = [ProfileType(r).value for r in roles]
        profile = (
            db.query(Profile)
            .filter(
                Profile.account_id == identity.account_id,
                Profile.is_active.is_(True),
                Profile.profile_type.in_(role_values),
            )
            .order_by(Profile.id.asc())
            .first()
        )
        if not profile:
            logger.info(
                "Insufficient permissions",
                extra={"account_id": identity.account_id, "required_roles": role_values},
            )
            raise InsufficientPermissionsError()

        return replace(identity, profile_id=profile.id)
