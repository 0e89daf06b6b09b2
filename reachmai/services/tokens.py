import hashlib
import logging
import time
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError, jwt

from ..config import Settings, get_settings
from ..exceptions import ExpiredTokenError, InvalidTokenError

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "session"
SETUP_TOKEN_TYPE = "user_setup"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"


class TokenService:
    """Issues and verifies signed, time-limited tokens.

    Session, setup and password-reset tokens are all HS256 JWTs signed
    with the same secret; they differ only by claims and lifetime.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TokenService":
        settings = settings or get_settings()
        return cls(settings.jwt_secret_key, settings.jwt_algorithm)

    def issue(self, claims: dict, ttl: timedelta) -> str:
        to_encode = dict(claims)
        now = datetime.utcnow()
        to_encode.update({"iat": now, "exp": now + ttl})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """Return the claims of a valid token.

        Raises:
            InvalidTokenError: malformed token or signature mismatch
            ExpiredTokenError: token is at or past its expiry
        """
        if not token:
            raise InvalidTokenError()
        try:
            # Expiry is checked below so that a zero ttl is already expired
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise InvalidTokenError()

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidTokenError()
        if exp <= time.time():
            raise ExpiredTokenError()
        return payload


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a password hash; changes whenever the password does."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def issue_session_token(tokens: TokenService, account, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return tokens.issue(
        {"accountId": account.id, "email": account.email, "tokenType": SESSION_TOKEN_TYPE},
        timedelta(hours=settings.session_token_expire_hours),
    )


def issue_setup_token(tokens: TokenService, account, profile, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return tokens.issue(
        {
            "accountId": account.id,
            "profileId": profile.id,
            "email": account.email,
            "tokenType": SETUP_TOKEN_TYPE,
            "profileType": profile.profile_type,
        },
        timedelta(days=settings.setup_token_expire_days),
    )


def issue_password_reset_token(tokens: TokenService, account, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return tokens.issue(
        {
            "accountId": account.id,
            "email": account.email,
            "tokenType": PASSWORD_RESET_TOKEN_TYPE,
            "pwd": password_fingerprint(account.password_hash),
        },
        timedelta(minutes=settings.password_reset_expire_minutes),
    )
