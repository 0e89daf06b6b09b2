import hmac
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..exceptions import (
    AccountNotFoundError,
    InvalidTokenError,
    PasswordMismatchError,
    ResetTokenInvalidError,
)
from ..models.account import Account
from .audit import AuditService
from .auth import AuthService
from .email import PASSWORD_RESET_TEMPLATE, Notifier
from .tokens import (
    PASSWORD_RESET_TOKEN_TYPE,
    TokenService,
    issue_password_reset_token,
    password_fingerprint,
)

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Admin-initiated password reset by emailed link.

    Reset tokens embed a fingerprint of the password hash they were issued
    against, so a link stops working as soon as the password changes.
    """

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

    def request_reset(self, account_id: int, actor: Optional[str] = None) -> tuple[Account, bool]:
        account = AuthService.get_account_by_id(self.db, account_id)
        if not account:
            raise AccountNotFoundError(account_id)

        token = issue_password_reset_token(self.tokens, account, self.settings)
        first_name = account.profiles[0].first_name if account.profiles else ""

        AuditService.log_event(
            self.db,
            action="PASSWORD_RESET_REQUESTED",
            actor=actor,
            subject_type="account",
            subject_id=account.id,
        )
        self.db.commit()

        sent = self.notifier.send(
            account.email,
            PASSWORD_RESET_TEMPLATE,
            {
                "first_name": first_name,
                "token": token,
                "expiry_minutes": self.settings.password_reset_expire_minutes,
            },
        )
        if not sent:
            logger.warning("Password reset email not delivered", extra={"account_id": account.id})
        return account, sent

    def reset_password(self, token: str, password: str, confirm_password: str) -> Account:
        if password != confirm_password:
            raise PasswordMismatchError()

        try:
            claims = self.tokens.verify(token)
        except InvalidTokenError as e:
            logger.info("Reset token rejected", extra={"rejection_reason": e.code})
            raise ResetTokenInvalidError()

        account_id = claims.get("accountId")
        if claims.get("tokenType") != PASSWORD_RESET_TOKEN_TYPE or not isinstance(account_id, int):
            raise ResetTokenInvalidError()

        account = self.db.get(Account, account_id, populate_existing=True)
        if not account:
            raise ResetTokenInvalidError()
        if not hmac.compare_digest(str(claims.get("pwd", "")), password_fingerprint(account.password_hash)):
            logger.info("Reset token rejected", extra={"rejection_reason": "ALREADY_USED"})
            raise ResetTokenInvalidError()

        account.password_hash = AuthService.get_password_hash(password)
        AuditService.log_event(
            self.db,
            action="PASSWORD_RESET_COMPLETED",
            actor=str(account.id),
            subject_type="account",
            subject_id=account.id,
        )
        self.db.commit()
        self.db.refresh(account)
        logger.info("Password reset", extra={"account_id": account.id})
        return account
