"""FastAPI dependencies: collaborators from app.state and the auth gate."""
import json
import logging
from typing import Iterable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..models.profile import ADMIN_PROFILE_TYPES, ProfileType
from ..services.activation import ProfileActivationService
from ..services.email import Notifier
from ..services.gate import AuthGate, Identity
from ..services.invitations import InvitationService
from ..services.passwords import PasswordResetService
from ..services.tokens import TokenService

logger = logging.getLogger(__name__)

SYS_ADMIN_USERNAME_KEYS = ("sysAdminUsername", "sys_admin_username")
SYS_ADMIN_PASSWORD_KEYS = ("sysAdminPassword", "sys_admin_password")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_gate(request: Request) -> AuthGate:
    return request.app.state.gate


def get_invitation_service(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
) -> InvitationService:
    return InvitationService(db, tokens, notifier, settings)


def get_activation_service(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
) -> ProfileActivationService:
    return ProfileActivationService(db, tokens, notifier, settings)


def get_password_reset_service(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
) -> PasswordResetService:
    return PasswordResetService(db, tokens, notifier, settings)


def _first(source: dict, keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value:
            return value
    return None


async def get_system_admin_credentials(request: Request) -> tuple[Optional[str], Optional[str]]:
    """Read sysAdminUsername/sysAdminPassword from the JSON body or query."""
    body: dict = {}
    raw = await request.body()
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            body = parsed

    query = dict(request.query_params)
    username = _first(body, SYS_ADMIN_USERNAME_KEYS) or _first(query, SYS_ADMIN_USERNAME_KEYS)
    password = _first(body, SYS_ADMIN_PASSWORD_KEYS) or _first(query, SYS_ADMIN_PASSWORD_KEYS)
    return username, password


def require_account(
    authorization: Optional[str] = Header(None),
    gate: AuthGate = Depends(get_gate),
) -> Identity:
    return gate.authenticate_bearer(authorization)


def require_system_admin(
    credentials: tuple = Depends(get_system_admin_credentials),
    gate: AuthGate = Depends(get_gate),
) -> Identity:
    username, password = credentials
    return gate.authenticate_system_admin(username, password)


def require_flexible(
    authorization: Optional[str] = Header(None),
    credentials: tuple = Depends(get_system_admin_credentials),
    gate: AuthGate = Depends(get_gate),
) -> Identity:
    username, password = credentials
    return gate.authenticate_flexible(authorization, username, password)


def require_capability(roles: Optional[Iterable[ProfileType]] = None):
    """Flexible authentication plus an optional profile-role predicate."""
    role_set = frozenset(roles) if roles is not None else None

    def dependency(
        identity: Identity = Depends(require_flexible),
        db: Session = Depends(get_db),
        gate: AuthGate = Depends(get_gate),
    ) -> Identity:
        return gate.authorize(db, identity, role_set)

    return dependency


require_staff_manager = require_capability(ADMIN_PROFILE_TYPES)
