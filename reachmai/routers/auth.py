import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..exceptions import AccountNotFoundError, InvalidCredentialsError, RateLimitError
from ..schemas.auth import (
    AccountResponse,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SuccessResponse,
    SystemAdminResponse,
    TokenResponse,
)
from ..services.auth import AuthService
from ..services.gate import Identity
from ..services.passwords import PasswordResetService
from ..services.tokens import TokenService, issue_session_token
from .deps import (
    get_app_settings,
    get_password_reset_service,
    get_tokens,
    require_account,
    require_system_admin,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_app_settings),
):
    client_ip = get_client_ip(request)
    allowed, retry_after = request.app.state.login_rate_limiter.hit(client_ip)
    if not allowed:
        raise RateLimitError(
            "Too many login attempts. Please try again later.",
            code="RATE_LIMITED",
            details={"retry_after": retry_after},
        )

    account = AuthService.authenticate(db, credentials.email, credentials.password)
    if not account:
        logger.info(
            "Failed login attempt",
            extra={"ip": client_ip, "rejection_reason": "INVALID_CREDENTIALS"},
        )
        raise InvalidCredentialsError()

    token = issue_session_token(tokens, account, settings)
    logger.info(f"Successful login: account_id={account.id}")
    return TokenResponse(token=token, account=AccountResponse.from_account(account))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    registration: RegisterRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_app_settings),
):
    AuthService.ensure_self_service_profile_type(registration.profile.type)
    account, _ = AuthService.register(
        db,
        email=registration.email,
        password=registration.password,
        profile_type=registration.profile.type,
        first_name=registration.profile.first_name,
        last_name=registration.profile.last_name,
        phone=registration.phone,
    )
    token = issue_session_token(tokens, account, settings)
    return TokenResponse(token=token, account=AccountResponse.from_account(account))


@router.get("/me", response_model=AccountResponse)
def get_me(
    identity: Identity = Depends(require_account),
    db: Session = Depends(get_db),
):
    account = AuthService.get_account_by_id(db, identity.account_id)
    if not account:
        raise AccountNotFoundError(identity.account_id)
    return AccountResponse.from_account(account)


@router.post("/system-admin/verify", response_model=SystemAdminResponse)
def verify_system_admin(identity: Identity = Depends(require_system_admin)):
    return SystemAdminResponse()


@router.post("/reset-password", response_model=SuccessResponse)
def reset_password(
    request_data: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    """Set a new password from an emailed reset link. PUBLIC endpoint."""
    service.reset_password(request_data.token, request_data.password, request_data.confirm_password)
    return SuccessResponse(success=True, message="Password updated. You can now log in.")
