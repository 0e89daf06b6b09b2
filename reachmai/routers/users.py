from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.account import Account
from ..schemas.auth import AccountResponse
from ..schemas.profile import ProfileResponse
from ..schemas.user import EmailSentResponse, UserCreate, UserCreateResponse
from ..services.activation import ProfileActivationService
from ..services.gate import Identity
from ..services.passwords import PasswordResetService
from .deps import get_activation_service, get_password_reset_service, require_staff_manager

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[AccountResponse])
def list_users(
    identity: Identity = Depends(require_staff_manager),
    db: Session = Depends(get_db),
):
    accounts = db.query(Account).order_by(Account.created_at.desc(), Account.id.desc()).all()
    return [AccountResponse.from_account(a, active_only=False) for a in accounts]


@router.post("", response_model=UserCreateResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    identity: Identity = Depends(require_staff_manager),
    service: ProfileActivationService = Depends(get_activation_service),
):
    account, profile, email_sent = service.create_user(
        email=user_data.email,
        first_name=user_data.profile.first_name,
        last_name=user_data.profile.last_name,
        profile_type=user_data.profile.type,
        phone=user_data.phone,
        preferred_contact_method=user_data.profile.preferred_contact_method,
        send_invitation=user_data.send_invitation,
        actor=identity.actor,
    )
    return UserCreateResponse(
        account=AccountResponse.from_account(account, active_only=False),
        profile=ProfileResponse.model_validate(profile),
        email_sent=email_sent,
    )


@router.post("/profiles/{profile_id}/resend-setup", response_model=EmailSentResponse)
def resend_setup(
    profile_id: int,
    identity: Identity = Depends(require_staff_manager),
    service: ProfileActivationService = Depends(get_activation_service),
):
    _, email_sent = service.resend_setup(profile_id, actor=identity.actor)
    return EmailSentResponse(email_sent=email_sent, message="Setup link issued")


@router.post("/{account_id}/reset-password", response_model=EmailSentResponse)
def request_password_reset(
    account_id: int,
    identity: Identity = Depends(require_staff_manager),
    service: PasswordResetService = Depends(get_password_reset_service),
):
    _, email_sent = service.request_reset(account_id, actor=identity.actor)
    return EmailSentResponse(email_sent=email_sent, message="Password reset link issued")
