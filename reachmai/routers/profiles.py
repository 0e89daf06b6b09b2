from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import AccountNotFoundError
from ..models.profile import Profile
from ..schemas.profile import ProfileCreate, ProfileResponse
from ..services.auth import AuthService
from ..services.gate import Identity
from .deps import require_account

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("", response_model=List[ProfileResponse])
def list_profiles(
    identity: Identity = Depends(require_account),
    db: Session = Depends(get_db),
):
    return db.query(Profile).filter(
        Profile.account_id == identity.account_id,
        Profile.is_active.is_(True),
    ).order_by(Profile.id.asc()).all()


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(
    profile_data: ProfileCreate,
    identity: Identity = Depends(require_account),
    db: Session = Depends(get_db),
):
    AuthService.ensure_self_service_profile_type(profile_data.type)
    account = AuthService.get_account_by_id(db, identity.account_id)
    if not account:
        raise AccountNotFoundError(identity.account_id)
    return AuthService.add_profile(
        db,
        account,
        profile_type=profile_data.type,
        first_name=profile_data.first_name,
        last_name=profile_data.last_name,
        phone=profile_data.phone,
        preferred_name=profile_data.preferred_name,
        preferred_contact_method=profile_data.preferred_contact_method,
    )
