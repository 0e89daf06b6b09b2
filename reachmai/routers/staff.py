"""Staff invitation endpoints.

Management endpoints accept a bearer token from an admin/manager profile
or the system-admin credentials. Accepting an invitation is PUBLIC: the
invitation token itself is the credential.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..config import Settings
from ..models.staff_invitation import InvitationStatus
from ..schemas.auth import AccountResponse
from ..schemas.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    CancelInvitationResult,
    InvitationResponse,
    InviteRequest,
    InviteResult,
)
from ..schemas.profile import ProfileResponse
from ..services.gate import Identity
from ..services.invitations import InvitationService
from .deps import get_app_settings, get_invitation_service, require_staff_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["staff"])


def build_invitation_url(settings: Settings, token: str) -> str:
    return f"{settings.frontend_base_url}/accept-invitation?token={token}"


@router.post("/invite", response_model=InviteResult, status_code=status.HTTP_201_CREATED)
def invite_staff(
    invite: InviteRequest,
    identity: Identity = Depends(require_staff_manager),
    service: InvitationService = Depends(get_invitation_service),
    settings: Settings = Depends(get_app_settings),
):
    invitation, email_sent = service.create_invitation(
        email=invite.email,
        first_name=invite.first_name,
        last_name=invite.last_name,
        role=invite.role,
        invited_by=identity.profile_id,
        actor=identity.actor,
    )
    return InviteResult(
        invitation=InvitationResponse.model_validate(invitation),
        email_sent=email_sent,
        invitation_url=build_invitation_url(settings, invitation.token),
    )


@router.get("/invitations", response_model=List[InvitationResponse])
def list_invitations(
    status_filter: Optional[InvitationStatus] = Query(None, alias="status"),
    identity: Identity = Depends(require_staff_manager),
    service: InvitationService = Depends(get_invitation_service),
):
    """
    List invitations, newest first.

    Status is reported as stored; a pending invitation past its expiry
    keeps status "pending" with isExpired set until someone acts on it.
    """
    return service.list_invitations(status_filter)


@router.delete("/invitations/{invitation_id}", response_model=CancelInvitationResult)
def cancel_invitation(
    invitation_id: int,
    identity: Identity = Depends(require_staff_manager),
    service: InvitationService = Depends(get_invitation_service),
):
    invitation = service.cancel_invitation(invitation_id, actor=identity.actor)
    return CancelInvitationResult(
        invitation=InvitationResponse.model_validate(invitation),
        message="Invitation cancelled",
    )


@router.post("/invitations/{invitation_id}/resend", response_model=InviteResult)
def resend_invitation(
    invitation_id: int,
    identity: Identity = Depends(require_staff_manager),
    service: InvitationService = Depends(get_invitation_service),
    settings: Settings = Depends(get_app_settings),
):
    invitation, email_sent = service.resend_invitation(invitation_id, actor=identity.actor)
    return InviteResult(
        invitation=InvitationResponse.model_validate(invitation),
        email_sent=email_sent,
        invitation_url=build_invitation_url(settings, invitation.token),
    )


@router.post(
    "/accept-invitation",
    response_model=AcceptInvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
def accept_invitation(
    request_data: AcceptInvitationRequest,
    service: InvitationService = Depends(get_invitation_service),
):
    account, profile, token = service.accept_invitation(
        request_data.token,
        request_data.password,
        request_data.confirm_password,
    )
    return AcceptInvitationResponse(
        token=token,
        account=AccountResponse.from_account(account),
        profile=ProfileResponse.model_validate(profile),
    )
