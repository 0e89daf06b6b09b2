"""Profile setup endpoints. PUBLIC: the setup token is the credential.

Failures answer 400 with {valid|success: false, message} so the setup page
can show the message as-is.
"""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..exceptions import ReachError
from ..schemas.auth import SuccessResponse
from ..schemas.setup import CompleteProfileRequest, SetupValidationResponse
from ..services.activation import ProfileActivationService
from .deps import get_activation_service

router = APIRouter(prefix="/setup", tags=["setup"])


@router.get("/validate-token", response_model=SetupValidationResponse)
def validate_token(
    token: str = Query(""),
    service: ProfileActivationService = Depends(get_activation_service),
):
    result = service.validate_setup_token(token)
    if not result.valid:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "message": result.message, "code": result.code},
        )
    return SetupValidationResponse(valid=True, data=result.data)


@router.post("/complete-profile", response_model=SuccessResponse)
def complete_profile(
    request_data: CompleteProfileRequest,
    service: ProfileActivationService = Depends(get_activation_service),
):
    try:
        service.complete_profile_setup(
            token=request_data.token,
            password=request_data.password,
            preferred_contact_method=request_data.preferred_contact_method,
            phone=request_data.phone,
            confirm_password=request_data.confirm_password,
        )
    except ReachError as e:
        if e.status_code >= 500:
            raise
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": e.message, "code": e.code},
        )
    return SuccessResponse(success=True, message="Profile setup complete. You can now log in.")
