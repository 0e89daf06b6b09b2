from datetime import datetime

from fastapi import APIRouter, Depends

from ..config import Settings
from .deps import get_app_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health(settings: Settings = Depends(get_app_settings)):
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
    }
