import json
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from ..models.audit import AuditEvent

SYSTEM_ADMIN_ACTOR = "system_admin"


class AuditService:
    @staticmethod
    def log_event(
        db: Session,
        action: str,
        actor: Optional[str] = None,
        subject_type: Optional[str] = None,
        subject_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        """Stage an audit row in the caller's transaction."""
        event = AuditEvent(
            action=action,
            actor=actor,
            subject_type=subject_type,
            subject_id=subject_id,
            metadata_json=json.dumps(metadata) if metadata else None,
        )
        db.add(event)
        return event

    @staticmethod
    def log_invitation_event(
        db: Session,
        action: str,
        invitation,
        actor: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        data = {"email": invitation.email, "role": invitation.role, "status": invitation.status}
        if metadata:
            data.update(metadata)
        return AuditService.log_event(
            db,
            action=action,
            actor=actor,
            subject_type="staff_invitation",
            subject_id=invitation.id,
            metadata=data,
        )

    @staticmethod
    def log_profile_event(
        db: Session,
        action: str,
        profile,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditService.log_event(
            db,
            action=action,
            actor=actor,
            subject_type="profile",
            subject_id=profile.id,
            metadata={"account_id": profile.account_id, "profile_type": profile.profile_type},
        )
