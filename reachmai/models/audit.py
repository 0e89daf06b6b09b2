from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text

from ..database import Base


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    # "system_admin" for static-credential callers, otherwise the account id
    actor = Column(String(50), nullable=True)
    subject_type = Column(String(50), nullable=True)
    subject_id = Column(Integer, nullable=True)
    metadata_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
