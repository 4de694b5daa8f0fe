import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, ForeignKey, Index, Uuid

from heallink.db.database import Base


class AuditAction(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"


class AuditLog(Base):
    """Who touched which clinical record, written in the same transaction as the change."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_resource", "resource", "resource_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    action = Column(Enum(AuditAction), nullable=False)
    resource = Column(String, nullable=False)  # "prescription", "consent_request", "patient"
    resource_id = Column(String, nullable=True)
    details = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
