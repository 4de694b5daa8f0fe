import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Column, String, Enum, DateTime, ForeignKey, JSON, Uuid

from heallink.db.database import Base, next_insertion_seq


class ConsentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


DEFAULT_DATA_TYPES = ["Prescription", "DiagnosticReport"]


class ConsentRequest(Base):
    __tablename__ = "consent_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_account_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Uuid, ForeignKey("doctors.id"), nullable=True)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    purpose = Column(String, nullable=False)
    data_types = Column(JSON, default=list)  # ["Prescription", "DiagnosticReport"]
    status = Column(Enum(ConsentStatus), nullable=False, default=ConsentStatus.PENDING)
    exchange_consent_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    insertion_seq = Column(BigInteger, nullable=False, default=next_insertion_seq, index=True)
    responded_at = Column(DateTime, nullable=True)
