import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Column, String, Enum, DateTime, ForeignKey, JSON, Uuid

from heallink.db.database import Base, next_insertion_seq


class PrescriptionStatus(str, enum.Enum):
    PENDING = "pending"
    DISPENSED = "dispensed"
    CANCELLED = "cancelled"


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    doctor_id = Column(Uuid, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    medicines = Column(JSON, nullable=False)  # [{"name", "dosage", "frequency", "duration"}]
    diagnosis = Column(String, nullable=False)
    instructions = Column(String, nullable=False)
    status = Column(Enum(PrescriptionStatus), nullable=False, default=PrescriptionStatus.PENDING, index=True)
    valid_until = Column(DateTime, nullable=True)

    # Dispensation
    pharmacy_id = Column(Uuid, ForeignKey("pharmacies.id"), nullable=True)
    dispensed_medicines = Column(JSON, nullable=True)
    dispensed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    exchange_ref = Column(String, nullable=True)  # reference id returned by the health-ID exchange
    created_at = Column(DateTime, default=datetime.utcnow)
    # Breaks created_at ties in insertion order
    insertion_seq = Column(BigInteger, nullable=False, default=next_insertion_seq, index=True)
