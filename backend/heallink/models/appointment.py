import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, ForeignKey, Uuid

from heallink.db.database import Base


class AppointmentType(str, enum.Enum):
    CHECKUP = "checkup"
    FOLLOW_UP = "follow-up"
    CONSULTATION = "consultation"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    doctor_id = Column(Uuid, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    scheduled_at = Column(DateTime, nullable=False)
    type = Column(Enum(AppointmentType), nullable=False)
    status = Column(Enum(AppointmentStatus), nullable=False, default=AppointmentStatus.SCHEDULED)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
