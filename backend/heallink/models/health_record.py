import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, ForeignKey, Uuid

from heallink.db.database import Base


class HealthRecordType(str, enum.Enum):
    LAB = "lab"
    IMAGING = "imaging"
    VISIT = "visit"
    PRESCRIPTION = "prescription"


class HealthRecord(Base):
    __tablename__ = "health_records"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("patients.id"), nullable=False, index=True)
    type = Column(Enum(HealthRecordType), nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    file_url = Column(String, nullable=True)
    record_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
