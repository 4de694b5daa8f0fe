import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Enum, DateTime, Uuid

from heallink.db.database import Base


class UserRole(str, enum.Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"
    PHARMACY = "pharmacy"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False)
    health_id = Column(String, unique=True, nullable=True)  # national health-ID exchange identifier
    email = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
