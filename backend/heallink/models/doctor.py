import uuid

from sqlalchemy import Column, String, ForeignKey, Uuid

from heallink.db.database import Base


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    specialization = Column(String, nullable=False, default="General Medicine")
    hospital = Column(String, nullable=False, default="General Hospital")
    license_number = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
