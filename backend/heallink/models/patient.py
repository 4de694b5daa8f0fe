import uuid

from sqlalchemy import Column, String, Date, ForeignKey, Uuid

from heallink.db.database import Base


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)

    # Demographics
    date_of_birth = Column(Date, nullable=True)
    blood_group = Column(String, nullable=True)

    # Contact
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)
    insurance_info = Column(String, nullable=True)
