import uuid

from sqlalchemy import Column, String, ForeignKey, Uuid

from heallink.db.database import Base


class Pharmacy(Base):
    __tablename__ = "pharmacies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    license_number = Column(String, nullable=False)
    address = Column(String, nullable=False, default="Unknown Address")
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
