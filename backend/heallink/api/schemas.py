"""
Response and shared request schemas.

The JSON surface is camelCase; request bodies accept either camelCase or
snake_case keys.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from heallink.models.appointment import AppointmentStatus, AppointmentType
from heallink.models.consent_request import ConsentStatus
from heallink.models.health_record import HealthRecordType
from heallink.models.prescription import PrescriptionStatus
from heallink.models.user import UserRole


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(ApiModel):
    message: str


class Medicine(ApiModel):
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    frequency: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1)
    code: Optional[str] = None


class AccountResponse(ApiModel):
    id: UUID
    username: str
    role: UserRole
    health_id: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None


class DoctorResponse(ApiModel):
    id: UUID
    user_id: UUID
    name: str
    specialization: str
    hospital: str
    license_number: str
    phone: Optional[str] = None
    email: Optional[str] = None


class PatientResponse(ApiModel):
    id: UUID
    user_id: UUID
    name: str
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    insurance_info: Optional[str] = None


class PharmacyResponse(ApiModel):
    id: UUID
    user_id: UUID
    name: str
    license_number: str
    address: str
    phone: Optional[str] = None
    email: Optional[str] = None


class PrescriptionResponse(ApiModel):
    id: UUID
    doctor_id: UUID
    patient_id: UUID
    medicines: list[dict[str, Any]]
    diagnosis: str
    instructions: str
    status: PrescriptionStatus
    valid_until: Optional[datetime] = None
    pharmacy_id: Optional[UUID] = None
    dispensed_medicines: Optional[list[dict[str, Any]]] = None
    dispensed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    exchange_ref: Optional[str] = None
    created_at: Optional[datetime] = None


class ConsentRequestResponse(ApiModel):
    id: UUID
    requester_account_id: UUID
    doctor_id: Optional[UUID] = None
    patient_id: UUID
    purpose: str
    data_types: list[str] = []
    status: ConsentStatus
    exchange_consent_id: Optional[str] = None
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


class AppointmentResponse(ApiModel):
    id: UUID
    doctor_id: UUID
    patient_id: UUID
    scheduled_at: datetime
    type: AppointmentType
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class HealthRecordResponse(ApiModel):
    id: UUID
    patient_id: UUID
    type: HealthRecordType
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    record_date: datetime
    created_at: Optional[datetime] = None
