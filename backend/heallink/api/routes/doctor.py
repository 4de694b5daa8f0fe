"""
Doctor API routes.

Endpoints:
    GET   /doctor/profile                       — Own doctor profile
    GET   /doctor/appointments/today            — Today's appointments
    POST  /doctor/appointments                  — Schedule an appointment
    PATCH /doctor/appointments/{id}             — Update appointment status
    POST  /doctor/prescriptions                 — Issue a prescription
    GET   /doctor/prescriptions                 — Prescriptions issued by this doctor
    PATCH /doctor/prescriptions/{id}/cancel     — Cancel a pending prescription
    POST  /doctor/consent-request               — Ask a patient for data access
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import AliasChoices, Field
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.audit import log_audit
from heallink.api.middleware.auth import require_role
from heallink.api.schemas import (
    ApiModel,
    AppointmentResponse,
    ConsentRequestResponse,
    DoctorResponse,
    Medicine,
    PrescriptionResponse,
)
from heallink.db.database import get_db
from heallink.models.appointment import AppointmentStatus
from heallink.models.audit_log import AuditAction
from heallink.models.user import User, UserRole
from heallink.services import (
    appointment_service,
    consent_service,
    prescription_service,
    profile_service,
)

router = APIRouter(prefix="/doctor")


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PrescriptionCreateRequest(ApiModel):
    patient_id: UUID
    medicines: list[Medicine] = Field(
        default_factory=list,
        validation_alias=AliasChoices("medicines", "medications"),
    )
    diagnosis: Optional[str] = None
    instructions: Optional[str] = None
    valid_until: Optional[datetime] = None
    patient_health_id: Optional[str] = None


class ConsentCreateRequest(ApiModel):
    patient_id: UUID
    purpose: str = ""
    data_types: Optional[list[str]] = None
    patient_health_id: Optional[str] = None


class AppointmentCreateRequest(ApiModel):
    patient_id: UUID
    scheduled_at: datetime
    type: str
    notes: Optional[str] = None


class AppointmentUpdateRequest(ApiModel):
    status: AppointmentStatus


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/profile", response_model=DoctorResponse)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    return await profile_service.require_doctor(db, current_user)


@router.get("/appointments/today", response_model=list[AppointmentResponse])
async def todays_appointments(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    doctor = await profile_service.require_doctor(db, current_user)
    return await appointment_service.list_today_for_doctor(db, doctor.id)


@router.post("/appointments", response_model=AppointmentResponse)
async def create_appointment(
    payload: AppointmentCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    doctor = await profile_service.require_doctor(db, current_user)
    return await appointment_service.create_appointment(
        db,
        doctor=doctor,
        patient_id=payload.patient_id,
        scheduled_at=payload.scheduled_at,
        appointment_type=payload.type,
        notes=payload.notes,
    )


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    doctor = await profile_service.require_doctor(db, current_user)
    return await appointment_service.update_status(
        db, appointment_id=appointment_id, doctor=doctor, status=payload.status,
    )


@router.post("/prescriptions", response_model=PrescriptionResponse)
async def create_prescription(
    payload: PrescriptionCreateRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    """Issue a prescription; it is forwarded to the health-ID exchange after the response."""
    doctor = await profile_service.require_doctor(db, current_user)
    prescription = await prescription_service.create_prescription(
        db,
        doctor=doctor,
        patient_id=payload.patient_id,
        medicines=[m.model_dump(exclude_none=True) for m in payload.medicines],
        diagnosis=payload.diagnosis,
        instructions=payload.instructions,
        valid_until=payload.valid_until,
    )

    await log_audit(
        db,
        action=AuditAction.CREATE,
        resource="prescription",
        resource_id=prescription.id,
        user_id=current_user.id,
        details=f"Prescription for patient {payload.patient_id} with {len(payload.medicines)} medicines",
        request=request,
    )
    await db.commit()

    background_tasks.add_task(
        prescription_service.forward_prescription,
        request.app.state.db,
        request.app.state.health_id_client,
        prescription.id,
        payload.patient_health_id,
    )
    return prescription


@router.get("/prescriptions", response_model=list[PrescriptionResponse])
async def list_prescriptions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    doctor = await profile_service.require_doctor(db, current_user)
    return await prescription_service.list_for_doctor(db, doctor.id)


@router.patch("/prescriptions/{prescription_id}/cancel", response_model=PrescriptionResponse)
async def cancel_prescription(
    prescription_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    doctor = await profile_service.require_doctor(db, current_user)
    prescription = await prescription_service.cancel_prescription(
        db, prescription_id=prescription_id, doctor=doctor,
    )
    await log_audit(
        db,
        action=AuditAction.UPDATE,
        resource="prescription",
        resource_id=prescription_id,
        user_id=current_user.id,
        details="Prescription cancelled",
        request=request,
    )
    await db.commit()
    return prescription


@router.post("/consent-request", response_model=ConsentRequestResponse)
async def create_consent_request(
    payload: ConsentCreateRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    doctor = await profile_service.require_doctor(db, current_user)
    consent = await consent_service.request_consent(
        db,
        requester_account_id=current_user.id,
        patient_id=payload.patient_id,
        purpose=payload.purpose,
        data_types=payload.data_types,
        doctor=doctor,
    )
    await log_audit(
        db,
        action=AuditAction.CREATE,
        resource="consent_request",
        resource_id=consent.id,
        user_id=current_user.id,
        details=f"Consent requested for: {consent.purpose}",
        request=request,
    )
    await db.commit()

    background_tasks.add_task(
        consent_service.forward_consent_request,
        request.app.state.db,
        request.app.state.health_id_client,
        consent.id,
        payload.patient_health_id,
    )
    return consent
