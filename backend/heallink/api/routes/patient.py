"""
Patient API routes.

Endpoints:
    GET   /patient/profile                 — Own patient profile
    GET   /patient/prescriptions           — Prescriptions addressed to this patient
    GET   /patient/consent-requests        — Consent requests (optional ?status= filter)
    PATCH /patient/consent-requests/{id}   — Approve or reject a consent request
    GET   /patient/health-records          — Health records
    GET   /patient/appointments            — Appointments
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.audit import log_audit
from heallink.api.middleware.auth import require_role
from heallink.api.schemas import (
    ApiModel,
    AppointmentResponse,
    ConsentRequestResponse,
    HealthRecordResponse,
    MessageResponse,
    PatientResponse,
    PrescriptionResponse,
)
from heallink.db.database import get_db
from heallink.exceptions import ValidationError
from heallink.models.audit_log import AuditAction
from heallink.models.consent_request import ConsentStatus
from heallink.models.user import User, UserRole
from heallink.services import (
    appointment_service,
    consent_service,
    health_record_service,
    prescription_service,
    profile_service,
)

router = APIRouter(prefix="/patient")


class ConsentResponseRequest(ApiModel):
    status: str = ""


@router.get("/profile", response_model=PatientResponse)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    return await profile_service.require_patient(db, current_user)


@router.get("/prescriptions", response_model=list[PrescriptionResponse])
async def list_prescriptions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    patient = await profile_service.require_patient(db, current_user)
    return await prescription_service.list_for_patient(db, patient.id)


@router.get("/consent-requests", response_model=list[ConsentRequestResponse])
async def list_consent_requests(
    status: Optional[str] = Query(None, description="Filter by pending, approved or rejected"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    patient = await profile_service.require_patient(db, current_user)
    status_filter = None
    if status:
        try:
            status_filter = ConsentStatus(status)
        except ValueError:
            raise ValidationError("Invalid status")
    return await consent_service.list_for_patient(db, patient.id, status_filter)


@router.patch("/consent-requests/{consent_id}", response_model=MessageResponse)
async def respond_to_consent_request(
    consent_id: UUID,
    payload: ConsentResponseRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    patient = await profile_service.require_patient(db, current_user)
    consent = await consent_service.respond(
        db, consent_id=consent_id, patient=patient, decision=payload.status,
    )
    await log_audit(
        db,
        action=AuditAction.UPDATE,
        resource="consent_request",
        resource_id=consent_id,
        user_id=current_user.id,
        details=f"Consent {consent.status.value}",
        request=request,
    )
    await db.commit()
    return MessageResponse(message="Consent status updated")


@router.get("/health-records", response_model=list[HealthRecordResponse])
async def list_health_records(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    patient = await profile_service.require_patient(db, current_user)
    return await health_record_service.list_for_patient(db, patient.id)


@router.get("/appointments", response_model=list[AppointmentResponse])
async def list_appointments(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PATIENT)),
):
    patient = await profile_service.require_patient(db, current_user)
    return await appointment_service.list_for_patient(db, patient.id)
