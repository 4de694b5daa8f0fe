"""
Health-ID exchange routes.

Endpoints:
    GET  /health-id/patients/{health_id}     — Find a patient by national health ID
    POST /health-id/verify-prescription      — Check a prescription before dispensing (pharmacy)
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.auth import get_current_user, require_role
from heallink.api.schemas import ApiModel
from heallink.db.database import get_db
from heallink.exceptions import PatientNotFound
from heallink.models.prescription import Prescription, PrescriptionStatus
from heallink.models.user import User, UserRole
from heallink.services import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health-id")


class VerifyPrescriptionRequest(ApiModel):
    prescription_ref: str
    patient_health_id: Optional[str] = None


async def _find_prescription(db: AsyncSession, reference: str) -> Optional[Prescription]:
    try:
        return await db.get(Prescription, uuid.UUID(reference))
    except ValueError:
        result = await db.execute(select(Prescription).where(Prescription.exchange_ref == reference))
        return result.scalar_one_or_none()


@router.get("/patients/{health_id}")
async def lookup_patient(
    health_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Local records first, then the exchange; an unreachable exchange yields a placeholder."""
    patient = await profile_service.get_patient_by_health_id(db, health_id)
    if patient is not None:
        return {
            "healthId": health_id,
            "patientId": str(patient.id),
            "name": patient.name,
            "dateOfBirth": patient.date_of_birth.isoformat() if patient.date_of_birth else None,
            "bloodGroup": patient.blood_group,
            "careContexts": [],
            "source": "local",
        }

    result = await request.app.state.health_id_client.lookup_patient(health_id)
    if result.not_found:
        raise PatientNotFound()
    if result.unreachable:
        logger.warning("Health-ID exchange lookup failed for %s: %s", health_id, result.error)
    return result.value.to_dict()


@router.post("/verify-prescription")
async def verify_prescription(
    payload: VerifyPrescriptionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PHARMACY)),
):
    prescription = await _find_prescription(db, payload.prescription_ref)
    if prescription is None:
        return {
            "isValid": False,
            "prescriptionId": payload.prescription_ref,
            "status": None,
            "patientHealthId": payload.patient_health_id,
            "issueDate": None,
            "verificationMethod": "local",
        }

    patient = await profile_service.get_patient(db, prescription.patient_id)
    registered_health_id = await profile_service.get_patient_health_id(db, patient)
    expired = prescription.valid_until is not None and prescription.valid_until < datetime.utcnow()
    matches_patient = payload.patient_health_id is None or payload.patient_health_id == registered_health_id

    return {
        "isValid": prescription.status == PrescriptionStatus.PENDING and not expired and matches_patient,
        "prescriptionId": str(prescription.id),
        "status": prescription.status.value,
        "patientHealthId": registered_health_id,
        "issueDate": prescription.created_at.isoformat() if prescription.created_at else None,
        "verificationMethod": "local",
    }
