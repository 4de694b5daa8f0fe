"""
Chat assistant routes.

Endpoints:
    POST /chatbot/query                          — Canned reply for a message (any role)
    GET  /chatbot/patient-summary/{patient_id}   — Patient overview for doctors
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.audit import log_audit
from heallink.api.middleware.auth import get_current_user, require_role
from heallink.api.schemas import ApiModel, HealthRecordResponse, PatientResponse, PrescriptionResponse
from heallink.db.database import get_db
from heallink.models.audit_log import AuditAction
from heallink.models.user import User, UserRole
from heallink.services import chatbot_service, health_record_service, prescription_service, profile_service

router = APIRouter(prefix="/chatbot")

PATIENT_INSIGHT = (
    "Patient shows stable health indicators. Recent prescriptions suggest ongoing "
    "management of chronic conditions."
)


class ChatQueryRequest(ApiModel):
    message: str = Field(..., min_length=1)
    context: Optional[str] = None


class ChatQueryResponse(ApiModel):
    message: str
    timestamp: str
    context: str
    suggestions: list[str]


class PatientSummaryResponse(ApiModel):
    patient: PatientResponse
    recent_prescriptions: list[PrescriptionResponse]
    health_records: list[HealthRecordResponse]
    ai_insights: str


@router.post("/query", response_model=ChatQueryResponse)
async def query(
    payload: ChatQueryRequest,
    current_user: User = Depends(get_current_user),
):
    return chatbot_service.respond(payload.message, payload.context)


@router.get("/patient-summary/{patient_id}", response_model=PatientSummaryResponse)
async def patient_summary(
    patient_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.DOCTOR)),
):
    patient = await profile_service.get_patient(db, patient_id)
    prescriptions = await prescription_service.list_for_patient(db, patient.id)
    records = await health_record_service.list_for_patient(db, patient.id, limit=10)

    await log_audit(
        db,
        action=AuditAction.READ,
        resource="patient",
        resource_id=patient.id,
        user_id=current_user.id,
        details="Patient summary viewed",
        request=request,
    )
    return PatientSummaryResponse(
        patient=PatientResponse.model_validate(patient),
        recent_prescriptions=[PrescriptionResponse.model_validate(p) for p in prescriptions[:5]],
        health_records=[HealthRecordResponse.model_validate(r) for r in records],
        ai_insights=PATIENT_INSIGHT,
    )
