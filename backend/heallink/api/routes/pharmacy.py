"""
Pharmacy API routes.

Endpoints:
    GET   /pharmacy/profile                       — Own pharmacy profile
    GET   /pharmacy/prescriptions/pending         — Every prescription awaiting dispensation
    PATCH /pharmacy/prescriptions/{id}/dispense   — Dispense a pending prescription
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.api.middleware.audit import log_audit
from heallink.api.middleware.auth import require_role
from heallink.api.schemas import ApiModel, MessageResponse, PharmacyResponse, PrescriptionResponse
from heallink.db.database import get_db
from heallink.models.audit_log import AuditAction
from heallink.models.user import User, UserRole
from heallink.services import prescription_service, profile_service

router = APIRouter(prefix="/pharmacy")


class DispenseRequest(ApiModel):
    # Accepted as sent; not reconciled with the prescribed medicines.
    dispensed_medicines: list[dict[str, Any]] = []


@router.get("/profile", response_model=PharmacyResponse)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PHARMACY)),
):
    return await profile_service.require_pharmacy(db, current_user)


@router.get("/prescriptions/pending", response_model=list[PrescriptionResponse])
async def list_pending_prescriptions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PHARMACY)),
):
    return await prescription_service.list_pending(db)


@router.patch("/prescriptions/{prescription_id}/dispense", response_model=MessageResponse)
async def dispense_prescription(
    prescription_id: UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: DispenseRequest | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.PHARMACY)),
):
    """Mark a pending prescription dispensed; the exchange is notified after the response."""
    pharmacy = await profile_service.require_pharmacy(db, current_user)
    dispensed = payload.dispensed_medicines if payload else []
    await prescription_service.dispense_prescription(
        db,
        prescription_id=prescription_id,
        pharmacy=pharmacy,
        dispensed_medicines=dispensed,
    )
    await log_audit(
        db,
        action=AuditAction.UPDATE,
        resource="prescription",
        resource_id=prescription_id,
        user_id=current_user.id,
        details=f"Dispensed {len(dispensed)} medicines",
        request=request,
    )
    await db.commit()

    background_tasks.add_task(
        prescription_service.forward_dispensation,
        request.app.state.db,
        request.app.state.health_id_client,
        prescription_id,
        pharmacy.id,
        dispensed,
    )
    return MessageResponse(message="Prescription dispensed successfully")
