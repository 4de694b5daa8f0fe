"""
Consent requests: a doctor asks, the target patient answers once.

Duplicate pending requests from the same requester to the same patient
are allowed.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.db.database import Database
from heallink.exceptions import ConsentRequestNotFound, Forbidden, InvalidStateTransition, ValidationError
from heallink.models.consent_request import ConsentRequest, ConsentStatus, DEFAULT_DATA_TYPES
from heallink.models.doctor import Doctor
from heallink.models.patient import Patient
from heallink.services.health_id_client import HealthIdClient
from heallink.services.profile_service import get_patient, get_patient_health_id

logger = logging.getLogger(__name__)

RESPONSES = (ConsentStatus.APPROVED, ConsentStatus.REJECTED)


async def request_consent(
    db: AsyncSession,
    *,
    requester_account_id: uuid.UUID,
    patient_id: uuid.UUID,
    purpose: str,
    data_types: list[str] | None = None,
    doctor: Doctor | None = None,
) -> ConsentRequest:
    if not purpose or not purpose.strip():
        raise ValidationError("Purpose is required")
    patient = await get_patient(db, patient_id)

    consent = ConsentRequest(
        requester_account_id=requester_account_id,
        doctor_id=doctor.id if doctor else None,
        patient_id=patient.id,
        purpose=purpose.strip(),
        data_types=list(data_types) if data_types else list(DEFAULT_DATA_TYPES),
        status=ConsentStatus.PENDING,
    )
    db.add(consent)
    await db.flush()
    await db.refresh(consent)
    logger.info("Consent request %s created for patient %s", consent.id, patient.id)
    return consent


async def list_for_patient(
    db: AsyncSession,
    patient_id: uuid.UUID,
    status_filter: ConsentStatus | None = None,
) -> list[ConsentRequest]:
    query = select(ConsentRequest).where(ConsentRequest.patient_id == patient_id)
    if status_filter is not None:
        query = query.where(ConsentRequest.status == status_filter)
    # Newest first; equal timestamps keep insertion order.
    result = await db.execute(query.order_by(ConsentRequest.created_at.desc(), ConsentRequest.insertion_seq.asc()))
    return list(result.scalars().all())


async def respond(
    db: AsyncSession,
    *,
    consent_id: uuid.UUID,
    patient: Patient,
    decision: ConsentStatus | str,
) -> ConsentRequest:
    try:
        decision = ConsentStatus(decision)
    except ValueError:
        raise ValidationError("Invalid status")
    if decision not in RESPONSES:
        raise ValidationError("Invalid status")

    result = await db.execute(
        update(ConsentRequest)
        .where(
            ConsentRequest.id == consent_id,
            ConsentRequest.patient_id == patient.id,
            ConsentRequest.status == ConsentStatus.PENDING,
        )
        .values(status=decision, responded_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    consent = await db.get(ConsentRequest, consent_id, populate_existing=True)
    if result.rowcount == 0:
        if consent is None:
            raise ConsentRequestNotFound()
        if consent.patient_id != patient.id:
            raise Forbidden("Consent request belongs to another patient")
        raise InvalidStateTransition(f"Consent request is already {consent.status.value}")

    logger.info("Consent request %s %s by patient %s", consent_id, decision.value, patient.id)
    return consent


async def forward_consent_request(
    database: Database,
    client: HealthIdClient,
    consent_id: uuid.UUID,
    patient_health_id: str | None = None,
) -> None:
    try:
        async with database.session() as db:
            consent = await db.get(ConsentRequest, consent_id)
            if consent is None:
                logger.warning("Consent request %s vanished before forwarding", consent_id)
                return
            if patient_health_id is None:
                patient = await db.get(Patient, consent.patient_id)
                patient_health_id = await get_patient_health_id(db, patient)

        result = await client.request_consent(
            consent_id=consent.id,
            patient_health_id=patient_health_id,
            requester_id=consent.doctor_id or consent.requester_account_id,
            purpose=consent.purpose,
            data_types=consent.data_types or list(DEFAULT_DATA_TYPES),
        )
        if not result.ok:
            logger.warning("Health-ID exchange consent request failed for %s: %s", consent_id, result.error)
            return

        async with database.session() as db:
            await db.execute(
                update(ConsentRequest)
                .where(ConsentRequest.id == consent_id)
                .values(exchange_consent_id=result.value)
            )
        logger.info("Consent request %s registered on health-ID exchange: %s", consent_id, result.value)
    except Exception:
        logger.exception("Forwarding consent request %s failed", consent_id)
