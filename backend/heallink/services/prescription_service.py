"""
Prescription workflow.

A prescription is created ``pending`` by a doctor and leaves that state
exactly once: to ``dispensed`` by a pharmacy or to ``cancelled`` by the
issuing doctor. Transitions are conditional UPDATEs on the ``status``
column so two concurrent dispense attempts cannot both succeed.

Forwarding to the health-ID exchange happens after the response is sent
(``forward_prescription`` / ``forward_dispensation``) and never affects
the local outcome.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.db.database import Database
from heallink.exceptions import Forbidden, InvalidStateTransition, PrescriptionNotFound, ValidationError
from heallink.models.doctor import Doctor
from heallink.models.patient import Patient
from heallink.models.pharmacy import Pharmacy
from heallink.models.prescription import Prescription, PrescriptionStatus
from heallink.services.health_id_client import HealthIdClient
from heallink.services.profile_service import get_patient, get_patient_health_id

logger = logging.getLogger(__name__)

MEDICINE_FIELDS = ("name", "dosage", "frequency", "duration")
DEFAULT_DIAGNOSIS = "General consultation"
DEFAULT_INSTRUCTIONS = "Take as directed"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def validate_medicines(medicines: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Return cleaned medicine records or raise ``ValidationError``."""
    if not medicines:
        raise ValidationError("Medicines are required")

    cleaned = []
    for position, medicine in enumerate(medicines, start=1):
        missing = [f for f in MEDICINE_FIELDS if not str(medicine.get(f) or "").strip()]
        if missing:
            raise ValidationError(f"Medicine {position} is missing {', '.join(missing)}")
        record = {f: str(medicine[f]).strip() for f in MEDICINE_FIELDS}
        if medicine.get("code"):
            record["code"] = str(medicine["code"])
        cleaned.append(record)
    return cleaned


# Newest first; equal timestamps keep insertion order.
NEWEST_FIRST = (Prescription.created_at.desc(), Prescription.insertion_seq.asc())


def _as_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


async def _transition_failure(db: AsyncSession, prescription_id: uuid.UUID) -> Prescription:
    prescription = await db.get(Prescription, prescription_id, populate_existing=True)
    if prescription is None:
        raise PrescriptionNotFound()
    return prescription


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def create_prescription(
    db: AsyncSession,
    *,
    doctor: Doctor,
    patient_id: uuid.UUID,
    medicines: list[dict[str, Any]] | None,
    diagnosis: str | None = None,
    instructions: str | None = None,
    valid_until: datetime | None = None,
) -> Prescription:
    cleaned = validate_medicines(medicines)
    patient = await get_patient(db, patient_id)

    prescription = Prescription(
        doctor_id=doctor.id,
        patient_id=patient.id,
        medicines=cleaned,
        diagnosis=(diagnosis or "").strip() or DEFAULT_DIAGNOSIS,
        instructions=(instructions or "").strip() or DEFAULT_INSTRUCTIONS,
        status=PrescriptionStatus.PENDING,
        valid_until=_as_naive_utc(valid_until),
    )
    db.add(prescription)
    await db.flush()
    await db.refresh(prescription)
    logger.info("Prescription %s created by doctor %s for patient %s", prescription.id, doctor.id, patient.id)
    return prescription


async def dispense_prescription(
    db: AsyncSession,
    *,
    prescription_id: uuid.UUID,
    pharmacy: Pharmacy,
    dispensed_medicines: list[dict[str, Any]] | None = None,
) -> Prescription:
    """Move a pending prescription to ``dispensed``.

    ``dispensed_medicines`` is stored as given; it is not checked against
    the prescribed list.
    """
    result = await db.execute(
        update(Prescription)
        .where(Prescription.id == prescription_id, Prescription.status == PrescriptionStatus.PENDING)
        .values(
            status=PrescriptionStatus.DISPENSED,
            pharmacy_id=pharmacy.id,
            dispensed_medicines=dispensed_medicines or [],
            dispensed_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await _transition_failure(db, prescription_id)
        raise InvalidStateTransition(f"Prescription is already {current.status.value}")

    prescription = await db.get(Prescription, prescription_id, populate_existing=True)
    logger.info("Prescription %s dispensed by pharmacy %s", prescription_id, pharmacy.id)
    return prescription


async def cancel_prescription(
    db: AsyncSession,
    *,
    prescription_id: uuid.UUID,
    doctor: Doctor,
) -> Prescription:
    result = await db.execute(
        update(Prescription)
        .where(
            Prescription.id == prescription_id,
            Prescription.doctor_id == doctor.id,
            Prescription.status == PrescriptionStatus.PENDING,
        )
        .values(status=PrescriptionStatus.CANCELLED, cancelled_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await _transition_failure(db, prescription_id)
        if current.doctor_id != doctor.id:
            raise Forbidden("Only the issuing doctor can cancel this prescription")
        raise InvalidStateTransition(f"Prescription is already {current.status.value}")

    prescription = await db.get(Prescription, prescription_id, populate_existing=True)
    logger.info("Prescription %s cancelled by doctor %s", prescription_id, doctor.id)
    return prescription


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def list_for_doctor(db: AsyncSession, doctor_id: uuid.UUID) -> list[Prescription]:
    result = await db.execute(
        select(Prescription).where(Prescription.doctor_id == doctor_id).order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def list_for_patient(db: AsyncSession, patient_id: uuid.UUID) -> list[Prescription]:
    result = await db.execute(
        select(Prescription).where(Prescription.patient_id == patient_id).order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


async def list_pending(db: AsyncSession) -> list[Prescription]:
    result = await db.execute(
        select(Prescription).where(Prescription.status == PrescriptionStatus.PENDING).order_by(*NEWEST_FIRST)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Health-ID exchange forwarding (runs as a background task)
# ---------------------------------------------------------------------------

async def _load_for_forwarding(
    database: Database, prescription_id: uuid.UUID, patient_health_id: str | None,
) -> tuple[Prescription | None, str | None]:
    async with database.session() as db:
        prescription = await db.get(Prescription, prescription_id)
        if prescription is not None and patient_health_id is None:
            patient = await db.get(Patient, prescription.patient_id)
            patient_health_id = await get_patient_health_id(db, patient)
        return prescription, patient_health_id


async def forward_prescription(
    database: Database,
    client: HealthIdClient,
    prescription_id: uuid.UUID,
    patient_health_id: str | None = None,
) -> None:
    try:
        prescription, patient_health_id = await _load_for_forwarding(database, prescription_id, patient_health_id)
        if prescription is None:
            logger.warning("Prescription %s vanished before forwarding", prescription_id)
            return

        result = await client.forward_prescription(prescription, patient_health_id)
        if not result.ok:
            logger.warning("Health-ID exchange upload failed for prescription %s: %s", prescription_id, result.error)
            return

        async with database.session() as db:
            await db.execute(
                update(Prescription).where(Prescription.id == prescription_id).values(exchange_ref=result.value)
            )
        logger.info("Prescription %s forwarded to health-ID exchange: %s", prescription_id, result.value)
    except Exception:
        logger.exception("Forwarding prescription %s failed", prescription_id)


async def forward_dispensation(
    database: Database,
    client: HealthIdClient,
    prescription_id: uuid.UUID,
    pharmacy_id: uuid.UUID,
    dispensed_medicines: list[dict[str, Any]] | None,
) -> None:
    try:
        prescription, patient_health_id = await _load_for_forwarding(database, prescription_id, None)
        if prescription is None:
            logger.warning("Prescription %s vanished before dispensation push", prescription_id)
            return

        result = await client.forward_dispensation(prescription, pharmacy_id, dispensed_medicines, patient_health_id)
        if not result.ok:
            logger.warning("Health-ID exchange dispensation push failed for %s: %s", prescription_id, result.error)
            return
        logger.info("Dispensation of %s pushed to health-ID exchange: %s", prescription_id, result.value)
    except Exception:
        logger.exception("Pushing dispensation of %s failed", prescription_id)
