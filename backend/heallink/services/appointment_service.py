from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.exceptions import AppointmentNotFound, Forbidden, ValidationError
from heallink.models.appointment import Appointment, AppointmentStatus, AppointmentType
from heallink.models.doctor import Doctor
from heallink.services.profile_service import get_patient

logger = logging.getLogger(__name__)


async def create_appointment(
    db: AsyncSession,
    *,
    doctor: Doctor,
    patient_id: uuid.UUID,
    scheduled_at: datetime,
    appointment_type: AppointmentType | str,
    notes: str | None = None,
) -> Appointment:
    try:
        appointment_type = AppointmentType(appointment_type)
    except ValueError:
        raise ValidationError("Invalid appointment type")
    patient = await get_patient(db, patient_id)

    # Stored as naive UTC like every other timestamp.
    if scheduled_at.tzinfo is not None:
        scheduled_at = scheduled_at.astimezone(timezone.utc).replace(tzinfo=None)

    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        scheduled_at=scheduled_at,
        type=appointment_type,
        status=AppointmentStatus.SCHEDULED,
        notes=notes,
    )
    db.add(appointment)
    await db.flush()
    await db.refresh(appointment)
    logger.info("Appointment %s scheduled for %s", appointment.id, scheduled_at.isoformat())
    return appointment


async def update_status(
    db: AsyncSession,
    *,
    appointment_id: uuid.UUID,
    doctor: Doctor,
    status: AppointmentStatus | str,
) -> Appointment:
    try:
        status = AppointmentStatus(status)
    except ValueError:
        raise ValidationError("Invalid appointment status")

    appointment = await db.get(Appointment, appointment_id)
    if appointment is None:
        raise AppointmentNotFound()
    if appointment.doctor_id != doctor.id:
        raise Forbidden("Appointment belongs to another doctor")

    appointment.status = status
    await db.flush()
    await db.refresh(appointment)
    return appointment


async def list_today_for_doctor(
    db: AsyncSession,
    doctor_id: uuid.UUID,
    now: datetime | None = None,
) -> list[Appointment]:
    now = now or datetime.utcnow()
    start_of_day = datetime(now.year, now.month, now.day)
    end_of_day = start_of_day + timedelta(days=1)
    result = await db.execute(
        select(Appointment)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.scheduled_at >= start_of_day,
            Appointment.scheduled_at < end_of_day,
        )
        .order_by(Appointment.scheduled_at.asc())
    )
    return list(result.scalars().all())


async def list_for_patient(db: AsyncSession, patient_id: uuid.UUID) -> list[Appointment]:
    result = await db.execute(
        select(Appointment)
        .where(Appointment.patient_id == patient_id)
        .order_by(Appointment.scheduled_at.desc())
    )
    return list(result.scalars().all())
