from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.models.health_record import HealthRecord, HealthRecordType


async def list_for_patient(db: AsyncSession, patient_id: uuid.UUID, limit: int | None = None) -> list[HealthRecord]:
    query = (
        select(HealthRecord)
        .where(HealthRecord.patient_id == patient_id)
        .order_by(HealthRecord.record_date.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_health_record(
    db: AsyncSession,
    *,
    patient_id: uuid.UUID,
    record_type: HealthRecordType,
    title: str,
    record_date: datetime,
    description: str | None = None,
    file_url: str | None = None,
) -> HealthRecord:
    record = HealthRecord(
        patient_id=patient_id,
        type=record_type,
        title=title,
        description=description,
        file_url=file_url,
        record_date=record_date,
    )
    db.add(record)
    await db.flush()
    return record
