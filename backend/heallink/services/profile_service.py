"""
Role profile lookups.

Every account owns exactly one profile row of the table matching its
role. A missing row for an authenticated account is reported as
``ProfileNotFound`` so the client can prompt for profile creation.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from heallink.exceptions import PatientNotFound, ProfileNotFound
from heallink.models.doctor import Doctor
from heallink.models.patient import Patient
from heallink.models.pharmacy import Pharmacy
from heallink.models.user import User, UserRole


def build_profile(user: User, profile_data: dict[str, Any]) -> Doctor | Patient | Pharmacy:
    """Create the role-specific profile for a new account, filling defaults."""
    short_id = str(user.id).replace("-", "")[:8]
    name = profile_data.get("name") or user.username
    email = profile_data.get("email") or user.email

    if user.role == UserRole.DOCTOR:
        return Doctor(
            user_id=user.id,
            name=name,
            specialization=profile_data.get("specialization") or "General Medicine",
            hospital=profile_data.get("hospital") or "General Hospital",
            license_number=profile_data.get("license_number") or f"LIC_{short_id}",
            phone=profile_data.get("phone") or "",
            email=email,
        )
    if user.role == UserRole.PATIENT:
        return Patient(
            user_id=user.id,
            name=name,
            date_of_birth=profile_data.get("date_of_birth"),
            blood_group=profile_data.get("blood_group"),
            phone=profile_data.get("phone") or "",
            email=email,
            address=profile_data.get("address") or "",
            emergency_contact=profile_data.get("emergency_contact") or "",
            insurance_info=profile_data.get("insurance_info") or "",
        )
    return Pharmacy(
        user_id=user.id,
        name=name,
        address=profile_data.get("address") or "Unknown Address",
        license_number=profile_data.get("license_number") or f"PHARM_{short_id}",
        phone=profile_data.get("phone") or "",
        email=email,
    )


async def get_doctor_by_user_id(db: AsyncSession, user_id: uuid.UUID) -> Doctor | None:
    result = await db.execute(select(Doctor).where(Doctor.user_id == user_id))
    return result.scalar_one_or_none()


async def get_patient_by_user_id(db: AsyncSession, user_id: uuid.UUID) -> Patient | None:
    result = await db.execute(select(Patient).where(Patient.user_id == user_id))
    return result.scalar_one_or_none()


async def get_pharmacy_by_user_id(db: AsyncSession, user_id: uuid.UUID) -> Pharmacy | None:
    result = await db.execute(select(Pharmacy).where(Pharmacy.user_id == user_id))
    return result.scalar_one_or_none()


async def require_doctor(db: AsyncSession, user: User) -> Doctor:
    doctor = await get_doctor_by_user_id(db, user.id)
    if doctor is None:
        raise ProfileNotFound("Doctor profile not found")
    return doctor


async def require_patient(db: AsyncSession, user: User) -> Patient:
    patient = await get_patient_by_user_id(db, user.id)
    if patient is None:
        raise ProfileNotFound("Patient profile not found")
    return patient


async def require_pharmacy(db: AsyncSession, user: User) -> Pharmacy:
    pharmacy = await get_pharmacy_by_user_id(db, user.id)
    if pharmacy is None:
        raise ProfileNotFound("Pharmacy profile not found")
    return pharmacy


async def get_patient(db: AsyncSession, patient_id: uuid.UUID) -> Patient:
    patient = await db.get(Patient, patient_id)
    if patient is None:
        raise PatientNotFound()
    return patient


async def get_patient_by_health_id(db: AsyncSession, health_id: str) -> Patient | None:
    result = await db.execute(
        select(Patient).join(User, Patient.user_id == User.id).where(User.health_id == health_id)
    )
    return result.scalar_one_or_none()


async def get_patient_health_id(db: AsyncSession, patient: Patient) -> str | None:
    result = await db.execute(select(User.health_id).where(User.id == patient.user_id))
    return result.scalar_one_or_none()
