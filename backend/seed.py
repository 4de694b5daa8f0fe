"""
Seed script: creates a demo doctor, patient and pharmacy with a
prescription, an appointment for today and a few health records.

    python seed.py           # wipe and seed
    python seed.py --clear   # wipe only
"""
import asyncio
import sys
from datetime import date, datetime, timedelta

from sqlalchemy import delete

from heallink.config import get_settings
from heallink.db.database import Database
from heallink.models import (
    Appointment,
    AppointmentType,
    AuditLog,
    ConsentRequest,
    Doctor,
    HealthRecord,
    HealthRecordType,
    Patient,
    Pharmacy,
    Prescription,
    User,
)
from heallink.services import (
    account_service,
    appointment_service,
    health_record_service,
    prescription_service,
    profile_service,
)

# Children before parents.
DELETE_ORDER = [AuditLog, Appointment, ConsentRequest, HealthRecord, Prescription, Doctor, Patient, Pharmacy, User]

DEMO_PASSWORD = "password123"


async def clear(database: Database):
    async with database.session() as db:
        for model in DELETE_ORDER:
            result = await db.execute(delete(model))
            print(f"  Deleted {result.rowcount:4d} from {model.__tablename__}")


async def seed(database: Database):
    async with database.session() as db:
        doctor_user = await account_service.register_account(
            db,
            username="dr_smith",
            password=DEMO_PASSWORD,
            role="doctor",
            email="smith@heallink.example",
            profile_data={
                "name": "Dr. John Smith",
                "specialization": "Cardiology",
                "hospital": "City General Hospital",
                "phone": "+1-555-0100",
            },
        )
        patient_user = await account_service.register_account(
            db,
            username="patient_doe",
            password=DEMO_PASSWORD,
            role="patient",
            health_id="patient.doe@sbx",
            profile_data={
                "name": "Jane Doe",
                "date_of_birth": date(1985, 6, 15),
                "blood_group": "O+",
                "phone": "+1-555-0101",
                "address": "12 Elm Street",
                "emergency_contact": "John Doe +1-555-0102",
            },
        )
        await account_service.register_account(
            db,
            username="city_pharmacy",
            password=DEMO_PASSWORD,
            role="pharmacy",
            profile_data={"name": "City Pharmacy", "address": "48 Main Street", "phone": "+1-555-0103"},
        )

        doctor = await profile_service.get_doctor_by_user_id(db, doctor_user.id)
        patient = await profile_service.get_patient_by_user_id(db, patient_user.id)

        await prescription_service.create_prescription(
            db,
            doctor=doctor,
            patient_id=patient.id,
            medicines=[{"name": "Lisinopril", "dosage": "10mg", "frequency": "daily", "duration": "30 days"}],
            diagnosis="Hypertension",
            valid_until=datetime.utcnow() + timedelta(days=30),
        )

        now = datetime.utcnow()
        await appointment_service.create_appointment(
            db,
            doctor=doctor,
            patient_id=patient.id,
            scheduled_at=datetime(now.year, now.month, now.day, 14, 30),
            appointment_type=AppointmentType.FOLLOW_UP,
            notes="Blood pressure review",
        )

        records = [
            (HealthRecordType.LAB, "Lipid panel", "LDL 130 mg/dL", 40),
            (HealthRecordType.VISIT, "Cardiology consult", "Started on Lisinopril", 14),
            (HealthRecordType.IMAGING, "Echocardiogram", "Normal ejection fraction", 7),
        ]
        for record_type, title, description, days_ago in records:
            await health_record_service.create_health_record(
                db,
                patient_id=patient.id,
                record_type=record_type,
                title=title,
                description=description,
                record_date=now - timedelta(days=days_ago),
            )

    print("=" * 60)
    print("  SEED DATA CREATED SUCCESSFULLY")
    print("=" * 60)
    print()
    print(f"  Doctor:    dr_smith / {DEMO_PASSWORD}")
    print(f"  Patient:   patient_doe / {DEMO_PASSWORD}  (health ID patient.doe@sbx)")
    print(f"  Pharmacy:  city_pharmacy / {DEMO_PASSWORD}")
    print()
    print("  1 pending prescription, 1 appointment today, 3 health records")
    print("=" * 60)


async def main(argv):
    database = Database(get_settings())
    try:
        await database.create_all()
        print("Clearing existing data...")
        await clear(database)
        if "--clear" not in argv:
            await seed(database)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
