from heallink.models.user import User, UserRole
from heallink.models.doctor import Doctor
from heallink.models.patient import Patient
from heallink.models.pharmacy import Pharmacy
from heallink.models.prescription import Prescription, PrescriptionStatus
from heallink.models.appointment import Appointment, AppointmentStatus, AppointmentType
from heallink.models.consent_request import ConsentRequest, ConsentStatus
from heallink.models.health_record import HealthRecord, HealthRecordType
from heallink.models.audit_log import AuditAction, AuditLog

__all__ = [
    "User",
    "UserRole",
    "Doctor",
    "Patient",
    "Pharmacy",
    "Prescription",
    "PrescriptionStatus",
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "ConsentRequest",
    "ConsentStatus",
    "HealthRecord",
    "HealthRecordType",
    "AuditAction",
    "AuditLog",
]
