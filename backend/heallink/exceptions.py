"""
Application error types.

Services raise these; route handlers let them propagate and the handlers
registered in ``heallink.main`` render every one of them as
``{"message": ...}`` with the class's HTTP status.
"""


class HealLinkError(Exception):
    http_status = 500
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


class ValidationError(HealLinkError):
    http_status = 400
    message = "Input validation failed"


class DuplicateUsername(HealLinkError):
    http_status = 400
    message = "Username already exists"


class InvalidRole(HealLinkError):
    http_status = 400
    message = "Invalid role. Must be doctor, patient, or pharmacy"


class InvalidCredentials(HealLinkError):
    http_status = 401
    message = "Invalid username or password"


class Unauthenticated(HealLinkError):
    http_status = 401
    message = "Authentication required"


class Forbidden(HealLinkError):
    http_status = 403
    message = "Access denied"


class NotFoundError(HealLinkError):
    http_status = 404
    message = "Resource not found"


class PatientNotFound(NotFoundError):
    message = "Patient not found"


class ProfileNotFound(NotFoundError):
    message = "Profile not found"


class PrescriptionNotFound(NotFoundError):
    message = "Prescription not found"


class ConsentRequestNotFound(NotFoundError):
    message = "Consent request not found"


class AppointmentNotFound(NotFoundError):
    message = "Appointment not found"


class InvalidStateTransition(HealLinkError):
    http_status = 409
    message = "Invalid state transition"
