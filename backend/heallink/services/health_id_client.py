"""
Client for the national health-ID exchange wrapper service.

Every call is bounded by ``HEALTH_ID_TIMEOUT_SECONDS`` and never raises:
the result carries either the exchange's answer or a deterministic
placeholder together with the reason the exchange could not be used.
Callers decide what to log; the locally stored records stay
authoritative either way.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Generic, Optional, TypeVar

import httpx

from heallink.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

HIP_UPLOAD_PATH = "/api/v1/health-information/hip/on-request"
DISCOVER_PATH = "/api/v1/care-contexts/discover"
CONSENT_PATH = "/api/v1/consent-requests"


@dataclass
class ExchangeResult(Generic[T]):
    value: T
    error: Optional[str] = None
    not_found: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.not_found

    @property
    def unreachable(self) -> bool:
        return self.error is not None


@dataclass
class PatientSummary:
    health_id: str
    name: str
    gender: Optional[str] = None
    year_of_birth: Optional[str] = None
    care_contexts: list[dict[str, Any]] | None = None
    source: str = "exchange"

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthId": self.health_id,
            "name": self.name,
            "gender": self.gender,
            "yearOfBirth": self.year_of_birth,
            "careContexts": self.care_contexts or [],
            "source": self.source,
        }


def _coding(medicines: list[dict[str, Any]] | None) -> list[dict[str, str]]:
    return [
        {"system": "http://snomed.info/sct", "code": med.get("code") or "unknown", "display": med.get("name", "")}
        for med in (medicines or [])
    ]


def medication_request_resource(prescription, patient_health_id: Optional[str]) -> dict[str, Any]:
    """FHIR MedicationRequest for a prescription."""
    return {
        "resourceType": "MedicationRequest",
        "id": str(prescription.id),
        "status": "active",
        "intent": "order",
        "medicationCodeableConcept": {"coding": _coding(prescription.medicines)},
        "subject": {"reference": f"Patient/{patient_health_id}"},
        "authoredOn": (prescription.created_at or datetime.utcnow()).isoformat(),
        "requester": {"reference": f"Practitioner/{prescription.doctor_id}"},
        "dosageInstruction": [{"text": prescription.instructions or "As directed by physician"}],
    }


def medication_dispense_resource(
    prescription,
    pharmacy_id: uuid.UUID,
    dispensed_medicines: list[dict[str, Any]] | None,
    patient_health_id: Optional[str],
) -> dict[str, Any]:
    """FHIR MedicationDispense for a dispensation."""
    return {
        "resourceType": "MedicationDispense",
        "id": f"disp-{prescription.id}",
        "status": "completed",
        "authorizingPrescription": [{"reference": f"MedicationRequest/{prescription.id}"}],
        "medicationCodeableConcept": {"coding": _coding(dispensed_medicines)},
        "subject": {"reference": f"Patient/{patient_health_id}"},
        "performer": [{"actor": {"reference": f"Organization/{pharmacy_id}"}}],
        "whenHandedOver": (prescription.dispensed_at or datetime.utcnow()).isoformat(),
    }


class HealthIdClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(
            base_url=settings.HEALTH_ID_WRAPPER_URL,
            timeout=settings.HEALTH_ID_TIMEOUT_SECONDS,
            headers={"Content-Type": "application/json", "X-CM-ID": settings.HEALTH_ID_CM_ID},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        response = await self._client.post(path, json=body)
        response.raise_for_status()
        return response

    async def _upload(self, resource: dict[str, Any], care_context: Optional[str], placeholder: str) -> ExchangeResult[str]:
        body = {
            "requestId": f"REQ-{uuid.uuid4()}",
            "timestamp": datetime.utcnow().isoformat(),
            "hiRequest": {
                "transactionId": f"TXN-{uuid.uuid4()}",
                "entries": [{
                    "content": resource,
                    "media": "application/fhir+json",
                    "careContextReference": care_context,
                }],
            },
        }
        try:
            response = await self._post(HIP_UPLOAD_PATH, body)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return ExchangeResult(placeholder, error=str(e) or type(e).__name__)
        reference = (data.get("referenceId") or data.get("transactionId")) if isinstance(data, dict) else None
        if not reference:
            return ExchangeResult(placeholder, error="exchange response carried no reference")
        return ExchangeResult(str(reference))

    async def forward_prescription(self, prescription, patient_health_id: Optional[str]) -> ExchangeResult[str]:
        return await self._upload(
            medication_request_resource(prescription, patient_health_id),
            patient_health_id,
            placeholder=f"LOCAL-RX-{prescription.id}",
        )

    async def forward_dispensation(
        self,
        prescription,
        pharmacy_id: uuid.UUID,
        dispensed_medicines: list[dict[str, Any]] | None,
        patient_health_id: Optional[str],
    ) -> ExchangeResult[str]:
        return await self._upload(
            medication_dispense_resource(prescription, pharmacy_id, dispensed_medicines, patient_health_id),
            patient_health_id,
            placeholder=f"LOCAL-DISP-{prescription.id}",
        )

    async def lookup_patient(self, health_id: str) -> ExchangeResult[PatientSummary]:
        placeholder = PatientSummary(health_id=health_id, name="Unverified patient", source="placeholder")
        body = {
            "patient": {
                "id": health_id,
                "verifiedIdentifiers": [{"type": "HEALTH_ID", "value": health_id}],
            }
        }
        try:
            response = await self._client.post(DISCOVER_PATH, json=body)
            if response.status_code == 404:
                return ExchangeResult(placeholder, not_found=True)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return ExchangeResult(placeholder, error=str(e) or type(e).__name__)

        if not isinstance(data, dict):
            return ExchangeResult(placeholder, error="unexpected payload")
        patient = data.get("patient")
        if not patient:
            return ExchangeResult(placeholder, not_found=True)
        if not isinstance(patient, dict):
            return ExchangeResult(placeholder, error="unexpected payload")
        return ExchangeResult(PatientSummary(
            health_id=health_id,
            name=patient.get("name", ""),
            gender=patient.get("gender"),
            year_of_birth=patient.get("yearOfBirth"),
            care_contexts=patient.get("careContexts") or [],
        ))

    async def request_consent(
        self,
        *,
        consent_id: uuid.UUID,
        patient_health_id: Optional[str],
        requester_id: uuid.UUID,
        purpose: str,
        data_types: list[str],
    ) -> ExchangeResult[str]:
        placeholder = f"LOCAL-CONSENT-{consent_id}"
        now = datetime.utcnow()
        body = {
            "requestId": str(consent_id),
            "timestamp": now.isoformat(),
            "consent": {
                "purpose": {"text": purpose, "code": "CAREMGT"},
                "patient": {"id": patient_health_id},
                "hiu": {"id": str(requester_id)},
                "requester": {"name": "HealLink", "identifier": {"type": "HIU", "value": str(requester_id)}},
                "hiTypes": data_types,
                "permission": {
                    "accessMode": "VIEW",
                    "dateRange": {"from": (now - timedelta(days=30)).isoformat(), "to": now.isoformat()},
                    "dataEraseAt": (now + timedelta(days=30)).isoformat(),
                    "frequency": {"unit": "HOUR", "value": 1, "repeats": 0},
                },
            },
        }
        try:
            response = await self._post(CONSENT_PATH, body)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return ExchangeResult(placeholder, error=str(e) or type(e).__name__)
        consent_request_id = data.get("consentRequestId") if isinstance(data, dict) else None
        if not consent_request_id:
            return ExchangeResult(placeholder, error="exchange response carried no consentRequestId")
        return ExchangeResult(str(consent_request_id))
