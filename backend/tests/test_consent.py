"""
Consent workflow tests.

- POST  /doctor/consent-request - create (pending)
- GET   /patient/consent-requests - list, optional ?status= filter
- PATCH /patient/consent-requests/{id} - approve or reject, once, owner only
"""

import json
from uuid import UUID, uuid4

import httpx

from conftest import register
from heallink.models.consent_request import ConsentRequest, ConsentStatus
from heallink.services.health_id_client import CONSENT_PATH


def request_consent(client, doctor, patient, purpose="Treatment review", **extra):
    return client.post(
        "/api/doctor/consent-request",
        json={"patientId": patient["profile"]["id"], "purpose": purpose, **extra},
        headers=doctor["headers"],
    )


def respond(client, patient, consent_id, status):
    return client.patch(
        f"/api/patient/consent-requests/{consent_id}",
        json={"status": status},
        headers=patient["headers"],
    )


class TestRequestConsent:
    def test_creates_pending_request(self, client, doctor, patient):
        response = request_consent(client, doctor, patient)

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["status"] == "pending"
        assert body["purpose"] == "Treatment review"
        assert body["dataTypes"] == ["Prescription", "DiagnosticReport"]
        assert body["requesterAccountId"] == doctor["account"]["id"]
        assert body["doctorId"] == doctor["profile"]["id"]

    def test_custom_data_types(self, client, doctor, patient):
        response = request_consent(client, doctor, patient, dataTypes=["DiagnosticReport"])

        assert response.json()["dataTypes"] == ["DiagnosticReport"]

    def test_purpose_required(self, client, doctor, patient):
        response = request_consent(client, doctor, patient, purpose="  ")

        assert response.status_code == 400
        assert response.json() == {"message": "Purpose is required"}

    def test_unknown_patient(self, client, doctor):
        response = request_consent(client, doctor, {"profile": {"id": str(uuid4())}})

        assert response.status_code == 404

    def test_duplicate_pending_requests_allowed(self, client, doctor, patient):
        """Should accept repeated requests from the same doctor"""
        first = request_consent(client, doctor, patient).json()
        second = request_consent(client, doctor, patient).json()

        assert first["id"] != second["id"]
        listed = client.get("/api/patient/consent-requests", headers=patient["headers"]).json()
        assert [c["id"] for c in listed] == [second["id"], first["id"]]

    def test_exchange_consent_id_stored(self, client, exchange, doctor, patient):
        exchange.handler = lambda request: httpx.Response(202, json={"consentRequestId": "CR-77"})

        created = request_consent(client, doctor, patient).json()

        assert exchange.paths() == [CONSENT_PATH]
        body = json.loads(exchange.requests[0].content)
        assert body["consent"]["patient"] == {"id": "doe@sbx"}
        assert body["consent"]["purpose"]["text"] == "Treatment review"
        listed = client.get("/api/patient/consent-requests", headers=patient["headers"]).json()
        assert listed[0]["id"] == created["id"]
        assert listed[0]["exchangeConsentId"] == "CR-77"

    def test_unreachable_exchange_keeps_local_request(self, client, exchange, doctor, patient):
        created = request_consent(client, doctor, patient)

        assert created.status_code == 200
        listed = client.get("/api/patient/consent-requests", headers=patient["headers"]).json()
        assert listed[0]["exchangeConsentId"] is None


class TestRespond:
    def test_approve(self, client, doctor, patient):
        consent = request_consent(client, doctor, patient).json()

        response = respond(client, patient, consent["id"], "approved")

        assert response.status_code == 200
        assert response.json() == {"message": "Consent status updated"}
        listed = client.get("/api/patient/consent-requests", headers=patient["headers"]).json()
        assert listed[0]["status"] == "approved"
        assert listed[0]["respondedAt"] is not None

    def test_response_is_persisted(self, app, client, doctor, patient):
        """Should commit the answer before replying"""
        consent = request_consent(client, doctor, patient).json()
        respond(client, patient, consent["id"], "approved")

        async def load():
            async with app.state.db.session() as db:
                return await db.get(ConsentRequest, UUID(consent["id"]))

        stored = client.portal.call(load)
        assert stored.status == ConsentStatus.APPROVED
        assert stored.responded_at is not None

    def test_terminal_state_cannot_change(self, client, doctor, patient):
        """Should refuse to change an answered request"""
        consent = request_consent(client, doctor, patient).json()
        respond(client, patient, consent["id"], "rejected")

        response = respond(client, patient, consent["id"], "approved")

        assert response.status_code == 409
        assert response.json() == {"message": "Consent request is already rejected"}

    def test_invalid_status(self, client, doctor, patient):
        consent = request_consent(client, doctor, patient).json()

        for status in ("maybe", "pending", ""):
            response = respond(client, patient, consent["id"], status)
            assert response.status_code == 400
            assert response.json() == {"message": "Invalid status"}

    def test_other_patient_cannot_respond(self, client, doctor, patient):
        """Should forbid answering a request addressed to someone else"""
        consent = request_consent(client, doctor, patient).json()
        _, intruder_headers = register(client, "mallory", "patient")

        response = respond(client, {"headers": intruder_headers}, consent["id"], "approved")

        assert response.status_code == 403
        listed = client.get("/api/patient/consent-requests", headers=patient["headers"]).json()
        assert listed[0]["status"] == "pending"

    def test_unknown_request(self, client, patient):
        response = respond(client, patient, uuid4(), "approved")

        assert response.status_code == 404
        assert response.json() == {"message": "Consent request not found"}


class TestListing:
    def test_filter_by_status(self, client, doctor, patient):
        approved = request_consent(client, doctor, patient, purpose="A").json()
        pending = request_consent(client, doctor, patient, purpose="B").json()
        respond(client, patient, approved["id"], "approved")

        only_pending = client.get(
            "/api/patient/consent-requests", params={"status": "pending"}, headers=patient["headers"],
        ).json()
        only_approved = client.get(
            "/api/patient/consent-requests", params={"status": "approved"}, headers=patient["headers"],
        ).json()

        assert [c["id"] for c in only_pending] == [pending["id"]]
        assert [c["id"] for c in only_approved] == [approved["id"]]

    def test_bad_filter(self, client, patient):
        response = client.get(
            "/api/patient/consent-requests", params={"status": "bogus"}, headers=patient["headers"],
        )

        assert response.status_code == 400

    def test_patient_sees_only_own_requests(self, client, doctor, patient):
        request_consent(client, doctor, patient)
        _, other_headers = register(client, "other_patient", "patient")

        assert client.get("/api/patient/consent-requests", headers=other_headers).json() == []
