"""
Prescription lifecycle tests.

- POST  /doctor/prescriptions - issue (pending)
- GET   /doctor/prescriptions, /patient/prescriptions - newest first
- GET   /pharmacy/prescriptions/pending
- PATCH /pharmacy/prescriptions/{id}/dispense - pending -> dispensed, once
- PATCH /doctor/prescriptions/{id}/cancel - pending -> cancelled, issuer only
"""

import json
from uuid import UUID, uuid4

import httpx

from conftest import issue_prescription, register
from heallink.models.prescription import Prescription, PrescriptionStatus
from heallink.services.health_id_client import HIP_UPLOAD_PATH


def dispense(client, pharmacy, prescription_id, body=None):
    return client.patch(
        f"/api/pharmacy/prescriptions/{prescription_id}/dispense",
        json=body if body is not None else {"dispensedMedicines": [{"name": "Lisinopril", "quantity": 30}]},
        headers=pharmacy["headers"],
    )


class TestIssuePrescription:
    def test_issue_creates_pending_prescription(self, client, doctor, patient):
        """Should store a pending prescription with defaults filled in"""
        response = issue_prescription(
            client, doctor, patient,
            medicines=[{"name": "Lisinopril", "dosage": "10mg", "frequency": "daily", "duration": "30d"}],
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["status"] == "pending"
        assert body["doctorId"] == doctor["profile"]["id"]
        assert body["patientId"] == patient["profile"]["id"]
        assert body["medicines"][0]["name"] == "Lisinopril"
        assert body["diagnosis"] == "General consultation"
        assert body["instructions"] == "Take as directed"
        assert body["dispensedAt"] is None

    def test_medications_alias_accepted(self, client, doctor, patient):
        payload = {
            "patientId": patient["profile"]["id"],
            "medications": [{"name": "Ibuprofen", "dosage": "200mg", "frequency": "2x daily", "duration": "3 days"}],
            "diagnosis": "Sprain",
        }
        response = client.post("/api/doctor/prescriptions", json=payload, headers=doctor["headers"])

        assert response.status_code == 200, response.text
        assert response.json()["diagnosis"] == "Sprain"

    def test_empty_medicines_rejected_and_nothing_stored(self, client, doctor, patient):
        """Should reject a prescription without medicines and persist nothing"""
        response = issue_prescription(client, doctor, patient, medicines=[])

        assert response.status_code == 400
        assert response.json() == {"message": "Medicines are required"}
        assert client.get("/api/doctor/prescriptions", headers=doctor["headers"]).json() == []

    def test_incomplete_medicine_rejected(self, client, doctor, patient):
        response = issue_prescription(
            client, doctor, patient, medicines=[{"name": "Aspirin", "dosage": "", "frequency": "daily"}],
        )

        assert response.status_code == 400
        assert "message" in response.json()
        assert client.get("/api/patient/prescriptions", headers=patient["headers"]).json() == []

    def test_unknown_patient_is_404(self, client, doctor, patient):
        response = client.post(
            "/api/doctor/prescriptions",
            json={"patientId": str(uuid4()), "medicines": [
                {"name": "Aspirin", "dosage": "75mg", "frequency": "daily", "duration": "90d"},
            ]},
            headers=doctor["headers"],
        )

        assert response.status_code == 404
        assert response.json() == {"message": "Patient not found"}

    def test_pharmacy_cannot_issue(self, client, pharmacy, patient):
        response = issue_prescription(client, pharmacy, patient)

        assert response.status_code == 403


class TestListing:
    def test_lists_are_newest_first(self, client, doctor, patient):
        """Should list prescriptions newest first for doctor and patient"""
        ids = [issue_prescription(client, doctor, patient, diagnosis=f"visit {n}").json()["id"] for n in range(3)]

        doctor_view = client.get("/api/doctor/prescriptions", headers=doctor["headers"]).json()
        patient_view = client.get("/api/patient/prescriptions", headers=patient["headers"]).json()

        assert [p["id"] for p in doctor_view] == list(reversed(ids))
        assert [p["id"] for p in patient_view] == list(reversed(ids))

    def test_doctor_sees_only_own_prescriptions(self, client, doctor, patient):
        issue_prescription(client, doctor, patient)
        _, other_headers = register(client, "dr_jones", "doctor")

        assert client.get("/api/doctor/prescriptions", headers=other_headers).json() == []

    def test_pending_list_spans_doctors_and_excludes_dispensed(self, client, doctor, patient, pharmacy):
        """Should show every pending prescription to any pharmacy"""
        _, other_headers = register(client, "dr_jones", "doctor")
        other_doctor = {"headers": other_headers}
        first = issue_prescription(client, doctor, patient).json()
        second = issue_prescription(client, other_doctor, patient).json()

        pending = client.get("/api/pharmacy/prescriptions/pending", headers=pharmacy["headers"]).json()
        assert {p["id"] for p in pending} == {first["id"], second["id"]}

        dispense(client, pharmacy, first["id"])
        pending = client.get("/api/pharmacy/prescriptions/pending", headers=pharmacy["headers"]).json()
        assert [p["id"] for p in pending] == [second["id"]]


class TestDispense:
    def test_dispense_once(self, client, doctor, patient, pharmacy):
        """Should dispense a pending prescription and reject a second dispense"""
        prescription = issue_prescription(client, doctor, patient).json()

        first = dispense(client, pharmacy, prescription["id"])
        assert first.status_code == 200
        assert first.json() == {"message": "Prescription dispensed successfully"}

        second = dispense(client, pharmacy, prescription["id"])
        assert second.status_code == 409
        assert second.json() == {"message": "Prescription is already dispensed"}

        stored = client.get("/api/patient/prescriptions", headers=patient["headers"]).json()[0]
        assert stored["status"] == "dispensed"
        assert stored["pharmacyId"] == pharmacy["profile"]["id"]
        assert stored["dispensedMedicines"] == [{"name": "Lisinopril", "quantity": 30}]
        assert stored["dispensedAt"] is not None

    def test_dispense_without_body(self, client, doctor, patient, pharmacy):
        prescription = issue_prescription(client, doctor, patient).json()
        response = client.patch(
            f"/api/pharmacy/prescriptions/{prescription['id']}/dispense", headers=pharmacy["headers"],
        )

        assert response.status_code == 200

    def test_dispense_unknown_prescription(self, client, pharmacy):
        response = dispense(client, pharmacy, uuid4())

        assert response.status_code == 404
        assert response.json() == {"message": "Prescription not found"}

    def test_patient_cannot_dispense(self, client, doctor, patient):
        prescription = issue_prescription(client, doctor, patient).json()

        assert dispense(client, patient, prescription["id"]).status_code == 403


class TestCancel:
    def test_issuer_can_cancel_pending(self, client, doctor, patient, pharmacy):
        prescription = issue_prescription(client, doctor, patient).json()

        response = client.patch(f"/api/doctor/prescriptions/{prescription['id']}/cancel", headers=doctor["headers"])
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancelledAt"] is not None

        blocked = dispense(client, pharmacy, prescription["id"])
        assert blocked.status_code == 409
        assert blocked.json() == {"message": "Prescription is already cancelled"}

    def test_cancellation_is_persisted(self, app, client, doctor, patient):
        """Should commit the cancellation before answering"""
        prescription = issue_prescription(client, doctor, patient).json()
        client.patch(f"/api/doctor/prescriptions/{prescription['id']}/cancel", headers=doctor["headers"])

        async def load():
            async with app.state.db.session() as db:
                return await db.get(Prescription, UUID(prescription["id"]))

        stored = client.portal.call(load)
        assert stored.status == PrescriptionStatus.CANCELLED
        assert stored.cancelled_at is not None

    def test_other_doctor_cannot_cancel(self, client, doctor, patient):
        prescription = issue_prescription(client, doctor, patient).json()
        _, other_headers = register(client, "dr_jones", "doctor")

        response = client.patch(f"/api/doctor/prescriptions/{prescription['id']}/cancel", headers=other_headers)

        assert response.status_code == 403

    def test_dispensed_cannot_be_cancelled(self, client, doctor, patient, pharmacy):
        prescription = issue_prescription(client, doctor, patient).json()
        dispense(client, pharmacy, prescription["id"])

        response = client.patch(f"/api/doctor/prescriptions/{prescription['id']}/cancel", headers=doctor["headers"])

        assert response.status_code == 409


class TestExchangeForwarding:
    def test_unreachable_exchange_does_not_affect_outcome(self, client, exchange, doctor, patient):
        """Should keep the local prescription when the exchange is down"""
        response = issue_prescription(client, doctor, patient)

        assert response.status_code == 200
        assert HIP_UPLOAD_PATH in exchange.paths()
        stored = client.get("/api/doctor/prescriptions", headers=doctor["headers"]).json()[0]
        assert stored["status"] == "pending"
        assert stored["exchangeRef"] is None

    def test_exchange_error_status_does_not_affect_outcome(self, client, exchange, doctor, patient):
        exchange.handler = lambda request: httpx.Response(503, json={"error": "maintenance"})

        assert issue_prescription(client, doctor, patient).status_code == 200

    def test_exchange_reference_is_stored(self, client, exchange, doctor, patient):
        """Should record the exchange reference once the upload succeeds"""
        exchange.handler = lambda request: httpx.Response(200, json={"referenceId": "EX-REF-1"})

        issue_prescription(client, doctor, patient)

        upload = json.loads(exchange.requests[0].content)
        entry = upload["hiRequest"]["entries"][0]
        assert entry["content"]["resourceType"] == "MedicationRequest"
        assert entry["content"]["subject"] == {"reference": "Patient/doe@sbx"}
        stored = client.get("/api/doctor/prescriptions", headers=doctor["headers"]).json()[0]
        assert stored["exchangeRef"] == "EX-REF-1"

    def test_dispensation_is_pushed(self, client, exchange, doctor, patient, pharmacy):
        exchange.handler = lambda request: httpx.Response(200, json={"transactionId": "TXN-9"})
        prescription = issue_prescription(client, doctor, patient).json()

        dispense(client, pharmacy, prescription["id"])

        resources = [json.loads(r.content)["hiRequest"]["entries"][0]["content"] for r in exchange.requests]
        assert [r["resourceType"] for r in resources] == ["MedicationRequest", "MedicationDispense"]
        assert resources[1]["authorizingPrescription"] == [{"reference": f"MedicationRequest/{prescription['id']}"}]
