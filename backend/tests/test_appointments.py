"""
Appointment and health record routes.

- POST  /doctor/appointments
- PATCH /doctor/appointments/{id}
- GET   /doctor/appointments/today
- GET   /patient/appointments
- GET   /patient/health-records
"""

from datetime import datetime, timedelta
from uuid import UUID, uuid4

from conftest import register
from heallink.models.health_record import HealthRecordType
from heallink.services import health_record_service


def schedule(client, doctor, patient, when, kind="checkup", **extra):
    return client.post(
        "/api/doctor/appointments",
        json={"patientId": patient["profile"]["id"], "scheduledAt": when.isoformat(), "type": kind, **extra},
        headers=doctor["headers"],
    )


def today_at(hour):
    now = datetime.utcnow()
    return datetime(now.year, now.month, now.day, hour, 0)


class TestAppointments:
    def test_schedule(self, client, doctor, patient):
        response = schedule(client, doctor, patient, today_at(10), kind="follow-up", notes="Bring reports")

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["type"] == "follow-up"
        assert body["status"] == "scheduled"
        assert body["notes"] == "Bring reports"

    def test_invalid_type(self, client, doctor, patient):
        response = schedule(client, doctor, patient, today_at(10), kind="surgery")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid appointment type"}

    def test_today_only_and_ordered(self, client, doctor, patient):
        """Should list only today's appointments, earliest first"""
        late = schedule(client, doctor, patient, today_at(15)).json()
        early = schedule(client, doctor, patient, today_at(9)).json()
        schedule(client, doctor, patient, today_at(9) + timedelta(days=2))

        today = client.get("/api/doctor/appointments/today", headers=doctor["headers"]).json()

        assert [a["id"] for a in today] == [early["id"], late["id"]]

    def test_patient_sees_own_appointments(self, client, doctor, patient):
        first = schedule(client, doctor, patient, today_at(9)).json()
        second = schedule(client, doctor, patient, today_at(9) + timedelta(days=7), kind="consultation").json()

        listed = client.get("/api/patient/appointments", headers=patient["headers"]).json()

        assert [a["id"] for a in listed] == [second["id"], first["id"]]

    def test_update_status(self, client, doctor, patient):
        appointment = schedule(client, doctor, patient, today_at(11)).json()

        response = client.patch(
            f"/api/doctor/appointments/{appointment['id']}",
            json={"status": "completed"},
            headers=doctor["headers"],
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_update_by_other_doctor_forbidden(self, client, doctor, patient):
        appointment = schedule(client, doctor, patient, today_at(11)).json()
        _, other_headers = register(client, "dr_jones", "doctor")

        response = client.patch(
            f"/api/doctor/appointments/{appointment['id']}",
            json={"status": "cancelled"},
            headers=other_headers,
        )

        assert response.status_code == 403

    def test_update_unknown(self, client, doctor):
        response = client.patch(
            f"/api/doctor/appointments/{uuid4()}", json={"status": "completed"}, headers=doctor["headers"],
        )

        assert response.status_code == 404
        assert response.json() == {"message": "Appointment not found"}


class TestHealthRecords:
    def test_records_newest_first(self, app, client, patient):
        patient_id = UUID(patient["profile"]["id"])

        async def seed():
            async with app.state.db.session() as db:
                for days_ago, title in ((30, "Blood panel"), (2, "Chest X-ray"), (10, "Annual visit")):
                    await health_record_service.create_health_record(
                        db,
                        patient_id=patient_id,
                        record_type=HealthRecordType.LAB,
                        title=title,
                        record_date=datetime.utcnow() - timedelta(days=days_ago),
                    )

        client.portal.call(seed)

        records = client.get("/api/patient/health-records", headers=patient["headers"]).json()

        assert [r["title"] for r in records] == ["Chest X-ray", "Annual visit", "Blood panel"]
        assert records[0]["type"] == "lab"

    def test_empty(self, client, patient):
        assert client.get("/api/patient/health-records", headers=patient["headers"]).json() == []
