"""
Shared fixtures: a fresh SQLite database per test, an app built from
test settings, and a scripted health-ID exchange behind httpx.MockTransport.

Each test user authenticates with a bearer token taken from the session
cookie; the client's cookie jar is cleared after every login so several
roles can share one TestClient.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from heallink.config import Settings
from heallink.main import create_app

SESSION_COOKIE = "heallink.sid"


class FakeExchange:
    """Records requests to the exchange and answers with ``handler``.

    The default handler behaves like an unreachable exchange.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = self.unreachable

    @staticmethod
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("exchange unreachable", request=request)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'heallink-test.db'}",
        HEALTH_ID_WRAPPER_URL="http://exchange.test",
        SESSION_SECRET="test-secret",
    )


@pytest.fixture
def exchange():
    return FakeExchange()


@pytest.fixture
def app(settings, exchange):
    return create_app(settings, health_id_transport=httpx.MockTransport(exchange))


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def register(client, username, role, password="secret123", **extra):
    """Register an account; returns (account body, auth headers)."""
    payload = {"username": username, "password": password, "role": role, **extra}
    response = client.post("/api/register", json=payload)
    assert response.status_code == 201, response.text
    token = response.cookies[SESSION_COOKIE]
    client.cookies.clear()
    return response.json(), {"Authorization": f"Bearer {token}"}


def profile(client, role, headers):
    response = client.get(f"/api/{role}/profile", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def doctor(client):
    account, headers = register(client, "dr_smith", "doctor", profileData={"name": "Dr. John Smith"})
    return {"account": account, "headers": headers, "profile": profile(client, "doctor", headers)}


@pytest.fixture
def patient(client):
    account, headers = register(
        client, "patient_doe", "patient", healthId="doe@sbx", profileData={"name": "Jane Doe"},
    )
    return {"account": account, "headers": headers, "profile": profile(client, "patient", headers)}


@pytest.fixture
def pharmacy(client):
    account, headers = register(client, "city_pharmacy", "pharmacy", profileData={"name": "City Pharmacy"})
    return {"account": account, "headers": headers, "profile": profile(client, "pharmacy", headers)}


MEDICINES = [
    {"name": "Amoxicillin", "dosage": "500mg", "frequency": "3x daily", "duration": "7 days"},
    {"name": "Paracetamol", "dosage": "650mg", "frequency": "as needed", "duration": "5 days"},
]


def issue_prescription(client, doctor, patient, medicines=None, **extra):
    payload = {
        "patientId": patient["profile"]["id"],
        "medicines": MEDICINES if medicines is None else medicines,
        **extra,
    }
    return client.post("/api/doctor/prescriptions", json=payload, headers=doctor["headers"])
