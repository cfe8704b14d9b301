"""
API tests for the booking backend.

The app is built around a temp-dir store and a recording mailer, so bookings
and their notification attempts can be inspected directly.
"""

import pytest
from datetime import date, timedelta
from typing import List, Tuple

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from clinic.booking.appointment_repository import AppointmentRepository
from clinic.booking.config import AppConfig, MailConfig, StoreConfig
from clinic.booking.errors import StoreUnavailable
from clinic.booking.notifications import NotificationDispatcher
from clinic.server import create_app


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []

    def send(self, to_email, subject, text_body, html_body):
        if self.fail:
            raise ConnectionRefusedError("SMTP server down")
        self.sent.append((to_email, subject))


def jane_payload(**overrides) -> dict:
    payload = {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "9876543210",
        "doctor": "rakesh-gupta",
        "date": (date.today() + timedelta(days=1)).isoformat(),
        "time": "10:00",
        "reason": "checkup",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def repo(tmp_path):
    return AppointmentRepository(StoreConfig(data_dir=tmp_path / "data"))


@pytest.fixture
def client(repo, mailer):
    mail_config = MailConfig(admin_email="admin@clinic.example")
    config = AppConfig(store=StoreConfig(data_dir=repo.data_dir), mail=mail_config)
    app = create_app(config, repository=repo,
                     dispatcher=NotificationDispatcher(mail_config, mailer=mailer))
    return TestClient(app)


def book(client, **overrides) -> dict:
    response = client.post("/api/appointments", json=jane_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["appointment"]


class TestBooking:
    def test_book_jane_doe(self, client, repo, mailer):
        response = client.post("/api/appointments", json=jane_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"]
        appt = body["appointment"]
        assert appt["status"] == "pending"
        assert appt["createdAt"]
        assert repo.count() == 1

        recipients = [to for to, _ in mailer.sent]
        assert recipients == ["jane@example.com", "admin@clinic.example"], \
            "Both patient and admin should be notified"

    def test_round_trip(self, client):
        payload = jane_payload()
        created = book(client)

        response = client.get(f"/api/appointments/{created['id']}")
        assert response.status_code == 200
        fetched = response.json()["appointment"]
        for field in ("name", "email", "phone", "doctor", "date", "time", "reason"):
            assert fetched[field] == payload[field], f"{field} changed in round trip"
        assert fetched["status"] == "pending"

    def test_client_status_ignored(self, client):
        created = book(client, status="confirmed")
        assert created["status"] == "pending"

    def test_email_lowercased(self, client):
        created = book(client, email="Jane.Doe@Example.com")
        assert created["email"] == "jane.doe@example.com"

    def test_yesterday_rejected(self, client, repo, mailer):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        response = client.post("/api/appointments", json=jane_payload(date=yesterday))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "PastDate"
        assert repo.count() == 0, "Rejected booking must not be stored"
        assert mailer.sent == []

    @pytest.mark.parametrize("field", ["name", "email", "phone", "doctor", "date", "time", "reason"])
    def test_missing_field(self, client, repo, field):
        payload = jane_payload()
        del payload[field]
        response = client.post("/api/appointments", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "MissingField"
        assert repo.count() == 0

    @pytest.mark.parametrize("overrides,error", [
        ({"email": "jane.example.com"}, "InvalidEmail"),
        ({"phone": "12345"}, "InvalidPhone"),
        ({"doctor": "dr-nobody"}, "InvalidDoctor"),
        ({"date": "31/12/2030"}, "InvalidDate"),
    ])
    def test_invalid_fields(self, client, repo, overrides, error):
        response = client.post("/api/appointments", json=jane_payload(**overrides))
        assert response.status_code == 400
        assert response.json()["error"] == error
        assert repo.count() == 0

    def test_malformed_body(self, client):
        response = client.post("/api/appointments", content=b"not json",
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_mail_failure_does_not_fail_booking(self, repo):
        mail_config = MailConfig(admin_email="admin@clinic.example")
        app = create_app(AppConfig(mail=mail_config), repository=repo,
                         dispatcher=NotificationDispatcher(mail_config, mailer=RecordingMailer(fail=True)))
        client = TestClient(app)

        response = client.post("/api/appointments", json=jane_payload())
        assert response.status_code == 201
        assert repo.count() == 1


class TestManagement:
    def test_list_all(self, client):
        first = book(client, name="First")
        second = book(client, name="Second")

        response = client.get("/api/appointments")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["count"] == 2
        assert [a["id"] for a in body["appointments"]] == [second["id"], first["id"]]

    def test_get_unknown(self, client):
        response = client.get("/api/appointments/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Appointment not found", "error": "NotFound"}

    def test_update_status(self, client):
        created = book(client)
        response = client.put(f"/api/appointments/{created['id']}", json={"status": "confirmed"})

        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "confirmed"
        fetched = client.get(f"/api/appointments/{created['id']}").json()["appointment"]
        assert fetched["status"] == "confirmed"
        assert fetched["createdAt"] == created["createdAt"]

    def test_update_bogus_status(self, client):
        created = book(client)
        response = client.put(f"/api/appointments/{created['id']}", json={"status": "bogus"})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidStatus"
        fetched = client.get(f"/api/appointments/{created['id']}").json()["appointment"]
        assert fetched["status"] == "pending"

    def test_update_missing_status(self, client):
        created = book(client)
        response = client.put(f"/api/appointments/{created['id']}", json={})
        assert response.status_code == 400

    def test_update_unknown_id(self, client):
        response = client.put("/api/appointments/nope", json={"status": "cancelled"})
        assert response.status_code == 404

    def test_delete(self, client):
        created = book(client)
        response = client.delete(f"/api/appointments/{created['id']}")
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert client.get(f"/api/appointments/{created['id']}").status_code == 404
        assert client.delete(f"/api/appointments/{created['id']}").status_code == 404

    def test_delete_unknown_envelope(self, client):
        response = client.delete("/api/appointments/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Appointment not found", "error": "NotFound"}

    def test_by_status(self, client):
        a = book(client)
        b = book(client)
        client.put(f"/api/appointments/{b['id']}", json={"status": "cancelled"})

        pending = client.get("/api/appointments/status/pending").json()
        cancelled = client.get("/api/appointments/status/cancelled").json()
        assert [x["id"] for x in pending["appointments"]] == [a["id"]]
        assert cancelled["count"] == 1

    def test_by_unknown_status(self, client):
        response = client.get("/api/appointments/status/archived")
        assert response.status_code == 400

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "ok"

    def test_store_unavailable(self, client, repo, monkeypatch):
        def broken(*args, **kwargs):
            raise StoreUnavailable()

        monkeypatch.setattr(repo, "list_all", broken)
        response = client.get("/api/appointments")
        assert response.status_code == 503
        assert response.json()["success"] is False
