"""
src/tests/test_api_integration.py: Integration tests for the scan HTTP API

Uses FastAPI's TestClient with the OCR engine and session registry
overridden, so no Tesseract installation is needed.
"""

import time
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.services.sessions import SessionRegistry, get_engine, get_registry
from src.scan import ScanSession, ScanState, capture_from_bytes
from src.tests.conftest import FakeOCRService, solid_png


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def make_client(registry):
    """Build a TestClient whose OCR engine returns the given text"""
    clients = []

    def _make(engine):
        app.dependency_overrides[get_engine] = lambda: engine
        app.dependency_overrides[get_registry] = lambda: registry
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()


def _upload(client, photo, **form):
    data = {key: str(value).lower() if isinstance(value, bool) else str(value) for key, value in form.items()}
    return client.post(
        "/api/scans",
        files={"file": ("odometer.jpg", photo, "image/jpeg")},
        data=data,
    )


class TestScanApi:
    """Test upload, confirmation and dismissal"""

    def test_health(self, make_client, fake_engine):
        client = make_client(fake_engine)
        assert client.get("/health").json()["status"] == "healthy"

    def test_upload_and_wait(self, make_client, fake_engine, odometer_photo_bytes):
        client = make_client(fake_engine)
        response = _upload(client, odometer_photo_bytes, wait=True)

        assert response.status_code == 201
        body = response.json()
        assert body["state"] == "awaiting_confirmation"
        assert body["best_candidate"] == 45210
        assert body["alternatives"] == [123]
        assert body["progress"] == 100

    def test_reference_value(self, make_client, odometer_photo_bytes):
        client = make_client(FakeOCRService(text="4521 4800"))
        body = _upload(client, odometer_photo_bytes, wait=True, reference_value=4600).json()

        assert body["reference_value"] == 4600
        assert body["best_candidate"] == 4800
        assert body["alternatives"] == [4521]

    def test_accept(self, make_client, fake_engine, odometer_photo_bytes):
        client = make_client(fake_engine)
        session_id = _upload(client, odometer_photo_bytes, wait=True).json()["session_id"]

        response = client.post(f"/api/scans/{session_id}/accept", json={"value": 123})
        assert response.status_code == 200
        assert response.json()["state"] == "confirmed"
        assert response.json()["confirmed_value"] == 123

        # Already confirmed
        again = client.post(f"/api/scans/{session_id}/accept", json={"value": 123})
        assert again.status_code == 409

    def test_accept_unknown_value(self, make_client, fake_engine, odometer_photo_bytes):
        client = make_client(fake_engine)
        session_id = _upload(client, odometer_photo_bytes, wait=True).json()["session_id"]

        response = client.post(f"/api/scans/{session_id}/accept", json={"value": 77777})
        assert response.status_code == 400

    def test_dismiss(self, make_client, fake_engine, odometer_photo_bytes):
        client = make_client(fake_engine)
        session_id = _upload(client, odometer_photo_bytes, wait=True).json()["session_id"]

        response = client.post(f"/api/scans/{session_id}/dismiss")
        assert response.status_code == 200
        assert response.json()["state"] == "cancelled"
        assert response.json()["confirmed_value"] is None

    def test_dismiss_while_recognizing_conflicts(self, make_client, fake_engine, registry):
        client = make_client(fake_engine)
        session = ScanSession(fake_engine)
        session.state = ScanState.RECOGNIZING
        registry.add(session)

        response = client.post(f"/api/scans/{session.session_id}/dismiss")
        assert response.status_code == 409

    def test_no_reading_found(self, make_client, odometer_photo_bytes):
        client = make_client(FakeOCRService(text="km"))
        body = _upload(client, odometer_photo_bytes, wait=True).json()

        assert body["state"] == "failed"
        assert body["failure_reason"] == "no_reading_found"
        assert body["user_action"] == "manual_entry"

    def test_corrupt_upload(self, make_client, fake_engine):
        client = make_client(fake_engine)
        body = _upload(client, b"not an image", wait=True).json()

        assert body["state"] == "failed"
        assert body["failure_reason"] == "decode_error"
        assert body["user_action"] == "recapture"

    def test_empty_upload_is_rejected(self, make_client, fake_engine):
        client = make_client(fake_engine)
        assert _upload(client, b"").status_code == 400

    def test_unknown_session(self, make_client, fake_engine):
        client = make_client(fake_engine)
        assert client.get("/api/scans/does-not-exist").status_code == 404

    def test_background_recognition(self, make_client, fake_engine, odometer_photo_bytes):
        client = make_client(fake_engine)
        session_id = _upload(client, odometer_photo_bytes).json()["session_id"]

        body = None
        for _ in range(200):
            body = client.get(f"/api/scans/{session_id}").json()
            if body["state"] in ("awaiting_confirmation", "failed"):
                break
            time.sleep(0.02)

        assert body["state"] == "awaiting_confirmation"
        assert body["best_candidate"] == 45210


class TestSessionRegistry:
    """Test pruning of idle sessions"""

    def test_prune_removes_old_finished_sessions(self, fake_engine):
        registry = SessionRegistry(retention_minutes=30)
        finished = ScanSession(fake_engine)
        finished.dismiss()
        finished.updated_at = datetime.utcnow() - timedelta(hours=1)
        active = ScanSession(fake_engine)
        registry.add(finished)
        registry.add(active)

        removed = registry.prune()

        assert removed == 1
        assert registry.get(finished.session_id) is None
        assert registry.get(active.session_id) is active

    def test_prune_dismisses_abandoned_confirmation(self, fake_engine):
        registry = SessionRegistry(retention_minutes=30)
        abandoned = ScanSession(fake_engine)
        abandoned.state = ScanState.AWAITING_CONFIRMATION
        registry.add(abandoned)

        removed = registry.prune(now=datetime.utcnow() + timedelta(days=365))

        assert removed == 1
        assert len(registry) == 0
        assert abandoned.state is ScanState.CANCELLED
        assert abandoned.confirmed_value is None

    def test_prune_keeps_recognizing_sessions(self, fake_engine):
        registry = SessionRegistry(retention_minutes=30)
        running = ScanSession(fake_engine)
        running.state = ScanState.RECOGNIZING
        registry.add(running)

        assert registry.prune(now=datetime.utcnow() + timedelta(days=1)) == 0
        assert registry.get(running.session_id) is running

    def test_activity_extends_retention(self, fake_engine):
        registry = SessionRegistry(retention_minutes=30)
        session = ScanSession(fake_engine)
        session.created_at = datetime.utcnow() - timedelta(hours=2)
        session.updated_at = session.created_at
        registry.add(session)

        session.capture(capture_from_bytes(solid_png(32, 32)))

        assert registry.prune() == 0
        assert session.updated_at > session.created_at
