from fastapi.testclient import TestClient

from src.main import app


def test_health_reports_service_status():
    client = TestClient(app)

    for path in ("/api/health", "/health"):
        response = client.get(path)
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["service"] == "workshop-mailer"
        assert body["signature"] == "verified"
        assert body["timestamp"]
        assert response.headers["X-Frame-Options"] == "DENY"


def test_health_rejects_other_methods():
    client = TestClient(app)

    assert client.post("/api/health").status_code == 405
    assert client.delete("/health").status_code == 405


def test_root():
    client = TestClient(app)

    assert client.get("/").json() == {"status": "ok", "service": "workshop-mailer"}
