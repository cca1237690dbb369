from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

import main
from config import DEFAULT_SESSION_SECRET, Settings


def test_db_ping(client):
    response = client.get("/db-ping")

    assert response.status_code == 200
    assert response.json() == {"db": "connected", "result": {"ok": 1}}


def test_db_ping_failure(client, monkeypatch):
    def down(db):
        raise OperationalError("SELECT 1", {}, Exception("can't connect"))

    monkeypatch.setattr(main, "ping", down)

    response = client.get("/db-ping")

    assert response.status_code == 500
    assert response.json() == {"db": "error"}


def test_openapi_lists_attempt_routes(client):
    paths = client.get("/openapi.json").json()["paths"]

    assert "/case-attempts/ensure" in paths
    assert "/case-attempts/{attempt_id}/save" in paths
    assert "/my-progress" in paths


def test_cors_origins_accept_json_or_csv():
    assert Settings(CORS_ORIGINS='["http://a.test", "http://b.test"]').cors_origins_list == ["http://a.test", "http://b.test"]
    assert Settings(CORS_ORIGINS="http://a.test, http://b.test").cors_origins_list == ["http://a.test", "http://b.test"]


def test_lifespan_creates_tables(monkeypatch):
    calls = []
    monkeypatch.setattr(main, "init_db", lambda: calls.append(True))

    with TestClient(main.app):
        pass

    assert calls == [True]


class _RecordingLogger:
    def __init__(self):
        self.warnings = []

    def warning(self, message, *args):
        self.warnings.append(message)

    def info(self, message, *args):
        pass


def test_default_session_secret_is_flagged_at_startup(monkeypatch):
    recorder = _RecordingLogger()
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "logger", recorder)
    monkeypatch.setattr(main.settings, "SESSION_SECRET", DEFAULT_SESSION_SECRET)
    monkeypatch.setattr(main.settings, "DEBUG", False)

    with TestClient(main.app):
        pass

    assert len(recorder.warnings) == 1
    assert "SESSION_SECRET" in recorder.warnings[0]


def test_custom_session_secret_is_not_flagged(monkeypatch):
    recorder = _RecordingLogger()
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "logger", recorder)
    monkeypatch.setattr(main.settings, "SESSION_SECRET", "a-long-random-value")

    with TestClient(main.app):
        pass

    assert recorder.warnings == []
