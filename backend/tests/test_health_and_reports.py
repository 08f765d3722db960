import pytest

from habit_arc.core.config import settings
from habit_arc.core.dependencies import get_current_user_id, get_email_sender, get_habit_store, get_repository
from habit_arc.models.habit import HabitType
from habit_arc.services.habits.local_store import KeyValueFile, LocalHabitStore
from conftest import FakeEmailSender


def test_health(app_client):
    _, client = app_client
    assert client.get("/health").json() == {"status": "ok", "message": "Server is alive"}


def test_deployment_health_reports_presence_only(app_client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "very-secret")
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", "")
    _, client = app_client
    body = client.get("/api/health").json()
    assert body["ok"] is True
    assert body["env"]["CRON_SECRET"] is True
    assert body["env"]["VAPID_PRIVATE_KEY"] is False
    assert "very-secret" not in str(body)


@pytest.fixture
def reports_client(app_client, repository, tmp_path):
    store = LocalHabitStore(KeyValueFile(tmp_path / "store.json"))
    identity = store.create_identity("Runner")
    store.create_habit("Run", HabitType.START, 4, [identity.id])
    sender = FakeEmailSender()
    app, client = app_client
    app.dependency_overrides[get_habit_store] = lambda: store
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_current_user_id] = lambda: "u1"
    app.dependency_overrides[get_email_sender] = lambda: sender
    return client, repository, sender


def test_weekly_preview(reports_client):
    client, _, _ = reports_client
    body = client.get("/reports/weekly").json()
    assert body["report"]["habits"]["total"] == 1
    assert body["report"]["identities"]["total"] == 1
    assert "weekStart" in body["report"]
    assert body["email"]["subject"].startswith("📊 Habit Arc weekly summary")


def test_weekly_email_is_sent(reports_client):
    client, repository, sender = reports_client
    repository.emails["u1"] = "me@example.com"
    response = client.post("/reports/weekly/email")
    assert response.json() == {"ok": True, "id": "email-1"}
    assert sender.sent[0]["to"] == "me@example.com"


def test_weekly_email_without_address_is_400(reports_client):
    client, _, _ = reports_client
    assert client.post("/reports/weekly/email").status_code == 400
