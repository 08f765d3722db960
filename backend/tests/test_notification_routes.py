import pytest

from habit_arc.core.dependencies import get_channel_transports, get_optional_user_id, get_repository
from habit_arc.services.notifications.channels import ChannelTransports
from conftest import FakeTransport


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(app_client, repository, transport):
    app, test_client = app_client
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_optional_user_id] = lambda: None
    app.dependency_overrides[get_channel_transports] = lambda: ChannelTransports(telegram=transport)
    repository.prefs["u1"] = {"notif_enabled": True, "notif_channel": "telegram", "telegram_chat_id": "42"}
    return test_client


def test_single_mode_with_explicit_user(client, transport):
    response = client.post("/notifications/send", json={"userId": "u1", "previewMessage": "ping"})
    assert response.status_code == 200
    assert response.json()["status"] == "sent"
    assert transport.messages == [("42", "ping")]


def test_single_mode_falls_back_to_bearer_user(app_client, client, transport):
    app, _ = app_client
    app.dependency_overrides[get_optional_user_id] = lambda: "u1"
    response = client.post("/notifications/send", json={})
    assert response.json()["status"] == "sent"


def test_single_mode_without_user_is_401(client):
    response = client.post("/notifications/send", json={})
    assert response.status_code == 401
    assert response.json() == {"status": "error", "reason": "Could not identify the user"}


def test_empty_body_defaults_to_single_mode(client):
    assert client.post("/notifications/send").status_code == 401


def test_fanout_mode(client):
    response = client.post("/notifications/send", json={"mode": "fanout", "userId": ["u1", "u2"]})
    body = response.json()
    assert body["status"] == "fanout-completed"
    assert [r["status"] for r in body["results"]] == ["sent", "skipped"]


def test_fanout_without_users_is_400(client):
    response = client.post("/notifications/send", json={"mode": "fanout"})
    assert response.status_code == 400


def test_unknown_mode_is_400(client):
    response = client.post("/notifications/send", json={"mode": "broadcast"})
    assert response.status_code == 400
    assert response.json() == {"status": "error", "reason": "Mode broadcast not supported"}


def test_get_is_not_allowed(client):
    response = client.get("/notifications/send")
    assert response.status_code == 405
    assert "error" in response.json()
