from types import SimpleNamespace

import pytest
import requests
from pywebpush import WebPushException

from habit_arc.core.exceptions import AuthenticationError, ConfigurationError, ExternalServiceError
from habit_arc.models.notifications import PushPayload
from habit_arc.services.external import webpush as webpush_module
from habit_arc.services.external.email import EmailSender
from habit_arc.services.external.telegram import TelegramTransport
from habit_arc.services.external.webpush import WebPushSender
from habit_arc.services.external.whatsapp import WhatsAppTransport
from habit_arc.services.habits.repository import SupabaseRepository

SUBSCRIPTION = {"endpoint": "https://push/1", "keys": {"p256dh": "k", "auth": "a"}}
PAYLOAD = PushPayload(title="t", body="b")


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = str(self._payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


# ===== WEB PUSH =====

def test_webpush_requires_private_key(monkeypatch):
    monkeypatch.setattr(webpush_module.settings, "VAPID_PRIVATE_KEY", "")
    with pytest.raises(ConfigurationError):
        WebPushSender()


def test_webpush_sent(monkeypatch):
    calls = []
    monkeypatch.setattr(webpush_module, "webpush", lambda **kwargs: calls.append(kwargs))
    outcome = WebPushSender(private_key="key", subject="mailto:a@b.c").send(SUBSCRIPTION, PAYLOAD)
    assert outcome.ok
    assert calls[0]["vapid_claims"] == {"sub": "mailto:a@b.c"}
    assert '"title": "t"' in calls[0]["data"]


@pytest.mark.parametrize("status_code,expected", [(410, "gone"), (404, "gone"), (500, "failed")])
def test_webpush_error_status(monkeypatch, status_code, expected):
    def boom(**kwargs):
        raise WebPushException("push failed", response=SimpleNamespace(status_code=status_code))

    monkeypatch.setattr(webpush_module, "webpush", boom)
    outcome = WebPushSender(private_key="key").send(SUBSCRIPTION, PAYLOAD)
    assert outcome.status == expected
    assert outcome.status_code == status_code


# ===== TELEGRAM =====

def test_telegram_posts_send_message():
    session = FakeSession(FakeResponse(200, {"ok": True}))
    TelegramTransport(token="abc", session=session).send("42", "hi")
    url, kwargs = session.calls[0]
    assert url == "https://api.telegram.org/botabc/sendMessage"
    assert kwargs["json"]["chat_id"] == "42"
    assert kwargs["json"]["disable_web_page_preview"] is True


def test_telegram_not_ok_raises_with_description():
    session = FakeSession(FakeResponse(400, {"ok": False, "description": "chat not found"}))
    with pytest.raises(ExternalServiceError, match="chat not found"):
        TelegramTransport(token="abc", session=session).send("42", "hi")


def test_telegram_network_error_raises():
    session = FakeSession(error=requests.ConnectionError("offline"))
    with pytest.raises(ExternalServiceError):
        TelegramTransport(token="abc", session=session).send("42", "hi")


# ===== WHATSAPP =====

def test_whatsapp_formats_addresses():
    created = []

    def create(**kwargs):
        created.append(kwargs)
        return SimpleNamespace(sid="SM1")

    client = SimpleNamespace(messages=SimpleNamespace(create=create))
    sid = WhatsAppTransport(client=client, from_number="+14155238886").send("+33 6 12", "hello")
    assert sid == "SM1"
    assert created[0] == {"from_": "whatsapp:+14155238886", "body": "hello", "to": "whatsapp:+33612"}


def test_whatsapp_failure_raises():
    def create(**kwargs):
        raise RuntimeError("bad number")

    client = SimpleNamespace(messages=SimpleNamespace(create=create))
    with pytest.raises(ExternalServiceError):
        WhatsAppTransport(client=client, from_number="+1").send("+2", "x")


# ===== EMAIL =====

def test_email_returns_provider_id():
    session = FakeSession(FakeResponse(200, {"id": "re_123"}))
    sender = EmailSender(api_key="key", sender="Habit Arc <hi@habit-arc.app>", session=session)
    assert sender.send("me@example.com", "Subject", "<p>x</p>", "x") == "re_123"
    _, kwargs = session.calls[0]
    assert kwargs["json"]["to"] == ["me@example.com"]
    assert kwargs["headers"]["Authorization"] == "Bearer key"


def test_email_provider_error_raises():
    session = FakeSession(FakeResponse(422, {"message": "invalid"}))
    with pytest.raises(ExternalServiceError):
        EmailSender(api_key="key", sender="a@b.c", session=session).send("x@y.z", "s", "h", "t")


# ===== TOKEN RESOLUTION =====

def fake_auth_client(user=None, error=None):
    def get_user(token):
        if error:
            raise error
        return SimpleNamespace(user=user)

    return SimpleNamespace(auth=SimpleNamespace(get_user=get_user))


def test_token_resolution():
    client = fake_auth_client(user=SimpleNamespace(id="uuid-1"))
    assert SupabaseRepository(client).get_user_id_for_token("tok") == "uuid-1"


@pytest.mark.parametrize("token,client", [
    ("", fake_auth_client(user=SimpleNamespace(id="x"))),
    ("tok", fake_auth_client(user=None)),
    ("tok", fake_auth_client(error=RuntimeError("jwt expired"))),
])
def test_token_resolution_failures(token, client):
    with pytest.raises(AuthenticationError):
        SupabaseRepository(client).get_user_id_for_token(token)
