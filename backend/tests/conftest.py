"""Shared fakes and fixtures for the test suite."""
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import pytest

from habit_arc.services.notifications.service import DeliveryOutcome, FAILED, GONE, SENT


class FakeRepository:
    """In-memory stand-in for SupabaseRepository"""

    def __init__(self):
        self.subscriptions: List[Dict[str, Any]] = []
        self.prefs: Dict[str, Dict[str, Any]] = {}
        self.habits: List[Dict[str, Any]] = []
        self.progress: List[Dict[str, Any]] = []
        self.identities: List[Dict[str, Any]] = []
        self.links: List[Dict[str, Any]] = []
        self.emails: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}
        self.deleted: List[tuple] = []
        self.upserted: List[Dict[str, Any]] = []
        self.marked: List[str] = []

    # auth
    def get_user_id_for_token(self, token):
        from habit_arc.core.exceptions import AuthenticationError
        if not token or token not in self.tokens:
            raise AuthenticationError("Invalid token")
        return self.tokens[token]

    def get_user_email(self, user_id):
        return self.emails.get(user_id)

    # push subscriptions
    def list_push_subscriptions(self, limit=5000):
        return list(self.subscriptions[:limit])

    def list_user_push_subscriptions(self, user_id, limit=None):
        rows = [s for s in self.subscriptions if s["user_id"] == user_id]
        return rows[:limit] if limit else rows

    def upsert_push_subscription(self, row):
        self.subscriptions = [
            s for s in self.subscriptions
            if not (s["user_id"] == row["user_id"] and s["endpoint"] == row["endpoint"])
        ]
        self.subscriptions.append(row)
        self.upserted.append(row)
        return row

    def delete_push_subscription(self, user_id, endpoint):
        self.deleted.append((user_id, endpoint))
        self.subscriptions = [
            s for s in self.subscriptions
            if not (s["user_id"] == user_id and s["endpoint"] == endpoint)
        ]

    # prefs
    def get_user_prefs(self, user_id):
        return self.prefs.get(user_id)

    def list_weekly_email_prefs(self):
        return [
            {"user_id": uid, **row} for uid, row in self.prefs.items()
            if row.get("weekly_email_enabled")
        ]

    def mark_notification_sent(self, user_id, sent_at):
        self.marked.append(user_id)

    # habits / identities
    def list_habits(self, user_id, columns="*", oldest_first=False, limit=None):
        rows = [h for h in self.habits if h["user_id"] == user_id]
        rows.sort(key=lambda h: h["created_at"], reverse=not oldest_first)
        return rows[:limit] if limit else rows

    def list_identities(self, user_id):
        return [i for i in self.identities if i["user_id"] == user_id]

    def get_linked_identity_names(self, habit_id):
        ids = [l["identity_id"] for l in self.links if l["habit_id"] == habit_id]
        return [i["name"] for i in self.identities if i["id"] in ids]

    # progress
    def get_progress_for_habit(self, habit_id):
        rows = [p for p in self.progress if p["habit_id"] == habit_id]
        return sorted(rows, key=lambda p: p["day_index"])

    def get_progress_for_day(self, habit_ids, day_index):
        return [
            p for p in self.progress
            if p["habit_id"] in habit_ids and p["day_index"] == day_index
        ]

    def count_completed_progress(self, habit_ids):
        return sum(1 for p in self.progress if p["habit_id"] in habit_ids and p.get("completed"))

    # helpers for tests
    def add_habit(self, habit_id, user_id, name, total_days=30, created_at="2025-10-01T08:00:00Z",
                  habit_type="start", completed_days=()):
        self.habits.append({
            "id": habit_id,
            "user_id": user_id,
            "name": name,
            "type": habit_type,
            "total_days": total_days,
            "created_at": created_at,
        })
        for day in completed_days:
            self.progress.append({"habit_id": habit_id, "day_index": day, "completed": True})

    def add_subscription(self, user_id, endpoint):
        self.subscriptions.append({
            "user_id": user_id,
            "endpoint": endpoint,
            "subscription": {"endpoint": endpoint, "keys": {"p256dh": "p", "auth": "a"}},
        })


class FakePushSender:
    """Records payloads; endpoints listed in gone/failing get those outcomes"""

    def __init__(self, gone=(), failing=(), raising=()):
        self.gone = set(gone)
        self.failing = set(failing)
        self.raising = set(raising)
        self.sent: List[tuple] = []

    def send(self, subscription, payload):
        endpoint = subscription["endpoint"]
        if endpoint in self.raising:
            raise RuntimeError("network down")
        self.sent.append((endpoint, payload))
        if endpoint in self.gone:
            return DeliveryOutcome(target=endpoint, status=GONE, status_code=410)
        if endpoint in self.failing:
            return DeliveryOutcome(target=endpoint, status=FAILED, status_code=500)
        return DeliveryOutcome(target=endpoint, status=SENT, status_code=201)


class FakeTransport:
    """Telegram / WhatsApp transport double"""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.messages: List[tuple] = []

    def send(self, to, text):
        if self.error:
            raise self.error
        self.messages.append((to, text))
        return "SM123"


class FakeEmailSender:
    def __init__(self):
        self.sent: List[Dict[str, str]] = []

    def send(self, to_email, subject, html, text):
        self.sent.append({"to": to_email, "subject": subject, "html": html, "text": text})
        return "email-1"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def app_client() -> Iterator:
    from fastapi.testclient import TestClient
    from main import app

    try:
        yield app, TestClient(app)
    finally:
        app.dependency_overrides.clear()
