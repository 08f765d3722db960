from habit_arc.core.config import settings
from habit_arc.services.external.whatsapp import format_whatsapp_address
from habit_arc.services.notifications.channels import ChannelTransports, fan_out, send_notification_to_user
from habit_arc.services.notifications.service import format_channel_reminder
from conftest import FakeTransport, utc


def telegram_user(repository, user_id="u1", chat_id="42"):
    repository.prefs[user_id] = {
        "notif_enabled": True,
        "notif_channel": "telegram",
        "telegram_chat_id": chat_id,
        "notif_timezone": "Europe/Paris",
    }


def test_disabled_user_is_skipped(repository):
    result = send_notification_to_user(repository, "u1", ChannelTransports(telegram=FakeTransport()))
    assert result == {"status": "skipped", "reason": "Notifications disabled"}


def test_channel_none_is_skipped(repository):
    repository.prefs["u1"] = {"notif_enabled": True, "notif_channel": "none"}
    result = send_notification_to_user(repository, "u1", ChannelTransports())
    assert result["status"] == "skipped"


def test_telegram_send_stamps_last_sent(repository):
    telegram_user(repository)
    repository.add_habit(1, "u1", "Read", habit_type="start", created_at="2025-10-01T08:00:00Z")
    repository.add_habit(2, "u1", "Doomscroll", habit_type="stop", created_at="2025-10-02T08:00:00Z")
    transport = FakeTransport()

    result = send_notification_to_user(repository, "u1", ChannelTransports(telegram=transport))

    assert result["status"] == "sent"
    assert result["channel"] == "telegram"
    (chat_id, text), = transport.messages
    assert chat_id == "42"
    assert "1. Read (to reinforce)" in text
    assert "2. Doomscroll (to reduce)" in text
    assert repository.marked == ["u1"]


def test_preview_message_replaces_generated_text(repository):
    telegram_user(repository)
    transport = FakeTransport()
    send_notification_to_user(repository, "u1", ChannelTransports(telegram=transport), preview_message="hello")
    assert transport.messages == [("42", "hello")]


def test_missing_telegram_token_is_an_error(repository, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "")
    telegram_user(repository)
    result = send_notification_to_user(repository, "u1", ChannelTransports())
    assert result == {"status": "error", "reason": "TELEGRAM_BOT_TOKEN missing"}


def test_missing_chat_id_is_skipped(repository):
    telegram_user(repository, chat_id=None)
    result = send_notification_to_user(repository, "u1", ChannelTransports(telegram=FakeTransport()))
    assert result["status"] == "skipped"
    assert repository.marked == []


def test_whatsapp_transport_error_is_reported(repository):
    repository.prefs["u1"] = {"notif_enabled": True, "notif_channel": "whatsapp", "whatsapp_number": "+33 6 12"}
    transport = FakeTransport(error=RuntimeError("Twilio error 400"))
    result = send_notification_to_user(repository, "u1", ChannelTransports(whatsapp=transport))
    assert result == {"status": "error", "reason": "Twilio error 400"}
    assert repository.marked == []


def test_webpush_channel_is_not_supported_here(repository):
    repository.prefs["u1"] = {"notif_enabled": True, "notif_channel": "webpush"}
    result = send_notification_to_user(repository, "u1", ChannelTransports())
    assert result["status"] == "error"


def test_fan_out_collects_results_in_order(repository):
    telegram_user(repository, "u1")
    result = fan_out(repository, ["u1", "u2"], ChannelTransports(telegram=FakeTransport()))
    assert result["status"] == "fanout-completed"
    assert [r["status"] for r in result["results"]] == ["sent", "skipped"]


def test_channel_reminder_lists_at_most_five_habits():
    habits = [{"name": f"H{i}", "type": "start"} for i in range(7)]
    text = format_channel_reminder(habits, "Europe/Paris", now=utc(2025, 10, 10, 18, 5))
    assert "It's 20:05 (Europe/Paris)" in text
    assert "5. H4 (to reinforce)" in text
    assert "H5" not in text
    assert text.endswith(settings.APP_URL)


def test_channel_reminder_without_habits_has_hint():
    text = format_channel_reminder([], "UTC", now=utc(2025, 10, 10, 9, 0))
    assert "don't have an active habit yet" in text


def test_format_whatsapp_address():
    assert format_whatsapp_address("+33 6 12 34 56 78") == "whatsapp:+33612345678"
    assert format_whatsapp_address("33612345678") == "whatsapp:+33612345678"
    assert format_whatsapp_address(" whatsapp:+1555 ") == "whatsapp:+1555"
