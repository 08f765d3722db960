"""
Channel reminders - Telegram / WhatsApp notification for one user or an explicit list
"""
from typing import Any, Dict, List, Optional
import logging

from habit_arc.core.constants import MAX_CHANNEL_REMINDER_HABITS
from habit_arc.models.habit import now_iso
from habit_arc.models.notifications import NotificationChannel, UserPrefs
from habit_arc.services.external.telegram import TelegramTransport, is_telegram_configured
from habit_arc.services.external.whatsapp import WhatsAppTransport, is_twilio_configured
from .service import format_channel_reminder

logger = logging.getLogger(__name__)


class ChannelTransports:
    """
    Lazily built messaging transports

    A transport property returns None when its credentials are not configured.
    """

    def __init__(self, telegram=None, whatsapp=None):
        self._telegram = telegram
        self._whatsapp = whatsapp

    @property
    def telegram(self) -> Optional[TelegramTransport]:
        if self._telegram is None and is_telegram_configured():
            self._telegram = TelegramTransport()
        return self._telegram

    @property
    def whatsapp(self) -> Optional[WhatsAppTransport]:
        if self._whatsapp is None and is_twilio_configured():
            self._whatsapp = WhatsAppTransport()
        return self._whatsapp


def build_reminder_message(repository, user_id: str, prefs: UserPrefs) -> str:
    """Reminder text listing the user's oldest habits"""
    habits = repository.list_habits(
        user_id,
        columns="id, name, type",
        oldest_first=True,
        limit=MAX_CHANNEL_REMINDER_HABITS
    )
    return format_channel_reminder(habits, prefs.notif_timezone)


def send_notification_to_user(repository, user_id: str, transports: ChannelTransports,
                              reason: str = "manual-test",
                              preview_message: Optional[str] = None) -> Dict[str, Any]:
    """
    Send the reminder through the user's configured channel

    Args:
        repository: SupabaseRepository (or compatible)
        user_id: Target user
        transports: Telegram / WhatsApp transports
        reason: Free-form trigger label, logged only
        preview_message: Text to send instead of the generated reminder

    Returns:
        {status: sent|skipped|error, channel?, message?, reason?}
    """
    logger.info(f"[NOTIFY] Sending to {user_id} (reason={reason})")
    try:
        prefs = UserPrefs.from_row(repository.get_user_prefs(user_id))
    except Exception as e:
        logger.error(f"[NOTIFY] Could not load prefs for {user_id}: {e}")
        prefs = UserPrefs()

    if not prefs.notif_enabled:
        return {"status": "skipped", "reason": "Notifications disabled"}

    channel = prefs.notif_channel
    if channel == NotificationChannel.NONE:
        return {"status": "skipped", "reason": "No channel configured"}

    try:
        if channel == NotificationChannel.TELEGRAM:
            transport = transports.telegram
            if transport is None:
                return {"status": "error", "reason": "TELEGRAM_BOT_TOKEN missing"}
            if not prefs.telegram_chat_id:
                return {"status": "skipped", "reason": "Telegram chat ID missing"}

            message = preview_message or build_reminder_message(repository, user_id, prefs)
            transport.send(prefs.telegram_chat_id, message)
            repository.mark_notification_sent(user_id, now_iso())
            return {"status": "sent", "channel": channel.value, "message": "Notification sent on Telegram"}

        if channel == NotificationChannel.WHATSAPP:
            transport = transports.whatsapp
            if transport is None:
                return {"status": "error", "reason": "Twilio configuration missing for WhatsApp"}
            if not prefs.whatsapp_number:
                return {"status": "skipped", "reason": "WhatsApp number missing"}

            message = preview_message or build_reminder_message(repository, user_id, prefs)
            transport.send(prefs.whatsapp_number, message)
            repository.mark_notification_sent(user_id, now_iso())
            return {"status": "sent", "channel": channel.value, "message": "Notification sent on WhatsApp"}

        return {"status": "error", "reason": f"Channel {channel.value} not supported"}
    except Exception as e:
        logger.error(f"[NOTIFY] Send failed ({channel.value}) for {user_id}: {e}")
        return {"status": "error", "reason": str(e) or "Unknown error"}


def fan_out(repository, user_ids: List[str], transports: ChannelTransports,
            reason: str = "manual-test") -> Dict[str, Any]:
    """Send the reminder to each user of an explicit list, one after another"""
    results = [
        send_notification_to_user(repository, user_id, transports, reason=reason)
        for user_id in user_ids
    ]
    sent = sum(1 for r in results if r["status"] == "sent")
    logger.info(f"[NOTIFY] Fan-out done: {sent}/{len(results)} sent")
    return {"status": "fanout-completed", "results": results}
