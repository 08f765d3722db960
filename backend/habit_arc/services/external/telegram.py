"""
Telegram Service - Bot API messaging
"""
import logging
from typing import Optional

import requests

from habit_arc.core.config import settings
from habit_arc.core.constants import HTTP_TIMEOUT_SECONDS, TELEGRAM_API_BASE
from habit_arc.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)


def is_telegram_configured() -> bool:
    """Check if a bot token is available"""
    return bool(settings.TELEGRAM_BOT_TOKEN)


class TelegramTransport:
    """Sends messages through the Telegram Bot API sendMessage method"""

    def __init__(self, token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.token = token or settings.TELEGRAM_BOT_TOKEN
        if not self.token:
            raise ConfigurationError("TELEGRAM_BOT_TOKEN missing")
        self.session = session or requests.Session()

    def send(self, chat_id: str, text: str) -> None:
        """
        Send a text message to a chat

        Raises:
            ExternalServiceError: If the request fails or Telegram answers ok=false
        """
        logger.info(f"[TELEGRAM] Sending message to chat {chat_id}")
        try:
            response = self.session.post(
                f"{TELEGRAM_API_BASE}/bot{self.token}/sendMessage",
                json={"chat_id": chat_id, "text": text, "disable_web_page_preview": True},
                timeout=HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error(f"[TELEGRAM] Request failed: {e}")
            raise ExternalServiceError(f"Telegram request failed: {e}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.ok or not payload.get("ok"):
            logger.error(f"[TELEGRAM] API error {response.status_code}: {payload}")
            raise ExternalServiceError(payload.get("description") or "Telegram call failed")
        logger.info("[TELEGRAM] Message sent")
