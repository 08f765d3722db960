"""
Email Service - transactional email through the Resend API
"""
import logging
from typing import Optional

import requests

from habit_arc.core.config import settings
from habit_arc.core.constants import HTTP_TIMEOUT_SECONDS, RESEND_API_URL
from habit_arc.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)


def is_email_configured() -> bool:
    """Check if an API key and sender address are available"""
    return bool(settings.RESEND_API_KEY and settings.EMAIL_FROM)


class EmailSender:
    """Sends HTML + plain-text emails"""

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key or settings.RESEND_API_KEY
        self.sender = sender or settings.EMAIL_FROM
        if not self.api_key or not self.sender:
            raise ConfigurationError("RESEND_API_KEY or EMAIL_FROM missing")
        self.session = session or requests.Session()

    def send(self, to_email: str, subject: str, html: str, text: str) -> str:
        """
        Send one email

        Returns:
            Provider message id

        Raises:
            ExternalServiceError: If the provider rejects the request
        """
        logger.info(f"[EMAIL] Sending '{subject}' to {to_email}")
        try:
            response = self.session.post(
                RESEND_API_URL,
                json={
                    "from": self.sender,
                    "to": [to_email],
                    "subject": subject,
                    "html": html,
                    "text": text,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error(f"[EMAIL] Request failed: {e}")
            raise ExternalServiceError(f"Email request failed: {e}")

        if response.status_code not in (200, 201):
            logger.error(f"[EMAIL] Provider error {response.status_code}: {response.text}")
            raise ExternalServiceError(f"Email provider error {response.status_code}")

        try:
            message_id = response.json().get("id", "")
        except ValueError:
            message_id = ""
        logger.info(f"[EMAIL] Sent with id {message_id}")
        return message_id
