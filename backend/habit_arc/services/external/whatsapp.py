"""
WhatsApp Service - Twilio messaging logic
"""
import logging
import re
from typing import Optional

from twilio.rest import Client

from habit_arc.core.config import settings
from habit_arc.core.constants import TWILIO_SANDBOX_WHATSAPP_FROM
from habit_arc.core.exceptions import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)


def format_whatsapp_address(value: str) -> str:
    """
    Normalise a phone number to Twilio's WhatsApp address form

    Examples:
        "+33 6 12 34 56 78" -> "whatsapp:+33612345678"
        "whatsapp:+1555" -> "whatsapp:+1555"
    """
    trimmed = value.strip()
    if trimmed.startswith("whatsapp:"):
        return trimmed
    digits = re.sub(r"[^\d+]", "", trimmed)
    normalized = digits if digits.startswith("+") else f"+{digits}"
    return f"whatsapp:{normalized}"


def is_twilio_configured() -> bool:
    """Check if Twilio credentials are available"""
    return bool(settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN)


class WhatsAppTransport:
    """Sends WhatsApp messages via Twilio"""

    def __init__(self, client: Optional[Client] = None, from_number: Optional[str] = None):
        if client is None:
            if not is_twilio_configured():
                raise ConfigurationError("Twilio configuration missing for WhatsApp")
            client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
            logger.info("Twilio client initialized successfully")
        self.client = client
        self.from_number = from_number or settings.TWILIO_WHATSAPP_FROM or TWILIO_SANDBOX_WHATSAPP_FROM

    def send(self, to_number: str, message: str) -> str:
        """
        Send a WhatsApp message via Twilio

        Args:
            to_number: Recipient number, with or without the whatsapp: prefix
            message: Message text to send

        Returns:
            Message SID from Twilio

        Raises:
            ExternalServiceError: If Twilio rejects the message
        """
        to_address = format_whatsapp_address(to_number)
        logger.info(f"[TWILIO] Sending message to {to_address}")
        try:
            twilio_message = self.client.messages.create(
                from_=format_whatsapp_address(self.from_number),
                body=message,
                to=to_address
            )
        except Exception as e:
            logger.error(f"[TWILIO] Send failed: {str(e)}")
            raise ExternalServiceError(f"Twilio error: {e}")
        logger.info(f"[TWILIO] Message sent with SID: {twilio_message.sid}")
        return twilio_message.sid
