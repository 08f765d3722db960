"""
Web Push Service - VAPID-signed delivery to browser push endpoints
"""
from typing import Any, Dict, Optional
import json
import logging

from pywebpush import WebPushException, webpush

from habit_arc.core.config import settings
from habit_arc.core.constants import PUSH_GONE_STATUS_CODES, PUSH_TTL_SECONDS
from habit_arc.core.exceptions import ConfigurationError
from habit_arc.models.notifications import PushPayload
from habit_arc.services.notifications.service import DeliveryOutcome, FAILED, GONE, SENT

logger = logging.getLogger(__name__)


def is_webpush_configured() -> bool:
    """Check if VAPID keys are available"""
    return bool(settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY)


class WebPushSender:
    """
    Sends push payloads to stored browser subscriptions

    send() never raises for delivery failures; it reports them as outcomes.
    """

    def __init__(self, private_key: Optional[str] = None, subject: Optional[str] = None):
        self.private_key = private_key or settings.VAPID_PRIVATE_KEY
        self.subject = subject or settings.VAPID_SUBJECT
        if not self.private_key:
            raise ConfigurationError("Missing VAPID keys")

    def send(self, subscription: Dict[str, Any], payload: PushPayload) -> DeliveryOutcome:
        """
        Deliver one payload to one subscription

        Args:
            subscription: Raw PushSubscription JSON (endpoint + keys)
            payload: Notification payload

        Returns:
            DeliveryOutcome with status 'sent', 'gone' (404/410) or 'failed'
        """
        endpoint = subscription.get("endpoint", "")
        try:
            webpush(
                subscription_info=subscription,
                data=json.dumps(payload.model_dump(), ensure_ascii=False),
                vapid_private_key=self.private_key,
                vapid_claims={"sub": self.subject},
                ttl=PUSH_TTL_SECONDS,
            )
            return DeliveryOutcome(target=endpoint, status=SENT)
        except WebPushException as e:
            response = getattr(e, "response", None)
            status_code = getattr(response, "status_code", None)
            if status_code in PUSH_GONE_STATUS_CODES:
                logger.info(f"[WEBPUSH] Subscription gone ({status_code}): {endpoint[:60]}")
                return DeliveryOutcome(target=endpoint, status=GONE, status_code=status_code, error=str(e))
            logger.warning(f"[WEBPUSH] Delivery failed ({status_code}): {e}")
            return DeliveryOutcome(target=endpoint, status=FAILED, status_code=status_code, error=str(e))
        except Exception as e:
            logger.error(f"[WEBPUSH] Unexpected delivery error: {e}")
            return DeliveryOutcome(target=endpoint, status=FAILED, error=str(e))
