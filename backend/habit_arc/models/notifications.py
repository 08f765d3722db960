"""
Pydantic models for notification preferences and endpoints
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from habit_arc.core.config import settings
from habit_arc.core.constants import DEFAULT_NOTIF_HOUR


class NotificationChannel(str, Enum):
    """Delivery channel a user picked for reminders"""
    NONE = "none"
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    WEBPUSH = "webpush"


class UserPrefs(BaseModel):
    """Row of the user_prefs table"""
    model_config = ConfigDict(extra="ignore")

    notif_enabled: bool = False
    notif_channel: NotificationChannel = NotificationChannel.NONE
    notif_hour: int = Field(DEFAULT_NOTIF_HOUR, ge=0, le=23)
    notif_timezone: str = Field(default_factory=lambda: settings.DEFAULT_TIMEZONE)
    telegram_chat_id: Optional[str] = None
    telegram_username: Optional[str] = None
    whatsapp_number: Optional[str] = None
    last_notif_sent_at: Optional[str] = None
    weekly_email_enabled: bool = False
    weekly_email_day: int = Field(0, ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    weekly_email_hour: int = Field(9, ge=0, le=23)

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> "UserPrefs":
        """Build prefs from a database row, dropping NULL columns so defaults apply"""
        if not row:
            return cls()
        return cls(**{k: v for k, v in row.items() if v is not None})


class PushSubscriptionKeys(BaseModel):
    """Encryption keys of a browser push subscription"""
    p256dh: Optional[str] = None
    auth: Optional[str] = None


class PushSubscriptionPayload(BaseModel):
    """Raw PushSubscription object as serialised by the browser"""
    model_config = ConfigDict(extra="allow")

    endpoint: Optional[str] = None
    keys: PushSubscriptionKeys = Field(default_factory=PushSubscriptionKeys)


class SubscribeRequest(BaseModel):
    """Body of POST /api/push/subscribe"""
    subscription: Optional[PushSubscriptionPayload] = None


class UnsubscribeRequest(BaseModel):
    """Body of POST /api/push/unsubscribe"""
    endpoint: Optional[str] = None


class PushPayload(BaseModel):
    """JSON payload the service worker turns into a notification"""
    title: str
    body: str
    icon: str = "/favicon.ico"
    badge: str = "/favicon.ico"
    url: str = "/"


class NotificationMode(str, Enum):
    """Invocation mode of the channel notification endpoint"""
    SINGLE = "single"
    FANOUT = "fanout"


class NotificationRequest(BaseModel):
    """Body of POST /notifications/send"""
    model_config = ConfigDict(populate_by_name=True)

    # Plain string so unsupported modes reach the handler and get a {status, reason} body
    mode: str = NotificationMode.SINGLE.value
    user_id: Optional[Union[str, List[str]]] = Field(None, alias="userId")
    preview_message: Optional[str] = Field(None, alias="previewMessage")
    reason: str = "manual-test"
