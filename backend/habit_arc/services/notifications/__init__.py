"""
Notifications module
Reminder formatting, Web Push fan-out and Telegram/WhatsApp channel delivery
"""
from .service import (
    DeliveryOutcome,
    format_push_reminder,
    format_test_push,
    format_channel_reminder
)

__all__ = [
    'DeliveryOutcome',
    'format_push_reminder',
    'format_test_push',
    'format_channel_reminder'
]
