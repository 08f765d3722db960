"""
External integrations module
Handles connections to external services (Web Push, Telegram, WhatsApp, email)
"""
from . import webpush
from . import telegram
from . import whatsapp
from . import email

__all__ = ['webpush', 'telegram', 'whatsapp', 'email']
