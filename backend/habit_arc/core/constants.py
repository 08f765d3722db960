"""
Application constants
"""
from datetime import date

# Every progress array is indexed from this calendar day
EPOCH_DATE = date(2025, 10, 1)


# Notification defaults when a user has no prefs row
DEFAULT_NOTIF_HOUR = 20

# Message shaping
MAX_PUSH_REMINDER_NAMES = 3
MAX_CHANNEL_REMINDER_HABITS = 5
MAX_TOP_STREAKS = 3

# Push services answer with these when a subscription no longer exists
PUSH_GONE_STATUS_CODES = frozenset({404, 410})
PUSH_TTL_SECONDS = 60 * 60 * 12

# Query limits
SUBSCRIPTION_FETCH_LIMIT = 5000
TEST_PUSH_SUBSCRIPTION_LIMIT = 5
PUSH_DELIVERY_MAX_WORKERS = 8

# Local store
IDENTITIES_KEY = "habit-arc-identities"
HABITS_KEY = "habit-arc-habits"
EXPORT_VERSION = "1.0.0"
DEFAULT_IDENTITY_COLOR = "blue"

# Scheduler
SCHEDULER_RUN_MINUTE = 0

# Outbound HTTP
HTTP_TIMEOUT_SECONDS = 10
TELEGRAM_API_BASE = "https://api.telegram.org"
RESEND_API_URL = "https://api.resend.com/emails"
TWILIO_SANDBOX_WHATSAPP_FROM = "whatsapp:+14155238886"

# Weekly report thresholds (percent)
TOP_PERFORMING_THRESHOLD = 80
STRUGGLING_THRESHOLD = 30
NEW_STREAK_MIN_DAYS = 3
