"""Configuration loader for the haul intake relay."""

import os
from dotenv import load_dotenv

load_dotenv()

# Public base URL used for generated photo upload links
BASE_URL = os.getenv("BASE_URL", "https://example.com").rstrip("/")

# Spreadsheet upsert webhook (keyed by "Job ID" on the receiving side)
SHEET_WEBHOOK_URL = os.getenv("SHEET_WEBHOOK_URL", "")

# Twilio (SMS send + inbound SMS/call-status webhooks)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER", "")
TWILIO_API_BASE = os.getenv("TWILIO_API_BASE", "https://api.twilio.com/2010-04-01")

# Owner notifications
OWNER_PHONE = os.getenv("OWNER_PHONE", "")
OWNER_EMAIL = os.getenv("OWNER_EMAIL", "")

# Postmark
POSTMARK_SERVER_TOKEN = os.getenv("POSTMARK_SERVER_TOKEN", "")
POSTMARK_FROM_EMAIL = os.getenv("POSTMARK_FROM_EMAIL", "")

# Vapi inbound SMS endpoint (Twilio-style form POST, returns TwiML)
VAPI_SMS_WEBHOOK_URL = os.getenv("VAPI_SMS_WEBHOOK_URL", "")

# Outbound HTTP timeout (seconds)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

# Call -> job correlation idle TTL (hours). 0 keeps entries for the process lifetime.
CORRELATION_TTL_HOURS = float(os.getenv("CORRELATION_TTL_HOURS", "0"))

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))


def validate():
    """Warn about missing required configuration."""
    missing = []
    if not SHEET_WEBHOOK_URL:
        missing.append("SHEET_WEBHOOK_URL")
    if not (TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER):
        missing.append("TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN/TWILIO_FROM_NUMBER")
    if not OWNER_PHONE:
        missing.append("OWNER_PHONE")
    if not (POSTMARK_SERVER_TOKEN and POSTMARK_FROM_EMAIL and OWNER_EMAIL):
        missing.append("POSTMARK_SERVER_TOKEN/POSTMARK_FROM_EMAIL/OWNER_EMAIL")
    if missing:
        print(f"WARNING: Missing config: {', '.join(missing)}")
        print("Those downstream calls will be skipped. Copy .env.example to .env and fill in values.")
    return missing
