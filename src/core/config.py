"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _split_emails(value: str) -> list[str]:
    return [email.strip() for email in value.split(",") if email.strip()]


# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(os.environ.get("VACATION_DB_PATH", PROJECT_ROOT / "data" / "db" / "vacations.db"))
OUTPUT_DIR = PROJECT_ROOT / "output"

# =============================================================================
# TIME
# =============================================================================

# Month boundaries and half-day windows are computed in this zone
APP_TIMEZONE = os.environ.get("APP_TIMEZONE", "Europe/Monaco")

WORKDAY_START = "09:00"
MIDDAY_START = "13:00"
MIDDAY_END = "14:00"
WORKDAY_END = "18:00"

# =============================================================================
# EMAIL CONFIGURATION
# =============================================================================

FROM_EMAIL = os.environ.get("FROM_EMAIL", "vacations@stars.mc")
ADMIN_EMAILS = _split_emails(os.environ.get("ADMIN_EMAILS", "johnny@stars.mc,daniel@stars.mc"))
ACCOUNTING_EMAILS = _split_emails(os.environ.get("ACCOUNTING_EMAIL", "compta@stars.mc,pierre@stars.mc"))
ERROR_EMAIL = os.environ.get("ERROR_EMAIL", "it@stars.mc")
APP_BASE_URL = os.environ.get("APP_BASE_URL", "https://vacation.stars.mc")

# =============================================================================
# REMINDERS
# =============================================================================

REMINDER_ENABLED = os.environ.get("REMINDER_ENABLED", "true").lower() != "false"
REMINDER_INTERVAL_DAYS = int(os.environ.get("REMINDER_INTERVAL_DAYS", "5"))

# =============================================================================
# GOOGLE CALENDAR CONFIGURATION
# =============================================================================

GOOGLE_CALENDAR_ID = os.environ.get("GOOGLE_CALENDAR_ID", "primary")
GOOGLE_SERVICE_ACCOUNT_KEY = os.environ.get("GOOGLE_SERVICE_ACCOUNT_KEY", "")
# Service account the target calendar has been shared with
GOOGLE_EXPECTED_CLIENT_EMAIL = os.environ.get("GOOGLE_EXPECTED_CLIENT_EMAIL", "")
GOOGLE_CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]
ICAL_UID_DOMAIN = os.environ.get("ICAL_UID_DOMAIN", "stars.mc")

# Pause between sequential calendar calls in bulk scripts
SYNC_DELAY_SECONDS = float(os.environ.get("SYNC_DELAY_SECONDS", "0.1"))

# =============================================================================
# COMPANIES
# =============================================================================

COMPANY_DISPLAY_NAMES = {
    "STARS_MC": "Stars MC",
    "STARS_YACHTING": "Stars Yachting",
    "STARS_REAL_ESTATE": "Stars Real Estate",
    "LE_PNEU": "Le Pneu",
    "MIDI_PNEU": "Midi Pneu",
    "STARS_AVIATION": "Stars Aviation",
}

# Google Calendar color ids (1-11)
COMPANY_COLOR_IDS = {
    "STARS_MC": "1",
    "STARS_YACHTING": "2",
    "STARS_REAL_ESTATE": "3",
    "LE_PNEU": "4",
    "MIDI_PNEU": "5",
    "STARS_AVIATION": "6",
}
DEFAULT_COLOR_ID = "1"

# =============================================================================
# DATABASE
# =============================================================================

BATCH_SIZE = 500  # Max writes committed together

# =============================================================================
# REPORT CONFIGURATION
# =============================================================================

SUMMARY_CSV_HEADERS = ["employee", "company", "type", "status", "startDate", "endDate", "days"]
REVIEWED_CSV_HEADERS = [
    "ID", "User Email", "User Name", "Start Date", "End Date", "Reason",
    "Company", "Type", "Status", "Created At", "Reviewed By",
    "Reviewer Email", "Reviewed At", "Admin Comment",
]
TOTALS_TOLERANCE = 0.01

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")

# =============================================================================
# API CONFIGURATION
# =============================================================================

VACATION_API_KEY = os.environ.get("VACATION_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
