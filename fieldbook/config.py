"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "fieldbook.db"))

# ── Local time ────────────────────────────────────────────────────────────

# Reservation dates and start times are wall-clock values in this zone.
LOCAL_TZ = ZoneInfo(os.getenv("LOCAL_TZ", "Africa/Tunis"))

# ── Booking rules ─────────────────────────────────────────────────────────

# Used when the `night_start` global setting has never been written.
NIGHT_START_DEFAULT: str = os.getenv("NIGHT_START_DEFAULT", "19:00")

# A pending reservation must be confirmed within this many minutes.
CONFIRMATION_WINDOW_MINUTES: int = int(os.getenv("CONFIRMATION_WINDOW_MINUTES", "15"))

# Weekday opening time of 6-a-side and unclassified football pitches.
# The public booking page historically used 16:00, the admin form 17:00.
FOOTBALL_WEEKDAY_OPENING: str = os.getenv("FOOTBALL_WEEKDAY_OPENING", "16:00")

# ── Background sweeper ────────────────────────────────────────────────────

# How often stale pending reservations / closed subscriptions are expired (seconds).
SWEEP_INTERVAL: float = float(os.getenv("SWEEP_INTERVAL", "60"))

# ── Links ─────────────────────────────────────────────────────────────────

PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")

# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "noreply@fieldbook.local")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Set to "false" to force console-only mode even when SMTP credentials are present.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default): send if credentials are configured
      • "true" : always send (will fail if credentials are missing)
      • "false": never send, log to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)
