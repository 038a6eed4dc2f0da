"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "courtbook.db"))

# Seconds a writer waits on a locked database before giving up.
DB_TIMEOUT: float = float(os.getenv("DB_TIMEOUT", "5"))

# ── Calendar ──────────────────────────────────────────────────────────────

CALENDAR_START_HOUR: int = int(os.getenv("CALENDAR_START_HOUR", "7"))
CALENDAR_END_HOUR: int = int(os.getenv("CALENDAR_END_HOUR", "22"))
SLOT_DURATION_MINUTES: int = int(os.getenv("SLOT_DURATION_MINUTES", "30"))
DEFAULT_BOOKING_DURATION_MINUTES: int = int(
    os.getenv("DEFAULT_BOOKING_DURATION_MINUTES", "90")
)

# ── Recurrence ────────────────────────────────────────────────────────────

# Hard ceiling on calendar steps walked while expanding a pattern.
RECURRENCE_MAX_ITERATIONS: int = int(os.getenv("RECURRENCE_MAX_ITERATIONS", "100"))

# Largest `occurrences` value accepted when creating a recurring series.
RECURRENCE_MAX_OCCURRENCES: int = int(os.getenv("RECURRENCE_MAX_OCCURRENCES", "52"))

# How many dates the form preview shows.
RECURRENCE_PREVIEW_COUNT: int = int(os.getenv("RECURRENCE_PREVIEW_COUNT", "5"))

# Default horizon when regenerating a group's weekly bookings.
GROUP_WEEKS_AHEAD: int = int(os.getenv("GROUP_WEEKS_AHEAD", "4"))
