"""Configuration for the MediChannel booking service.

Business constants live here as module-level values; deployment settings
(backend credentials, secret key, log level) are read from the environment.
Modify as needed without touching code.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "MediChannel"

# Default doctor schedule template (24h labels, lunch break 12:00-14:00)
DEFAULT_SCHEDULE_SLOTS = [
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
]

# Presentation grid shown to patients when booking (12h labels)
BOOKING_TIME_SLOTS = [
    "9:00 AM", "9:30 AM", "10:00 AM", "10:30 AM",
    "11:00 AM", "11:30 AM", "2:00 PM", "2:30 PM",
    "3:00 PM", "3:30 PM", "4:00 PM", "4:30 PM",
]

MAX_BOOKING_DAYS_AHEAD = 30
WEEKEND_DAYS = (5, 6)  # date.weekday(): Saturday, Sunday

SPECIALIZATIONS = [
    "Cardiology", "Neurology", "Dermatology", "Orthopedics",
    "Pediatrics", "Gastroenterology", "Ophthalmology", "ENT",
    "Gynecology", "Psychiatry", "General Medicine", "Surgery",
]
ALL_SPECIALIZATIONS = "all"

# Fallbacks for incomplete doctor records
DEFAULT_SPECIALIZATION = "General Medicine"
DEFAULT_HOSPITAL = "Hospital"
DEFAULT_CONSULTATION_FEE = 2500
DEFAULT_RATING = 4.5
CURRENCY = "LKR"

# Dashboard sizes
RECENT_APPOINTMENTS_LIMIT = 4
TOP_DOCTORS_LIMIT = 3

# Password hashing
BCRYPT_ROUNDS = 10
DEMO_PASSWORD = "password"

# HTTP client for the hosted backend
HTTP_TIMEOUT_SECONDS = 15
HTTP_MAX_RETRIES = 3
CIRCUIT_FAILURE_THRESHOLD = 5
CIRCUIT_TIMEOUT_SECONDS = 60

# API server
API_PORT = int(os.getenv("MEDICHANNEL_PORT", "5000"))


@dataclass(frozen=True)
class Settings:
    """Deployment settings resolved from the environment."""
    backend_url: Optional[str] = None
    backend_api_key: Optional[str] = None
    secret_key: str = "dev-secret-change-me"
    log_level: str = "INFO"

    @property
    def backend_configured(self) -> bool:
        """Both URL and key present; otherwise the mock store is used."""
        return bool(self.backend_url and self.backend_api_key)


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    Missing backend credentials are a supported mode (demo/mock), not an error.

    Returns:
        Settings instance
    """
    return Settings(
        backend_url=os.getenv("SUPABASE_URL") or None,
        backend_api_key=os.getenv("SUPABASE_ANON_KEY") or None,
        secret_key=os.getenv("MEDICHANNEL_SECRET_KEY", "dev-secret-change-me"),
        log_level=os.getenv("MEDICHANNEL_LOG_LEVEL", "INFO"),
    )
