"""Runtime settings read from the environment (and a local .env file)."""
from __future__ import annotations
import os
from dotenv import load_dotenv

load_dotenv()

API_KEY = os.getenv("CLINIC_API_KEY", "")

# Remote records backend. When unset the service keeps everything in memory.
RECORDS_BASE_URL = os.getenv("RECORDS_BASE_URL", "")
RECORDS_TOKEN_URL = os.getenv("RECORDS_TOKEN_URL", f"{RECORDS_BASE_URL}/oauth2/token")
RECORDS_CLIENT_ID = os.getenv("RECORDS_CLIENT_ID")
RECORDS_CLIENT_SECRET = os.getenv("RECORDS_CLIENT_SECRET")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Applied to legacy records that only carry a single appointmentTime
DEFAULT_DURATION_MINUTES = int(os.getenv("DEFAULT_DURATION_MINUTES", "60"))

WORKDAY_START_HOUR = 8
WORKDAY_END_HOUR = 18
