"""Runtime settings for the hospital scheduler.

Values come from the environment; a ``.env`` file in the working directory
is loaded first so local runs don't need exported variables.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env")

# Storage
DATABASE_PATH = os.getenv("DATABASE_PATH", "./hospital.db")

# HTTP API. An empty key turns bearer auth off (local development only).
API_KEY = os.getenv("HOSPITAL_API_KEY", "")
API_BASE_URL = os.getenv("HOSPITAL_API_BASE_URL", "http://localhost:8000")
API_TIMEOUT = float(os.getenv("HOSPITAL_API_TIMEOUT", "15"))
API_HOST = os.getenv("HOSPITAL_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("HOSPITAL_API_PORT", "8000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "0") == "1"

# Scheduling
SLOT_GRANULARITY_MINUTES = 10
DEFAULT_DOCTOR_FEE = float(os.getenv("DEFAULT_DOCTOR_FEE", "500"))
