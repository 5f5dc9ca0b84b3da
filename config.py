# config.py
import logging
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SECRET_KEY = "your-secret-key"

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = os.getenv("DEBUG", "true" if ENVIRONMENT == "development" else "false").lower() == "true"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./budget.db")

SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()

SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
TASK_REMINDER_INTERVAL_MINUTES = int(os.getenv("TASK_REMINDER_INTERVAL_MINUTES", 60))

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def is_production() -> bool:
    return ENVIRONMENT == "production"


def validate_settings():
    """Fail fast on settings that are unsafe outside development."""
    if is_production() and SECRET_KEY == DEFAULT_SECRET_KEY:
        raise RuntimeError("SECRET_KEY must be set in production")


def configure_logging():
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    # apscheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
