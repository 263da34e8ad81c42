# config.py
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

BACKEND_SHEET = "sheet"
BACKEND_DATABASE = "database"
BACKEND_MEMORY = "memory"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment (and .env)."""
    persistence_backend: str = BACKEND_SHEET
    sheet_api_url: Optional[str] = None
    database_url: str = "sqlite:///./ict_booking.db"
    http_timeout_seconds: float = 30.0
    timezone: str = "Asia/Kuala_Lumpur"
    log_level: str = "INFO"
    sync_failure_history: int = 50


def get_settings() -> Settings:
    return Settings(
        persistence_backend=os.getenv("PERSISTENCE_BACKEND", BACKEND_SHEET).strip().lower(),
        sheet_api_url=os.getenv("SHEET_API_URL") or None,
        database_url=os.getenv("DATABASE_URL", "sqlite:///./ict_booking.db"),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", 30)),
        timezone=os.getenv("BOOKING_TIMEZONE", "Asia/Kuala_Lumpur"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        sync_failure_history=int(os.getenv("SYNC_FAILURE_HISTORY", 50)),
    )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
