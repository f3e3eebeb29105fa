"""Client settings and configuration helpers."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv, find_dotenv


class Settings:
    """Runtime configuration loaded from environment variables.

    Defaults match the reference deployment of the try-on API. The endpoint has
    no default and must be provided via TRYON_API_ENDPOINT (or a .env file).
    """

    # Remote endpoint
    TRYON_API_ENDPOINT: str
    SAVE_TO_S3: bool

    # Per-request deadlines (seconds)
    SUBMIT_TIMEOUT_S: float
    STATUS_TIMEOUT_S: float
    SYNC_TIMEOUT_S: float
    CONNECT_TIMEOUT_S: float

    # Polling
    POLL_INTERVAL_S: float
    POLL_MAX_ATTEMPTS: int
    STATUS_CHECK_RETRIES: int

    # Inputs
    ACCEPTED_MIME: List[str]

    # Logging (CLI only)
    LOG_LEVEL: str

    def __init__(self) -> None:
        # Load .env once (supports parent directories)
        load_dotenv(find_dotenv(usecwd=True), override=False)
        self.TRYON_API_ENDPOINT = os.getenv("TRYON_API_ENDPOINT", "").strip()
        self.SAVE_TO_S3 = os.getenv("SAVE_TO_S3", "true").lower() == "true"

        self.SUBMIT_TIMEOUT_S = float(os.getenv("SUBMIT_TIMEOUT_S", "30"))
        self.STATUS_TIMEOUT_S = float(os.getenv("STATUS_TIMEOUT_S", "5"))
        self.SYNC_TIMEOUT_S = float(os.getenv("SYNC_TIMEOUT_S", "60"))
        self.CONNECT_TIMEOUT_S = float(os.getenv("CONNECT_TIMEOUT_S", "5"))

        self.POLL_INTERVAL_S = float(os.getenv("POLL_INTERVAL_S", "5"))
        # 60 attempts at 5s is roughly five minutes of polling
        self.POLL_MAX_ATTEMPTS = max(1, int(os.getenv("POLL_MAX_ATTEMPTS", "60")))
        # 0 keeps status-check failures fatal on the first error
        self.STATUS_CHECK_RETRIES = max(0, int(os.getenv("STATUS_CHECK_RETRIES", "0")))

        self.ACCEPTED_MIME = self._get_list(
            "ACCEPTED_MIME", default="image/png,image/jpeg,image/webp"
        )

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @staticmethod
    def _get_list(name: str, default: str = "") -> List[str]:
        raw = os.getenv(name, default)
        return [item.strip().lower() for item in raw.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
