"""
funnel.settings
===============

Configuration settings for the Funnel application.

Plain module constants cover the process‑level knobs (database file, API
host/port) and can be overridden via ``FUNNEL_*`` environment variables.
Integration settings live on the pydantic :class:`Settings` model which also
reads a local ``.env`` file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# Database settings
# ---------------------------------------------------------------------------
DB_FILE = os.environ.get("FUNNEL_DB_FILE", str(BASE_DIR / "funnel.db"))
DB_URL = os.environ.get("FUNNEL_DB_URL", f"sqlite:///{DB_FILE}")
DB_ECHO = os.environ.get("FUNNEL_DB_ECHO", "False").lower() == "true"

# API settings
# ---------------------------------------------------------------------------
API_HOST = os.environ.get("FUNNEL_API_HOST", "127.0.0.1")
API_PORT = int(os.environ.get("FUNNEL_API_PORT", "8000"))
API_DEBUG = os.environ.get("FUNNEL_API_DEBUG", "False").lower() == "true"

# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("FUNNEL_LOG_LEVEL", "INFO").upper()


# ---------------------------------------------------------------------------
# Pydantic settings model for integrations
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Pydantic model for application settings, loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FUNNEL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Slack incoming webhook; stage notifications are off when unset
    slack_webhook_url: Optional[HttpUrl] = Field(
        default=None, description="Slack incoming-webhook URL for pipeline updates"
    )
    slack_timeout: float = Field(10.0, description="Slack webhook timeout in seconds")

    # Activity feed
    activity_feed_limit: int = Field(
        20, ge=1, le=500, description="Default number of entries returned by the activity feed"
    )


# Initialize settings
settings = Settings()
