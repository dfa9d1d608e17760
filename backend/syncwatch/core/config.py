"""
Progress monitor configuration.

Values come from the environment (a .env file is loaded on import), with
defaults matching the sync backend's development setup.
"""

import os
from urllib.parse import quote

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_BASE_URL = "http://localhost:8081/api"
DEFAULT_AUTO_CLOSE_SECONDS = 5.0
DEFAULT_LOG_CAPACITY = 50
DEFAULT_CONNECT_TIMEOUT = 10.0


class MonitorSettings(BaseModel):
    """Settings shared by every ProgressMonitor instance."""

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="API root; the stream lives at {base_url}/accounts/{id}/sync-stream",
    )
    auto_close_delay: float = Field(
        default=DEFAULT_AUTO_CLOSE_SECONDS,
        ge=0,
        description="Grace period in seconds between a terminal snapshot and auto-close",
    )
    log_capacity: int = Field(
        default=DEFAULT_LOG_CAPACITY,
        gt=0,
        description="Maximum number of activity log entries kept",
    )
    connect_timeout: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT,
        gt=0,
        description="Seconds allowed for the stream handshake",
    )

    def stream_url(self, job_id: str) -> str:
        """Subscription target for a job (token is added as a query parameter)."""
        return f"{self.base_url.rstrip('/')}/accounts/{quote(job_id, safe='')}/sync-stream"


def load_settings() -> MonitorSettings:
    """
    Build settings from environment variables.

    Recognised variables:
        SYNC_API_BASE_URL, SYNC_AUTO_CLOSE_SECONDS,
        SYNC_LOG_CAPACITY, SYNC_CONNECT_TIMEOUT

    Raises:
        pydantic.ValidationError: if a variable holds an invalid value
    """
    return MonitorSettings(
        base_url=os.getenv("SYNC_API_BASE_URL", DEFAULT_BASE_URL),
        auto_close_delay=os.getenv("SYNC_AUTO_CLOSE_SECONDS", DEFAULT_AUTO_CLOSE_SECONDS),
        log_capacity=os.getenv("SYNC_LOG_CAPACITY", DEFAULT_LOG_CAPACITY),
        connect_timeout=os.getenv("SYNC_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
    )
