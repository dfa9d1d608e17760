"""Sync progress Pydantic schemas for the streamed job snapshots."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from syncwatch.exceptions import SnapshotParseError

# Go's RFC3339Nano timestamps carry up to nine fractional digits
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


class JobStatus(str, Enum):
    """Coarse phase reported by the sync job."""
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class ConnectionPhase(str, Enum):
    """State of the stream subscription."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"


class MonitorPhase(str, Enum):
    """Overall lifecycle observable by the host."""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CLOSED = "closed"


class Snapshot(BaseModel):
    """
    Job state at one point in time, parsed from one stream message.

    Field names follow the snake_case wire names. The names emitted by the
    legacy email-sync backend (total_emails, is_completed, ...) are accepted
    as aliases. Snapshots are frozen: each update replaces the previous one.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    job_id: str = Field(validation_alias=AliasChoices("job_id", "account_id"))
    status: JobStatus
    total_units: int = Field(
        ge=0, validation_alias=AliasChoices("total_units", "total_emails")
    )
    processed_units: int = Field(
        ge=0, validation_alias=AliasChoices("processed_units", "processed_emails")
    )
    successful_units: int = Field(
        ge=0, validation_alias=AliasChoices("successful_units", "successful_emails")
    )
    failed_units: int = Field(
        ge=0, validation_alias=AliasChoices("failed_units", "failed_emails")
    )
    current_item_label: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("current_item_label", "current_email_subject"),
    )
    current_operation: str
    elapsed_seconds: int = Field(
        ge=0, validation_alias=AliasChoices("elapsed_seconds", "time_elapsed")
    )
    remaining_seconds_estimate: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices(
            "remaining_seconds_estimate", "estimated_time_remaining"
        ),
    )
    error_message: Optional[str] = None
    is_terminal: bool = Field(validation_alias=AliasChoices("is_terminal", "is_completed"))
    last_updated_at: datetime = Field(
        validation_alias=AliasChoices("last_updated_at", "last_updated")
    )
    started_at: datetime = Field(validation_alias=AliasChoices("started_at", "start_time"))
    ended_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("ended_at", "end_time")
    )

    @field_validator("last_updated_at", "started_at", "ended_at", mode="before")
    @classmethod
    def _truncate_nanoseconds(cls, value):
        if isinstance(value, str):
            return _EXTRA_FRACTION.sub(r"\1", value, count=1)
        return value

    @model_validator(mode="after")
    def _terminal_needs_final_status(self) -> "Snapshot":
        if self.is_terminal and not self.status.is_terminal:
            raise ValueError(
                f"is_terminal is set but status is {self.status.value!r}"
            )
        return self

    @property
    def is_completed(self) -> bool:
        """Terminal and successful."""
        return self.is_terminal and self.status == JobStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        """Terminal and failed."""
        return self.is_terminal and self.status == JobStatus.FAILED

    @classmethod
    def from_message(cls, data: str | bytes) -> "Snapshot":
        """
        Parse one message payload.

        Raises:
            SnapshotParseError: malformed JSON or a schema violation
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise SnapshotParseError(str(e)) from e
