"""Read-only monitor state handed to the host."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from syncwatch.exceptions import ErrorKind
from syncwatch.schemas.progress import ConnectionPhase, MonitorPhase, Snapshot
from . import metrics


@dataclass(frozen=True)
class MonitorState:
    """
    Everything the host needs to render one monitored job.

    A new instance is published after every mutation; instances are never
    modified, so the host can keep them around freely.
    """

    job_id: Optional[str] = None
    current: Optional[Snapshot] = None
    connection_phase: ConnectionPhase = ConnectionPhase.IDLE
    log: Tuple[str, ...] = ()
    auto_close_deadline: Optional[datetime] = None
    error_message: Optional[str] = None
    connection_error: Optional[ErrorKind] = None

    @property
    def phase(self) -> MonitorPhase:
        if self.connection_phase is ConnectionPhase.ERRORED:
            return MonitorPhase.FAILED
        if self.connection_phase is ConnectionPhase.CLOSED:
            return MonitorPhase.CLOSED
        if self.connection_phase is ConnectionPhase.IDLE:
            return MonitorPhase.IDLE
        if self.connection_phase is ConnectionPhase.CONNECTING:
            return MonitorPhase.CONNECTING
        if self.current is not None and self.current.is_completed:
            return MonitorPhase.COMPLETED
        if self.current is not None and self.current.is_failed:
            return MonitorPhase.FAILED
        return MonitorPhase.STREAMING

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        """Connection-level error if any, else JOB_FAILURE for a failed job."""
        if self.connection_error is not None:
            return self.connection_error
        if self.current is not None and self.current.is_failed:
            return ErrorKind.JOB_FAILURE
        return None

    @property
    def is_terminal(self) -> bool:
        return self.current is not None and self.current.is_terminal

    @property
    def is_dismissable(self) -> bool:
        """False while connecting or while a job is still running."""
        return self.phase not in (MonitorPhase.CONNECTING, MonitorPhase.STREAMING)

    @property
    def percent_complete(self) -> int:
        return metrics.percent_complete(self.current)

    @property
    def elapsed_label(self) -> Optional[str]:
        if self.current is None:
            return None
        return metrics.format_duration(self.current.elapsed_seconds)

    @property
    def remaining_label(self) -> Optional[str]:
        return metrics.format_remaining(self.current)

    @property
    def status_color(self) -> str:
        return metrics.status_color_class(self.current.status if self.current else None)
