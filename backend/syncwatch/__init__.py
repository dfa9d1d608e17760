"""Client-side monitor for email-sync job progress streams."""

from syncwatch.exceptions import ErrorKind
from syncwatch.schemas.progress import ConnectionPhase, JobStatus, MonitorPhase, Snapshot
from syncwatch.services.progress import MonitorState, ProgressMonitor

__version__ = "1.0.0"

__all__ = [
    "ConnectionPhase",
    "ErrorKind",
    "JobStatus",
    "MonitorPhase",
    "MonitorState",
    "ProgressMonitor",
    "Snapshot",
]
