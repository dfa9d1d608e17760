"""
Sync progress monitoring.

Client side of the email-sync progress stream:
- ProgressMonitor: host-facing orchestrator
- ConnectionManager: owns the SSE subscription
- CompletionController: auto-close after a terminal snapshot
- EventLog: bounded activity log
- metrics: percentage / duration helpers
"""

from .completion import CompletionController, CompletionState
from .connection import ConnectionManager
from .event_log import EventLog
from .metrics import format_duration, format_remaining, percent_complete, status_color_class
from .monitor import ProgressMonitor
from .reducer import Reduction, reduce_snapshot
from .state import MonitorState

__all__ = [
    "CompletionController",
    "CompletionState",
    "ConnectionManager",
    "EventLog",
    "MonitorState",
    "ProgressMonitor",
    "Reduction",
    "reduce_snapshot",
    "format_duration",
    "format_remaining",
    "percent_complete",
    "status_color_class",
]
