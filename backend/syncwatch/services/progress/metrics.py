"""
Progress metrics derived from a snapshot.

Pure functions, no state. Rendering (bars, badges) is left to the host.
"""

import math
from typing import Optional

from syncwatch.schemas.progress import JobStatus, Snapshot

_STATUS_COLORS = {
    JobStatus.CONNECTING: "blue",
    JobStatus.AUTHENTICATING: "blue",
    JobStatus.FETCHING: "blue",
    JobStatus.PROCESSING: "yellow",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
}


def percent_complete(snapshot: Optional[Snapshot]) -> int:
    """
    Percentage of units processed, clamped to [0, 100].

    Zero whenever the total is unknown, whatever processed_units says.
    Halves round up.
    """
    if snapshot is None or snapshot.total_units == 0:
        return 0
    percent = math.floor(100 * snapshot.processed_units / snapshot.total_units + 0.5)
    return max(0, min(100, percent))


def format_duration(seconds: Optional[int]) -> str:
    """Render seconds as "42s" or "3m 5s"."""
    seconds = max(0, int(seconds or 0))
    if seconds < 60:
        return f"{seconds}s"
    minutes, remainder = divmod(seconds, 60)
    return f"{minutes}m {remainder}s"


def format_remaining(snapshot: Optional[Snapshot]) -> Optional[str]:
    """Server ETA as a duration, or None when absent or zero."""
    if snapshot is None:
        return None
    estimate = snapshot.remaining_seconds_estimate
    if not estimate or estimate <= 0:
        return None
    return format_duration(estimate)


def status_color_class(status: Optional[JobStatus | str]) -> str:
    """Color scheme name for a job status; "gray" for anything unknown."""
    try:
        return _STATUS_COLORS[JobStatus(status)]
    except ValueError:
        return "gray"
