"""
Snapshot reducer.

Decides what an incoming snapshot does to the monitor. Pure: the
orchestrator applies the returned Reduction.
"""

from dataclasses import dataclass
from typing import Tuple

from syncwatch.schemas.progress import JobStatus, Snapshot

UNKNOWN_ERROR = "Unknown error"


@dataclass(frozen=True)
class Reduction:
    """
    Outcome of one snapshot.

    accepted: False when the snapshot is dropped (terminal state reached)
    log_lines: activity log lines to append, in order
    arm_auto_close: the snapshot is terminal
    completed: the snapshot is terminal with status completed
    """

    accepted: bool
    log_lines: Tuple[str, ...] = ()
    arm_auto_close: bool = False
    completed: bool = False


DROPPED = Reduction(accepted=False)


def reduce_snapshot(terminal_seen: bool, snapshot: Snapshot) -> Reduction:
    """
    Merge a snapshot into the session.

    The terminal state is absorbing: once a terminal snapshot has been
    accepted, later ones are dropped so a finished job cannot be shown as
    running again.
    """
    if terminal_seen:
        return DROPPED

    lines = []
    if snapshot.current_operation:
        lines.append(snapshot.current_operation)

    if not snapshot.is_terminal:
        return Reduction(accepted=True, log_lines=tuple(lines))

    if snapshot.status == JobStatus.COMPLETED:
        lines.append(
            f"Sync completed! {snapshot.successful_units} emails synced successfully"
        )
    elif snapshot.status == JobStatus.FAILED:
        lines.append(f"Sync failed: {snapshot.error_message or UNKNOWN_ERROR}")

    return Reduction(
        accepted=True,
        log_lines=tuple(lines),
        arm_auto_close=True,
        completed=snapshot.status == JobStatus.COMPLETED,
    )
