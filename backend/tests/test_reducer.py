from __future__ import annotations

from conftest import make_payload
from syncwatch.schemas.progress import Snapshot
from syncwatch.services.progress.reducer import DROPPED, reduce_snapshot


def snap(**overrides) -> Snapshot:
    return Snapshot.model_validate(make_payload(**overrides))


def test_non_terminal_logs_current_operation():
    result = reduce_snapshot(False, snap(current_operation="Fetching emails from server"))

    assert result.accepted
    assert result.log_lines == ("Fetching emails from server",)
    assert not result.arm_auto_close
    assert not result.completed


def test_empty_operation_adds_no_log_line():
    result = reduce_snapshot(False, snap(current_operation=""))

    assert result.accepted
    assert result.log_lines == ()


def test_completed_snapshot_summarises_and_arms():
    result = reduce_snapshot(
        False,
        snap(
            status="completed",
            is_terminal=True,
            processed_units=100,
            successful_units=97,
            failed_units=3,
            current_operation="Sync completed successfully",
        ),
    )

    assert result.log_lines == (
        "Sync completed successfully",
        "Sync completed! 97 emails synced successfully",
    )
    assert result.arm_auto_close
    assert result.completed


def test_failed_snapshot_uses_error_message():
    result = reduce_snapshot(
        False, snap(status="failed", is_terminal=True, error_message="IMAP login rejected")
    )

    assert result.log_lines == ("Sync failed: IMAP login rejected",)
    assert result.arm_auto_close
    assert not result.completed


def test_failed_snapshot_without_message():
    result = reduce_snapshot(False, snap(status="failed", is_terminal=True))

    assert result.log_lines == ("Sync failed: Unknown error",)


def test_terminal_state_is_absorbing():
    late = snap(status="processing", current_operation="Processing email 3 of 10")

    assert reduce_snapshot(True, late) is DROPPED
    assert not DROPPED.accepted
