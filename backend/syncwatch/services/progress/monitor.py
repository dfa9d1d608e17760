"""
Progress Monitor: the only object a UI host talks to.

Composes the connection manager, reducer, event log and completion
controller for one job at a time.

Usage:
    monitor = ProgressMonitor()
    monitor.subscribe(render)              # called with a MonitorState
    monitor.on_completed(refresh_accounts)
    monitor.open(account_id, token)        # inside the running event loop
    ...
    monitor.close()                        # user dismissed the dialog
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

import httpx

from syncwatch.core.config import MonitorSettings, load_settings
from syncwatch.exceptions import (
    MissingAuthError,
    MonitorError,
    SnapshotParseError,
    TransportError,
)
from syncwatch.schemas.progress import ConnectionPhase, Snapshot
from .completion import CompletionController
from .connection import ConnectionManager
from .event_log import EventLog
from .reducer import reduce_snapshot
from .state import MonitorState

logger = logging.getLogger(__name__)

CONNECTED_LOG_LINE = "Connected to sync progress stream"

StateCallback = Callable[[MonitorState], None]
CompletedCallback = Callable[[], None]


class ProgressMonitor:
    """
    Watches one sync job's progress stream.

    All errors (missing token, bad messages, dropped connections, failed
    jobs) surface as MonitorState published to subscribers; nothing is
    raised to the host except ValueError for an empty job id.
    """

    def __init__(
        self,
        settings: Optional[MonitorSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._settings = settings or load_settings()
        self._log = EventLog(self._settings.log_capacity, clock=clock)
        self._completion = CompletionController(self._settings.auto_close_delay, clock=clock)
        self._connection = ConnectionManager(
            self._settings,
            on_open=self._handle_open,
            on_message=self._handle_message,
            on_error=self._handle_error,
            on_eof=self._handle_eof,
            transport=transport,
        )

        self._job_id: Optional[str] = None
        self._current: Optional[Snapshot] = None
        self._phase = ConnectionPhase.IDLE
        self._error: Optional[MonitorError] = None
        self._completed_notified = False
        self._closed_event: Optional[asyncio.Event] = None
        # Bumped by every open(); callbacks from an older session are stale
        self._session = 0

        self._subscribers: List[StateCallback] = []
        self._completed_callbacks: List[CompletedCallback] = []

    # =========================================================================
    # Host API
    # =========================================================================

    @property
    def state(self) -> MonitorState:
        """Current state as an immutable value."""
        return MonitorState(
            job_id=self._job_id,
            current=self._current,
            connection_phase=self._phase,
            log=self._log.snapshot(),
            auto_close_deadline=self._completion.deadline,
            error_message=self._error.message if self._error else None,
            connection_error=self._error.kind if self._error else None,
        )

    def open(self, job_id: str, token: Optional[str]) -> None:
        """
        Start monitoring a job.

        Any previous subscription is closed first and the activity log is
        reset: switching jobs starts from a clean slate. Must be called
        from inside the running event loop.

        Raises:
            ValueError: job_id is empty
        """
        if not job_id or not job_id.strip():
            raise ValueError("job_id must be a non-empty string")

        if self._connection.is_active:
            logger.info(
                f"Switching sync monitor to job_id={job_id}", extra={'job_id': self._job_id}
            )

        self._completion.reset()
        self._connection.close()
        # The previous session is over, release anyone waiting on it
        self._signal_closed()

        self._session += 1
        self._job_id = job_id
        self._current = None
        self._error = None
        self._completed_notified = False
        self._log.clear()
        self._closed_event = asyncio.Event()

        try:
            self._connection.open(job_id, token)
        except MissingAuthError as e:
            logger.warning(f"Cannot monitor job: {e.message}", extra={'job_id': job_id})
            self._fail(e)
            return

        self._phase = ConnectionPhase.CONNECTING
        self._publish()

    def close(self) -> None:
        """
        Stop monitoring. Idempotent.

        Cancels a pending auto-close before releasing the subscription so
        the timer can never fire on a torn-down monitor.
        """
        self._completion.cancel()
        self._connection.close()

        if self._phase in (ConnectionPhase.IDLE, ConnectionPhase.CLOSED):
            return

        self._phase = ConnectionPhase.CLOSED
        logger.info("Sync monitor closed", extra={'job_id': self._job_id})
        self._publish()
        self._signal_closed()

    async def aclose(self) -> None:
        """close(), then wait until the stream request is fully torn down."""
        self.close()
        await self._connection.aclose()

    async def wait_closed(self) -> MonitorState:
        """Wait until the session is closed or has failed to connect."""
        if self._closed_event is not None:
            await self._closed_event.wait()
        return self.state

    def subscribe(self, on_change: StateCallback) -> Callable[[], None]:
        """
        Receive the state after every mutation, synchronously and in order.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(on_change)

        def unsubscribe() -> None:
            if on_change in self._subscribers:
                self._subscribers.remove(on_change)

        return unsubscribe

    def on_completed(self, callback: CompletedCallback) -> Callable[[], None]:
        """
        Run callback once per session when the job completes successfully.

        Returns:
            A function that removes the callback
        """
        self._completed_callbacks.append(callback)

        def remove() -> None:
            if callback in self._completed_callbacks:
                self._completed_callbacks.remove(callback)

        return remove

    async def __aenter__(self) -> "ProgressMonitor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # =========================================================================
    # Connection callbacks (dispatcher task)
    # =========================================================================

    def _handle_open(self) -> None:
        session = self._session
        # Phase first so subscribers see OPEN before the log line that announces it
        self._phase = ConnectionPhase.OPEN
        self._error = None
        self._publish()
        if self._is_live(session):
            self._append_log(CONNECTED_LOG_LINE)

    def _handle_message(self, data: str) -> None:
        session = self._session
        try:
            snapshot = Snapshot.from_message(data)
        except SnapshotParseError as e:
            logger.warning(
                f"Failed to parse sync progress data: {e.reason}", extra={'job_id': self._job_id}
            )
            self._append_log(e.message)
            return

        if snapshot.job_id != self._job_id:
            logger.warning(
                f"Snapshot for job_id={snapshot.job_id} received on another job's stream",
                extra={'job_id': self._job_id},
            )

        reduction = reduce_snapshot(self._terminal_seen, snapshot)
        if not reduction.accepted:
            logger.debug(
                f"Dropping {snapshot.status.value} snapshot after terminal state",
                extra={'job_id': self._job_id},
            )
            return

        self._current = snapshot
        self._publish()

        # Subscribers may close or reopen the monitor from any publish below
        for line in reduction.log_lines:
            if not self._is_live(session):
                return
            self._append_log(line)

        if not self._is_live(session):
            return

        if reduction.arm_auto_close and self._completion.arm(self._auto_close):
            self._publish()
            if not self._is_live(session):
                return

        if reduction.completed and not self._completed_notified:
            self._completed_notified = True
            logger.info("Sync completed", extra={'job_id': self._job_id})
            self._notify_completed()

    def _handle_error(self, error: TransportError) -> None:
        logger.warning(
            f"Sync progress connection error: {error}",
            extra={'job_id': self._job_id, 'error': str(error)},
        )
        self._fail(error)

    def _handle_eof(self) -> None:
        if self._terminal_seen:
            logger.info("Stream ended after terminal snapshot", extra={'job_id': self._job_id})
            return
        self._handle_error(TransportError(reason="stream closed by server"))

    def _auto_close(self) -> None:
        self.close()

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def _terminal_seen(self) -> bool:
        return self._current is not None and self._current.is_terminal

    def _is_live(self, session: int) -> bool:
        """True while `session` is still the current, unclosed subscription."""
        return session == self._session and self._connection.is_active

    def _fail(self, error: MonitorError) -> None:
        self._completion.cancel()
        self._connection.close()
        self._error = error
        self._phase = ConnectionPhase.ERRORED
        self._publish()
        self._signal_closed()

    def _signal_closed(self) -> None:
        if self._closed_event is not None:
            self._closed_event.set()

    def _append_log(self, line: str) -> None:
        self._log.append(line)
        self._publish()

    def _publish(self) -> None:
        if not self._subscribers:
            return
        state = self.state
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Error in sync monitor subscriber: {e}", exc_info=True)

    def _notify_completed(self) -> None:
        for callback in list(self._completed_callbacks):
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in sync completed callback: {e}", exc_info=True)
