"""
Connection Manager for the sync progress stream.

Owns at most one live subscription. Each subscription runs two tasks:
a reader (httpx stream -> queue) and a dispatcher (queue -> callbacks).
Only the dispatcher invokes callbacks, so there is a single writer.
"""

import asyncio
import logging
from typing import Callable, Optional

import httpx

from syncwatch.core.config import MonitorSettings
from syncwatch.exceptions import MissingAuthError, TransportError
from .transport import DEFAULT_EVENT, pump_stream

logger = logging.getLogger(__name__)


class _Subscription:
    """Per-open() resources; a closed subscription is never reopened."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.reader: Optional[asyncio.Task] = None
        self.dispatcher: Optional[asyncio.Task] = None

    def tasks(self) -> list[asyncio.Task]:
        return [t for t in (self.reader, self.dispatcher) if t is not None]


class ConnectionManager:
    """
    Manages the event-stream subscription for one monitored job.

    Callbacks (all invoked from the dispatcher task, in stream order):
        on_open():                 stream established
        on_message(data):          payload of one "message" event
        on_error(TransportError):  connection failed; no reconnection
        on_eof():                  server closed the stream
    """

    def __init__(
        self,
        settings: MonitorSettings,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Callable[[TransportError], None],
        on_eof: Callable[[], None],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_eof = on_eof
        self._transport = transport
        self._subscription: Optional[_Subscription] = None

    @property
    def is_active(self) -> bool:
        """True while a subscription exists and has not been closed."""
        return self._subscription is not None and not self._subscription.closed

    def open(self, job_id: str, token: Optional[str]) -> None:
        """
        Start subscribing to a job's progress stream.

        Returns immediately; the handshake completes in the background and
        is reported through on_open / on_error.

        Raises:
            MissingAuthError: token is empty (no request is made)
        """
        if not token:
            raise MissingAuthError()

        self.close()

        subscription = _Subscription(job_id)
        self._subscription = subscription
        subscription.reader = asyncio.create_task(
            self._read(subscription, token), name=f"sync-stream-reader:{job_id}"
        )
        subscription.dispatcher = asyncio.create_task(
            self._dispatch(subscription), name=f"sync-stream-dispatch:{job_id}"
        )
        logger.info("Connecting to sync progress stream", extra={'job_id': job_id})

    def close(self) -> None:
        """
        Tear down the current subscription.

        Idempotent and safe from any context: host, timer callback, or a
        callback running inside the dispatcher. Items still queued are
        discarded.
        """
        subscription = self._subscription
        if subscription is None or subscription.closed:
            return

        subscription.closed = True
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None

        for task in subscription.tasks():
            if task is not current and not task.done():
                task.cancel()

        logger.info("Closed sync progress stream", extra={'job_id': subscription.job_id})

    async def aclose(self) -> None:
        """close(), then wait for both tasks to finish."""
        subscription = self._subscription
        self.close()
        if subscription is None:
            return

        current = asyncio.current_task()
        pending = [t for t in subscription.tasks() if t is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # =========================================================================
    # Tasks
    # =========================================================================

    async def _read(self, subscription: _Subscription, token: str) -> None:
        timeout = httpx.Timeout(self._settings.connect_timeout, read=None)
        async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
            await pump_stream(
                client,
                self._settings.stream_url(subscription.job_id),
                token,
                subscription.queue,
                job_id=subscription.job_id,
            )

    async def _dispatch(self, subscription: _Subscription) -> None:
        while True:
            item = await subscription.queue.get()
            if subscription.closed:
                break

            event = item["event"]
            try:
                if event == "open":
                    self._on_open()
                elif event == "sse":
                    sse = item["data"]
                    if sse.event != DEFAULT_EVENT:
                        logger.debug(
                            f"Ignoring '{sse.event}' event",
                            extra={'job_id': subscription.job_id},
                        )
                        continue
                    self._on_message(sse.data)
                elif event == "error":
                    self._on_error(item["data"])
                    break
                elif event == "eof":
                    self._on_eof()
                    break
            except Exception as e:
                logger.error(
                    f"Error in sync stream callback: {e}",
                    exc_info=True,
                    extra={'job_id': subscription.job_id, 'error': str(e)},
                )

            if subscription.closed:
                break
