"""Shared fixtures: an in-process SSE server built on httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from syncwatch.core.config import MonitorSettings
from syncwatch.services.progress import ProgressMonitor

JOB_ID = "5f0c6a9e-acct-1"
TOKEN = "tok/en+with=chars"


def make_payload(**overrides: Any) -> Dict[str, Any]:
    """A well-formed snapshot payload using the snake_case wire names."""
    payload = {
        "job_id": JOB_ID,
        "status": "processing",
        "total_units": 100,
        "processed_units": 0,
        "successful_units": 0,
        "failed_units": 0,
        "current_operation": "",
        "elapsed_seconds": 0,
        "is_terminal": False,
        "last_updated_at": "2025-01-01T10:00:00Z",
        "started_at": "2025-01-01T10:00:00Z",
    }
    payload.update(overrides)
    return payload


def sse_frame(data: str, event: Optional[str] = None) -> str:
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return "\n".join(lines) + "\n\n"


class QueueStream(httpx.AsyncByteStream):
    """Response body that yields whatever the test feeds it, until None."""

    def __init__(self) -> None:
        self._chunks: asyncio.Queue = asyncio.Queue()

    def feed(self, chunk: Optional[bytes]) -> None:
        self._chunks.put_nowait(chunk)

    async def __aiter__(self):
        while True:
            chunk = await self._chunks.get()
            if chunk is None:
                return
            yield chunk


class FakeSyncServer:
    """Serves /accounts/{id}/sync-stream; each request gets its own stream."""

    def __init__(
        self,
        status_code: int = 200,
        content_type: str = "text/event-stream",
        error: Optional[Exception] = None,
    ) -> None:
        self.status_code = status_code
        self.content_type = content_type
        self.error = error
        self.requests: List[httpx.Request] = []
        self.streams: List[QueueStream] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "Invalid token"})
        stream = QueueStream()
        self.streams.append(stream)
        return httpx.Response(
            200, headers={"content-type": self.content_type}, stream=stream
        )

    @property
    def stream(self) -> QueueStream:
        return self.streams[-1]

    def send(self, payload: Dict[str, Any], stream: Optional[QueueStream] = None) -> None:
        self.send_raw(sse_frame(json.dumps(payload)), stream)

    def send_raw(self, text: str, stream: Optional[QueueStream] = None) -> None:
        (stream or self.stream).feed(text.encode("utf-8"))

    def finish(self) -> None:
        self.stream.feed(None)


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def settings() -> MonitorSettings:
    return MonitorSettings(
        base_url="http://sync.test/api",
        auto_close_delay=0.2,
        log_capacity=50,
        connect_timeout=1.0,
    )


@pytest.fixture
def server() -> FakeSyncServer:
    return FakeSyncServer()


@pytest.fixture
async def monitor(settings, server):
    m = ProgressMonitor(settings, transport=server.transport)
    yield m
    await m.aclose()
