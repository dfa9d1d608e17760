from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import JOB_ID, TOKEN, make_payload, sse_frame
from syncwatch.exceptions import TransportError
from syncwatch.services.progress.transport import SSEEvent, iter_sse_events, pump_stream

URL = f"http://sync.test/api/accounts/{JOB_ID}/sync-stream"


async def collect(lines):
    async def source():
        for line in lines:
            yield line

    return [event async for event in iter_sse_events(source())]


async def test_groups_data_lines_until_blank_line():
    events = await collect(["data: first", "data: second", "", "data: third", ""])

    assert events == [SSEEvent(data="first\nsecond"), SSEEvent(data="third")]


async def test_named_events_ids_and_comments():
    events = await collect(
        [
            ": keep-alive",
            "event: connected",
            'data: {"account_id": "x"}',
            "",
            "id: 7",
            "retry: 3000",
            "data:no-space",
            "",
        ]
    )

    assert events[0].event == "connected"
    assert events[0].data == '{"account_id": "x"}'
    assert events[1] == SSEEvent(event="message", data="no-space", id="7")


async def test_handles_crlf_and_skips_empty_events():
    events = await collect(["event: ping\r\n", "\r\n", "data: x\r\n", "\r\n"])

    assert events == [SSEEvent(data="x")]


async def test_incomplete_trailing_event_is_dropped():
    events = await collect(["data: done", "", "data: partial"])

    assert events == [SSEEvent(data="done")]


async def pump(handler):
    queue: asyncio.Queue = asyncio.Queue()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await pump_stream(client, URL, TOKEN, queue, job_id=JOB_ID)
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


async def test_streams_events_then_eof():
    requests = []
    body = sse_frame(json.dumps(make_payload()), event=None) + sse_frame("{}", event="connected")

    def handler(request):
        requests.append(request)
        return httpx.Response(
            200, headers={"content-type": "text/event-stream; charset=utf-8"}, content=body.encode()
        )

    items = await pump(handler)

    assert [item["event"] for item in items] == ["open", "sse", "sse", "eof"]
    assert items[2]["data"].event == "connected"
    request = requests[0]
    assert request.url.path == f"/api/accounts/{JOB_ID}/sync-stream"
    assert request.url.params["token"] == TOKEN
    assert request.headers["accept"] == "text/event-stream"


@pytest.mark.parametrize("status_code, is_auth", [(401, True), (403, True), (404, False), (500, False)])
async def test_rejected_handshake(status_code, is_auth):
    items = await pump(lambda request: httpx.Response(status_code, json={"error": "nope"}))

    assert len(items) == 1
    assert items[0]["event"] == "error"
    error = items[0]["data"]
    assert isinstance(error, TransportError)
    assert error.status_code == status_code
    assert error.is_auth_failure is is_auth


async def test_wrong_content_type_fails():
    items = await pump(lambda request: httpx.Response(200, json={"status": "ok"}))

    assert [item["event"] for item in items] == ["error"]
    assert not items[0]["data"].is_auth_failure


async def test_connection_failure_is_reported():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    items = await pump(handler)

    assert [item["event"] for item in items] == ["error"]
    assert items[0]["data"].message == "Connection to sync progress failed"
