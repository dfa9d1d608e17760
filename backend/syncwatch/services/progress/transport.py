"""
SSE (Server-Sent Events) transport for the sync progress stream.

Reads the event stream with httpx and pushes items to an asyncio.Queue,
so a single consumer task can apply them in order.

Queue items:
    {"event": "open", "data": None}          stream established
    {"event": "sse", "data": SSEEvent}       one dispatched SSE event
    {"event": "error", "data": TransportError}
    {"event": "eof", "data": None}           server closed the stream
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from syncwatch.services.errors import (
    EVENT_STREAM_CONTENT_TYPE,
    classify_transport_error,
    error_for_response,
)

logger = logging.getLogger(__name__)

DEFAULT_EVENT = "message"


@dataclass(frozen=True)
class SSEEvent:
    """One dispatched server-sent event."""
    event: str = DEFAULT_EVENT
    data: str = ""
    id: Optional[str] = None


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[SSEEvent]:
    """
    Group stream lines into events, following the EventSource rules.

    - "event:" names the event (default "message")
    - "data:" lines accumulate, joined with newlines
    - lines starting with ":" are comments (keep-alives)
    - a blank line dispatches; an event with no data is dropped
    - a trailing event without its blank line is never dispatched
    """
    event_name = ""
    data_lines: list[str] = []
    last_id: Optional[str] = None

    async for raw in lines:
        line = raw.rstrip("\r\n")

        if not line:
            if data_lines:
                yield SSEEvent(
                    event=event_name or DEFAULT_EVENT,
                    data="\n".join(data_lines),
                    id=last_id,
                )
            event_name = ""
            data_lines = []
            continue

        if line.startswith(":"):
            continue

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            event_name = value
        elif field == "data":
            data_lines.append(value)
        elif field == "id":
            if "\0" not in value:
                last_id = value
        # "retry" only matters for reconnection, which is not performed


async def pump_stream(
    client: httpx.AsyncClient,
    url: str,
    token: str,
    queue: asyncio.Queue,
    job_id: Optional[str] = None,
) -> None:
    """
    Stream one subscription into the queue until it ends or fails.

    The token travels as a query parameter: browser EventSource clients
    cannot set an Authorization header, so the backend reads it from there.
    Cancellation propagates so that close() can tear the request down.
    """
    try:
        async with client.stream(
            "GET",
            url,
            params={"token": token},
            headers={"Accept": EVENT_STREAM_CONTENT_TYPE, "Cache-Control": "no-cache"},
        ) as response:
            error = error_for_response(response)
            if error is not None:
                logger.warning(
                    f"Sync progress stream rejected: {error}",
                    extra={'job_id': job_id, 'error': str(error)},
                )
                await queue.put({"event": "error", "data": error})
                return

            logger.debug("Sync progress stream established", extra={'job_id': job_id})
            await queue.put({"event": "open", "data": None})

            async for event in iter_sse_events(response.aiter_lines()):
                await queue.put({"event": "sse", "data": event})

        logger.info("Sync progress stream ended by server", extra={'job_id': job_id})
        await queue.put({"event": "eof", "data": None})
    except Exception as e:
        await queue.put({"event": "error", "data": classify_transport_error(e, job_id)})
