"""
Transport error classification for the sync progress stream.

Provides:
1. classify_transport_error: httpx exception -> TransportError
2. error_for_response: unusable HTTP response -> TransportError
3. format_error_message: log-friendly rendering of any exception
"""

import logging
from typing import Optional

import httpx

from syncwatch.exceptions import MonitorError, TransportError

logger = logging.getLogger(__name__)

EVENT_STREAM_CONTENT_TYPE = "text/event-stream"


# =============================================================================
# Classification
# =============================================================================

def classify_transport_error(e: Exception, job_id: Optional[str] = None) -> TransportError:
    """
    Map an exception raised while streaming into a TransportError.

    Connectivity problems (timeouts, refused connections, dropped streams)
    are logged at warning level, anything else at error level.

    Args:
        e: Exception raised by httpx (or while reading the stream)
        job_id: Monitored job, for log context

    Returns:
        TransportError carrying a user-facing message
    """
    if isinstance(e, TransportError):
        return e

    if isinstance(e, httpx.HTTPStatusError):
        error = TransportError(status_code=e.response.status_code, reason=str(e))
    elif isinstance(e, httpx.TimeoutException):
        error = TransportError(reason="timeout")
    elif isinstance(e, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError)):
        error = TransportError(reason=format_error_message(e, "connection error"))
    else:
        error = TransportError(reason=format_error_message(e))

    log_msg = f"Sync progress stream failed: {error}"
    extra = {'job_id': job_id or '', 'error': error.reason or ''}

    if isinstance(e, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        logger.warning(log_msg, extra=extra)
    else:
        logger.error(log_msg, extra=extra)

    return error


def error_for_response(response: httpx.Response) -> Optional[TransportError]:
    """
    Check that a response can carry an event stream.

    EventSource semantics: anything but a 2xx with a text/event-stream
    content type fails the connection.

    Returns:
        TransportError if the response is unusable, None otherwise
    """
    if not response.is_success:
        return TransportError(
            status_code=response.status_code,
            reason=f"HTTP {response.status_code}",
        )

    content_type = response.headers.get("content-type", "")
    if not content_type.lower().startswith(EVENT_STREAM_CONTENT_TYPE):
        return TransportError(
            status_code=response.status_code,
            reason=f"unexpected content type {content_type or '(none)'}",
        )

    return None


def format_error_message(e: Exception, default: str = "") -> str:
    """
    Format an exception as a readable message.

    Args:
        e: Exception instance
        default: Fallback used only when nothing else can be extracted

    Returns:
        Formatted message
    """
    if isinstance(e, MonitorError):
        return str(e)

    msg = str(e)
    if msg:
        return f"{type(e).__name__}: {msg}"

    if default:
        return f"{default} ({type(e).__name__})"

    return type(e).__name__
