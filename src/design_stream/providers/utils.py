"""Internal utilities shared across provider adapter implementations.

These helpers eliminate duplication in the concrete adapters.
They are *not* part of the public API and should not be imported
outside this package.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncIterator, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, NamedTuple

import httpx

from design_stream.exceptions import (
    ApiKeyError,
    DesignStreamError,
    ProviderError,
    RateLimitError,
)
from design_stream.models.rate_limit import RateLimitSnapshot
from design_stream.models.streaming import Finished, StreamEvent
from design_stream.streaming.sse import aiter_payloads, split_records

if TYPE_CHECKING:
    from .base import ProviderAdapter

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

DEFAULT_IMAGE_MEDIA_TYPE = "image/png"


class InputPart(NamedTuple):
    """Raw analysis input split into what a vendor request needs."""

    is_image: bool
    media_type: str
    data: str


def split_input(raw_input: str) -> InputPart:
    """Classify ``raw_input`` as a base64 image data URL or plain text.

    For images, ``data`` is the bare base64 payload (no ``data:`` prefix).
    """
    match = _DATA_URL_RE.match(raw_input)
    if match:
        return InputPart(True, match.group(1).lower(), raw_input[match.end():])
    return InputPart(False, "text/plain", raw_input)


def parse_int_header(headers: Mapping[str, str], name: str) -> int | None:
    """Read a leading integer from a header; missing or non-numeric is ``None``."""
    value = headers.get(name)
    if value is None:
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None


def snapshot_from_headers(
    provider: str,
    headers: Mapping[str, str],
    *,
    requests_limit: str | None = None,
    requests_remaining: str | None = None,
    requests_reset: str | None = None,
    tokens_limit: str | None = None,
    tokens_remaining: str | None = None,
    tokens_reset: str | None = None,
) -> RateLimitSnapshot:
    """Build a complete snapshot from a fixed set of header names.

    Header lookups are case-insensitive.  A name given as ``None`` means the
    vendor does not publish that value.
    """
    lookup = headers if isinstance(headers, httpx.Headers) else httpx.Headers(headers)

    def _int(name: str | None) -> int | None:
        return parse_int_header(lookup, name) if name else None

    def _str(name: str | None) -> str | None:
        return lookup.get(name) if name else None

    return RateLimitSnapshot(
        provider=provider,
        requests_limit=_int(requests_limit),
        requests_remaining=_int(requests_remaining),
        requests_reset=_str(requests_reset),
        tokens_limit=_int(tokens_limit),
        tokens_remaining=_int(tokens_remaining),
        tokens_reset=_str(tokens_reset),
        last_updated=datetime.now(UTC),
    )


def error_message(body: str) -> str | None:
    """Pull ``error.message`` out of a vendor error envelope, if there is one."""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return None
    # Gemini occasionally wraps the envelope in a one-element list.
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        return error["message"]
    if isinstance(error, str) and error:
        return error
    return None


def build_failure(display_name: str, status: int, body: str) -> DesignStreamError:
    """Map a non-2xx response onto the error taxonomy."""
    message = error_message(body) or f"{display_name} API error {status}"
    if status == 429:
        return RateLimitError(message)
    if status in (401, 403):
        return ApiKeyError(message)
    return ProviderError(message, status=status)


def _loads(payload: str) -> Any:
    try:
        return json.loads(payload)
    except ValueError:
        logger.debug("Skipping undecodable record: %.200s", payload)
        return None


async def stream_events(
    adapter: ProviderAdapter, chunks: AsyncIterator[bytes]
) -> AsyncIterator[StreamEvent]:
    """Decode a chunked event-stream body into canonical events.

    Events keep arrival order; ``Finished`` is yielded once the body ends.
    Records that are not JSON objects are skipped.
    """
    async for payload in aiter_payloads(chunks):
        record = _loads(payload)
        if isinstance(record, dict):
            for event in adapter.decode_record(record):
                yield event
    yield Finished()


def buffered_events(adapter: ProviderAdapter, body: str) -> list[StreamEvent]:
    """Decode a fully-buffered body into canonical events.

    The body is first tried as one vendor-shaped response object; failing
    that it is reinterpreted as a sequence of framed records.
    """
    try:
        whole = json.loads(body)
    except ValueError:
        logger.debug("Buffered body is not a single JSON document; reading as records")
    else:
        whole_events = adapter.decode_buffered_object(whole)
        if whole_events is not None:
            return [*whole_events, Finished()]

    events: list[StreamEvent] = []
    for payload in split_records(body):
        record = _loads(payload)
        if isinstance(record, dict):
            events.extend(adapter.decode_record(record))
    events.append(Finished())
    return events
