"""Server-sent event framing, independent of any vendor payload shape."""

from __future__ import annotations

import codecs
import re
from collections.abc import AsyncIterator

_RECORD_DELIMITER = re.compile(r"\r?\n\r?\n")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_BLANK = " \t"
_FIELD_PREFIX = "data:"
_END_MARKER = "[DONE]"


def _record_payloads(record: str) -> list[str]:
    """Return the ``data:`` payloads of one record, minus the end marker."""
    payloads: list[str] = []
    for raw_line in _LINE_BREAK.split(record):
        line = raw_line.strip(_BLANK)
        if not line.startswith(_FIELD_PREFIX):
            continue
        data = line[len(_FIELD_PREFIX):].strip(_BLANK)
        if data == _END_MARKER:
            continue
        payloads.append(data)
    return payloads


class SSEDemultiplexer:
    """Turns arbitrary read fragments into complete record payloads.

    Records end at a blank line.  A partial record is buffered across
    ``feed`` calls and drained by ``flush`` at stream end, so a split at any
    byte boundary (including inside the delimiter or inside a multi-byte
    character) decodes the same as the record delivered whole.

    Usage::

        demux = SSEDemultiplexer()
        for fragment in fragments:
            for payload in demux.feed(fragment):
                handle(payload)
        for payload in demux.flush():
            handle(payload)
    """

    __slots__ = ("_buffer", "_decoder")

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, fragment: str | bytes) -> list[str]:
        """Add a fragment and return payloads of every record it completed."""
        if isinstance(fragment, bytes):
            fragment = self._decoder.decode(fragment)
        self._buffer += fragment

        parts = _RECORD_DELIMITER.split(self._buffer)
        self._buffer = parts.pop()

        payloads: list[str] = []
        for part in parts:
            if part.strip():
                payloads.extend(_record_payloads(part))
        return payloads

    def flush(self) -> list[str]:
        """Drain the trailing partial record. Call once, at stream end."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not tail.strip():
            return []
        return _record_payloads(tail)

    def __repr__(self) -> str:
        return f"SSEDemultiplexer(buffered={len(self._buffer)})"


def split_records(text: str) -> list[str]:
    """Split a fully-buffered event-stream body into payloads."""
    demux = SSEDemultiplexer()
    return demux.feed(text) + demux.flush()


async def aiter_payloads(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Yield payloads from an async byte stream as records complete."""
    demux = SSEDemultiplexer()
    async for chunk in chunks:
        for payload in demux.feed(chunk):
            yield payload
    for payload in demux.flush():
        yield payload
