"""Byte-count to progress-percentage mapping."""

from __future__ import annotations

from collections.abc import Callable

ProgressFn = Callable[[float, str], None]


def progress_percent(
    received_bytes: int,
    estimated_bytes: int = 30_000,
    start: float = 10.0,
    end: float = 58.0,
) -> float:
    """Map bytes received so far onto ``[start, end]``.

    Reaches ``end`` once ``estimated_bytes`` have arrived and stays there.
    """
    if estimated_bytes <= 0:
        return end
    fraction = min(max(received_bytes, 0) / estimated_bytes, 1.0)
    return start + fraction * (end - start)


class ProgressReporter:
    """Forwards a non-decreasing percentage and a status line to a callback."""

    __slots__ = ("_callback", "_end", "_estimated_bytes", "_last", "_start")

    def __init__(
        self,
        callback: ProgressFn | None,
        *,
        estimated_bytes: int = 30_000,
        start: float = 10.0,
        end: float = 58.0,
    ) -> None:
        self._callback = callback
        self._estimated_bytes = estimated_bytes
        self._start = start
        self._end = end
        self._last = start

    @property
    def last_percent(self) -> float:
        return self._last

    def report(self, received_bytes: int) -> float:
        """Compute, clamp to the previous value, and notify the callback."""
        percent = max(
            self._last,
            progress_percent(received_bytes, self._estimated_bytes, self._start, self._end),
        )
        self._last = percent
        if self._callback is not None:
            kb_received = received_bytes / 1024
            self._callback(percent, f"Analyzing design... ({kb_received:.1f}KB received)")
        return percent
