"""Stream framing and progress reporting."""

from .progress import ProgressFn, ProgressReporter, progress_percent
from .sse import SSEDemultiplexer, aiter_payloads, split_records

__all__ = [
    "ProgressFn",
    "ProgressReporter",
    "SSEDemultiplexer",
    "aiter_payloads",
    "progress_percent",
    "split_records",
]
