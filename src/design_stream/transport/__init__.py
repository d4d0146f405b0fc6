"""HTTP transport with retry, timeout and cancellation."""

from .executor import RequestExecutor, guard_stream, race_cancel

__all__ = ["RequestExecutor", "guard_stream", "race_cancel"]
