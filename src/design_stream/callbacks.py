"""Analysis callback protocol for retry notices, warnings and progress."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from design_stream.models.design import DesignDocument
from design_stream.models.result import AnalysisWarning


@runtime_checkable
class AnalysisCallback(Protocol):
    """Protocol for analysis event callbacks.

    Implement any subset of these methods; missing ones are skipped.
    Exceptions raised by a callback are logged and swallowed.
    """

    def on_retry(self, attempt: int, delay_seconds: int, message: str) -> None: ...
    def on_warning(self, warning: AnalysisWarning) -> None: ...
    def on_progress(self, percent: float, message: str) -> None: ...
    def on_document(self, provider: str, document: DesignDocument) -> None: ...
