"""Core data models for design-stream."""

from .design import DesignDocument, Effect, Element, Fill, Stroke, TextProperties
from .rate_limit import RateLimitSnapshot
from .result import AnalysisResult, AnalysisWarning
from .settings import DEFAULT_PROMPT, AnalyzerSettings
from .streaming import AppendText, Finished, RequestSpec, StreamEvent, Truncated

__all__ = [
    "DEFAULT_PROMPT",
    "AnalysisResult",
    "AnalysisWarning",
    "AnalyzerSettings",
    "AppendText",
    "DesignDocument",
    "Effect",
    "Element",
    "Fill",
    "Finished",
    "RateLimitSnapshot",
    "RequestSpec",
    "StreamEvent",
    "Stroke",
    "TextProperties",
    "Truncated",
]
