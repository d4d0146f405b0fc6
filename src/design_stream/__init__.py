"""design-stream: streamed AI responses to validated design documents.

Analysis:
    DesignAnalyzer, AnalysisResult, AnalysisWarning, AnalyzerSettings,
    AnalysisCallback

Providers:
    ProviderAdapter, AnthropicAdapter, OpenAIAdapter, GeminiAdapter,
    get_adapter, SUPPORTED_PROVIDERS

Streaming & Transport:
    SSEDemultiplexer, ProgressReporter, RequestExecutor

Parsing & Validation:
    extract_json, repair_json, parse_response, validate_document

Rate Limits:
    RateLimitStore, RateLimitSnapshot

Models & Types:
    DesignDocument, Element, Fill, Stroke, Effect, TextProperties,
    AppendText, Truncated, Finished, StreamEvent, RequestSpec

Exceptions:
    DesignStreamError, ErrorKind, RequestCancelledError, AnalysisTimeoutError,
    TokenLimitError, ParseError, RateLimitError, ApiKeyError, ProviderError,
    TransportError, EmptyResponseError, UnsupportedProviderError,
    classify_error
"""

from importlib.metadata import PackageNotFoundError, version

from design_stream.analyzer import DesignAnalyzer
from design_stream.callbacks import AnalysisCallback
from design_stream.design import validate_document
from design_stream.exceptions import (
    AnalysisTimeoutError,
    ApiKeyError,
    DesignStreamError,
    EmptyResponseError,
    ErrorKind,
    ParseError,
    ProviderError,
    RateLimitError,
    RequestCancelledError,
    TokenLimitError,
    TransportError,
    UnsupportedProviderError,
    classify_error,
)
from design_stream.models import (
    AnalysisResult,
    AnalysisWarning,
    AnalyzerSettings,
    AppendText,
    DesignDocument,
    Effect,
    Element,
    Fill,
    Finished,
    RateLimitSnapshot,
    RequestSpec,
    StreamEvent,
    Stroke,
    TextProperties,
    Truncated,
)
from design_stream.parsing import extract_json, parse_response, repair_json
from design_stream.providers import (
    SUPPORTED_PROVIDERS,
    AnthropicAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    get_adapter,
)
from design_stream.rate_limit import RateLimitStore
from design_stream.streaming import ProgressReporter, SSEDemultiplexer
from design_stream.transport import RequestExecutor

try:
    __version__ = version("design-stream")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

__all__ = [
    "SUPPORTED_PROVIDERS",
    "AnalysisCallback",
    "AnalysisResult",
    "AnalysisTimeoutError",
    "AnalysisWarning",
    "AnalyzerSettings",
    "AnthropicAdapter",
    "ApiKeyError",
    "AppendText",
    "DesignAnalyzer",
    "DesignDocument",
    "DesignStreamError",
    "Effect",
    "Element",
    "EmptyResponseError",
    "ErrorKind",
    "Fill",
    "Finished",
    "GeminiAdapter",
    "OpenAIAdapter",
    "ParseError",
    "ProgressReporter",
    "ProviderAdapter",
    "ProviderError",
    "RateLimitError",
    "RateLimitSnapshot",
    "RateLimitStore",
    "RequestCancelledError",
    "RequestExecutor",
    "RequestSpec",
    "SSEDemultiplexer",
    "StreamEvent",
    "Stroke",
    "TextProperties",
    "TokenLimitError",
    "TransportError",
    "Truncated",
    "UnsupportedProviderError",
    "__version__",
    "classify_error",
    "extract_json",
    "get_adapter",
    "parse_response",
    "repair_json",
    "validate_document",
]
