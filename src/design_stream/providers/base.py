"""Provider wire adapter protocol definition.

Any object with the attributes and methods below can be used as an adapter
-- no inheritance required (PEP 544 structural subtyping).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from design_stream.exceptions import DesignStreamError
from design_stream.models.rate_limit import RateLimitSnapshot
from design_stream.models.settings import AnalyzerSettings
from design_stream.models.streaming import RequestSpec, StreamEvent


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol for vendor wire adapters.

    An adapter knows one vendor's request shape, its streamed event
    envelope, its rate-limit headers and its error envelope.  Only
    canonical :data:`StreamEvent` values leave the adapter.  Adapters never
    retry; that happens in the executor before the adapter sees a response.
    """

    @property
    def provider_id(self) -> str:
        """Identifier used by callers (e.g. ``'claude'``)."""
        ...

    @property
    def display_name(self) -> str:
        """Human-readable vendor name used in messages."""
        ...

    def build_request(
        self, raw_input: str, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        """Build the streaming request for one analysis."""
        ...

    def decode_record(self, payload: dict[str, Any]) -> list[StreamEvent]:
        """Translate one decoded stream record into canonical events."""
        ...

    def decode_buffered_object(self, payload: Any) -> list[StreamEvent] | None:
        """Translate a complete non-streamed response body.

        Returns ``None`` when ``payload`` is not this vendor's response shape.
        """
        ...

    def extract_rate_limits(self, headers: Mapping[str, str]) -> RateLimitSnapshot:
        """Read the vendor's rate-limit headers into a fresh snapshot."""
        ...

    def build_failure(self, status: int, body: str) -> DesignStreamError:
        """Describe a non-2xx response."""
        ...

    def credential_check_request(
        self, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        """Build a cheap request that proves whether a credential works."""
        ...

    def credential_accepted(self, status: int) -> bool:
        """Whether ``status`` from the check request means the key is valid."""
        ...
