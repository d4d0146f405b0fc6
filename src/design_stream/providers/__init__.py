"""Wire adapters for the supported AI vendors."""

from __future__ import annotations

from design_stream.exceptions import UnsupportedProviderError

from .anthropic import AnthropicAdapter
from .base import ProviderAdapter
from .gemini import GeminiAdapter
from .openai import OpenAIAdapter
from .utils import buffered_events, stream_events

_ADAPTERS: dict[str, ProviderAdapter] = {
    adapter.provider_id: adapter
    for adapter in (AnthropicAdapter(), OpenAIAdapter(), GeminiAdapter())
}

SUPPORTED_PROVIDERS: tuple[str, ...] = tuple(_ADAPTERS)


def get_adapter(provider_id: str) -> ProviderAdapter:
    """Return the built-in adapter for ``provider_id``.

    Raises:
        UnsupportedProviderError: If no adapter exists for ``provider_id``.
    """
    try:
        return _ADAPTERS[provider_id]
    except KeyError:
        supported = ", ".join(SUPPORTED_PROVIDERS)
        msg = f"Unsupported provider {provider_id!r}; expected one of: {supported}"
        raise UnsupportedProviderError(msg) from None


__all__ = [
    "SUPPORTED_PROVIDERS",
    "AnthropicAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "buffered_events",
    "get_adapter",
    "stream_events",
]
