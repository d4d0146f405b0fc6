"""OpenAI Chat Completions wire adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from design_stream.exceptions import DesignStreamError
from design_stream.models.rate_limit import RateLimitSnapshot
from design_stream.models.settings import AnalyzerSettings
from design_stream.models.streaming import AppendText, RequestSpec, StreamEvent, Truncated

from .utils import build_failure, snapshot_from_headers, split_input

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODELS_URL = "https://api.openai.com/v1/models"


def _first_choice(payload: dict[str, Any]) -> dict[str, Any] | None:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


class OpenAIAdapter:
    """Adapter for the OpenAI Chat Completions API (``provider_id='openai'``).

    Text arrives in ``choices[0].delta.content``; ``finish_reason ==
    "length"`` on the first choice marks truncation.

    Implements the ``ProviderAdapter`` protocol.
    """

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def display_name(self) -> str:
        return "OpenAI"

    def build_request(
        self, raw_input: str, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        part = split_input(raw_input)
        if part.is_image:
            content: list[dict[str, Any]] = [
                # OpenAI takes the data URL as-is.
                {"type": "image_url", "image_url": {"url": raw_input}},
                {"type": "text", "text": settings.prompt},
            ]
        else:
            content = [{"type": "text", "text": f"{settings.prompt}\n\n{part.data}"}]

        return RequestSpec(
            url=OPENAI_CHAT_URL,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {credential}",
            },
            json_body={
                "model": settings.openai_model,
                "max_tokens": settings.openai_max_tokens,
                "stream": True,
                "messages": [{"role": "user", "content": content}],
            },
        )

    def decode_record(self, payload: dict[str, Any]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        choice = _first_choice(payload)
        if choice is None:
            return events
        delta = choice.get("delta")
        if isinstance(delta, dict):
            content = delta.get("content")
            if isinstance(content, str) and content:
                events.append(AppendText(text=content))
        if choice.get("finish_reason") == "length":
            events.append(Truncated())
        return events

    def decode_buffered_object(self, payload: Any) -> list[StreamEvent] | None:
        if not isinstance(payload, dict):
            return None
        choice = _first_choice(payload)
        if choice is None or not isinstance(choice.get("message"), dict):
            return None
        content = choice["message"].get("content")
        events: list[StreamEvent] = []
        if isinstance(content, str) and content:
            events.append(AppendText(text=content))
        if choice.get("finish_reason") == "length":
            events.append(Truncated())
        return events

    def extract_rate_limits(self, headers: Mapping[str, str]) -> RateLimitSnapshot:
        return snapshot_from_headers(
            self.provider_id,
            headers,
            requests_limit="x-ratelimit-limit-requests",
            requests_remaining="x-ratelimit-remaining-requests",
            requests_reset="x-ratelimit-reset-requests",
            tokens_limit="x-ratelimit-limit-tokens",
            tokens_remaining="x-ratelimit-remaining-tokens",
            tokens_reset="x-ratelimit-reset-tokens",
        )

    def build_failure(self, status: int, body: str) -> DesignStreamError:
        return build_failure(self.display_name, status, body)

    def credential_check_request(
        self, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        return RequestSpec(
            method="GET",
            url=OPENAI_MODELS_URL,
            headers={"Authorization": f"Bearer {credential}"},
        )

    def credential_accepted(self, status: int) -> bool:
        return 200 <= status < 300

    def __repr__(self) -> str:
        return "OpenAIAdapter()"
