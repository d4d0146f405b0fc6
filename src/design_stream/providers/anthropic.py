"""Anthropic Messages API wire adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from design_stream.exceptions import DesignStreamError
from design_stream.models.rate_limit import RateLimitSnapshot
from design_stream.models.settings import AnalyzerSettings
from design_stream.models.streaming import AppendText, RequestSpec, StreamEvent, Truncated

from .utils import build_failure, snapshot_from_headers, split_input

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter:
    """Adapter for the Anthropic Messages API (``provider_id='claude'``).

    Stream records of interest:

    - ``content_block_delta`` with ``delta.text`` -- an incremental fragment;
    - ``message_delta`` with ``delta.stop_reason == "max_tokens"`` -- the
      model hit its output limit.

    Implements the ``ProviderAdapter`` protocol.
    """

    @property
    def provider_id(self) -> str:
        return "claude"

    @property
    def display_name(self) -> str:
        return "Claude"

    def _headers(self, credential: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": credential,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_request(
        self, raw_input: str, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        part = split_input(raw_input)
        content: list[dict[str, Any]] = []
        if part.is_image:
            content.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": part.media_type, "data": part.data},
                }
            )
            content.append({"type": "text", "text": settings.prompt})
        else:
            content.append({"type": "text", "text": f"{settings.prompt}\n\n{part.data}"})

        return RequestSpec(
            url=ANTHROPIC_MESSAGES_URL,
            headers=self._headers(credential),
            json_body={
                "model": settings.claude_model,
                "max_tokens": settings.claude_max_tokens,
                "stream": True,
                "messages": [{"role": "user", "content": content}],
            },
        )

    def decode_record(self, payload: dict[str, Any]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        delta = payload.get("delta")
        if not isinstance(delta, dict):
            return events
        event_type = payload.get("type")
        if event_type == "content_block_delta":
            text = delta.get("text")
            if isinstance(text, str) and text:
                events.append(AppendText(text=text))
        elif event_type == "message_delta" and delta.get("stop_reason") == "max_tokens":
            events.append(Truncated())
        return events

    def decode_buffered_object(self, payload: Any) -> list[StreamEvent] | None:
        if not isinstance(payload, dict) or not isinstance(payload.get("content"), list):
            return None
        text = "".join(
            block["text"]
            for block in payload["content"]
            if isinstance(block, dict) and isinstance(block.get("text"), str)
        )
        events: list[StreamEvent] = [AppendText(text=text)] if text else []
        if payload.get("stop_reason") == "max_tokens":
            events.append(Truncated())
        return events

    def extract_rate_limits(self, headers: Mapping[str, str]) -> RateLimitSnapshot:
        return snapshot_from_headers(
            self.provider_id,
            headers,
            requests_limit="anthropic-ratelimit-requests-limit",
            requests_remaining="anthropic-ratelimit-requests-remaining",
            requests_reset="anthropic-ratelimit-requests-reset",
            tokens_limit="anthropic-ratelimit-tokens-limit",
            tokens_remaining="anthropic-ratelimit-tokens-remaining",
            tokens_reset="anthropic-ratelimit-tokens-reset",
        )

    def build_failure(self, status: int, body: str) -> DesignStreamError:
        return build_failure(self.display_name, status, body)

    def credential_check_request(
        self, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        return RequestSpec(
            url=ANTHROPIC_MESSAGES_URL,
            headers=self._headers(credential),
            json_body={
                "model": settings.claude_model,
                "max_tokens": 1,
                "messages": [{"role": "user", "content": "Hi"}],
            },
        )

    def credential_accepted(self, status: int) -> bool:
        # 400 means the key authenticated but the check request body was rejected.
        return status in (200, 400)

    def __repr__(self) -> str:
        return "AnthropicAdapter()"
