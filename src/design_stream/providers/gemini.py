"""Google Gemini ``streamGenerateContent`` wire adapter."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from design_stream.exceptions import DesignStreamError
from design_stream.models.rate_limit import RateLimitSnapshot
from design_stream.models.settings import AnalyzerSettings
from design_stream.models.streaming import AppendText, RequestSpec, StreamEvent, Truncated

from .utils import build_failure, snapshot_from_headers, split_input

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


def _first_candidate(payload: dict[str, Any]) -> dict[str, Any] | None:
    candidates = payload.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        return candidates[0]
    return None


def _candidate_text(candidate: dict[str, Any]) -> str:
    content = candidate.get("content")
    if not isinstance(content, dict) or not isinstance(content.get("parts"), list):
        return ""
    return "".join(
        part["text"]
        for part in content["parts"]
        if isinstance(part, dict) and isinstance(part.get("text"), str) and not part.get("thought")
    )


class GeminiAdapter:
    """Adapter for the Gemini API (``provider_id='gemini'``).

    Each record is a ``GenerateContentResponse`` chunk; text lives in
    ``candidates[0].content.parts[*].text`` and ``finishReason ==
    "MAX_TOKENS"`` marks truncation.  Without ``alt=sse`` the endpoint
    returns a JSON array of the same chunks, which the buffered path accepts.

    Implements the ``ProviderAdapter`` protocol.
    """

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def display_name(self) -> str:
        return "Gemini"

    def build_request(
        self, raw_input: str, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        part = split_input(raw_input)
        parts: list[dict[str, Any]]
        if part.is_image:
            parts = [
                {"inline_data": {"mime_type": part.media_type, "data": part.data}},
                {"text": settings.prompt},
            ]
        else:
            parts = [{"text": f"{settings.prompt}\n\n{part.data}"}]

        return RequestSpec(
            url=f"{GEMINI_BASE_URL}/{settings.gemini_model}:streamGenerateContent?alt=sse",
            headers={"Content-Type": "application/json", "x-goog-api-key": credential},
            json_body={
                "contents": [{"parts": parts}],
                "generationConfig": {
                    "maxOutputTokens": settings.gemini_max_output_tokens,
                    "responseMimeType": "application/json",
                    "temperature": 0,
                },
            },
        )

    def decode_record(self, payload: dict[str, Any]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        candidate = _first_candidate(payload)
        if candidate is None:
            return events
        text = _candidate_text(candidate)
        if text:
            events.append(AppendText(text=text))
        if candidate.get("finishReason") == "MAX_TOKENS":
            events.append(Truncated())
        return events

    def decode_buffered_object(self, payload: Any) -> list[StreamEvent] | None:
        chunks = payload if isinstance(payload, list) else [payload]
        candidates = [
            _first_candidate(chunk) if isinstance(chunk, dict) else None for chunk in chunks
        ]
        if not candidates or any(candidate is None for candidate in candidates):
            return None

        text = ""
        truncated = False
        for candidate in candidates:
            if candidate is None:
                continue
            text += _candidate_text(candidate)
            truncated = truncated or candidate.get("finishReason") == "MAX_TOKENS"

        events: list[StreamEvent] = [AppendText(text=text)] if text else []
        if truncated:
            events.append(Truncated())
        return events

    def extract_rate_limits(self, headers: Mapping[str, str]) -> RateLimitSnapshot:
        return snapshot_from_headers(
            self.provider_id,
            headers,
            requests_limit="x-ratelimit-limit",
            requests_remaining="x-ratelimit-remaining",
            requests_reset="x-ratelimit-reset",
        )

    def build_failure(self, status: int, body: str) -> DesignStreamError:
        return build_failure(self.display_name, status, body)

    def credential_check_request(
        self, credential: str, settings: AnalyzerSettings
    ) -> RequestSpec:
        return RequestSpec(
            method="GET",
            url=GEMINI_BASE_URL,
            headers={"x-goog-api-key": credential},
        )

    def credential_accepted(self, status: int) -> bool:
        return 200 <= status < 300

    def __repr__(self) -> str:
        return "GeminiAdapter()"
