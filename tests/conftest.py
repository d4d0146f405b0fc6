"""Shared fixtures for design-stream tests."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest

from design_stream.models.design import DesignDocument
from design_stream.models.result import AnalysisWarning
from design_stream.models.settings import AnalyzerSettings

Handler = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]

SSE_HEADERS = {"content-type": "text/event-stream"}

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUg=="


def sse_body(records: list[dict[str, Any]], *, done: bool = True) -> bytes:
    """Frame JSON records as a server-sent event body."""
    body = "".join(
        f"data: {json.dumps(record, ensure_ascii=False)}\n\n" for record in records
    )
    if done:
        body += "data: [DONE]\n\n"
    return body.encode()


def anthropic_records(fragments: list[str], *, truncated: bool = False) -> list[dict[str, Any]]:
    """Build the Anthropic stream records that deliver ``fragments``."""
    records: list[dict[str, Any]] = [
        {"type": "message_start", "message": {"id": "msg_1"}},
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text"}},
    ]
    records.extend(
        {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}
        for text in fragments
    )
    records.append({"type": "content_block_stop", "index": 0})
    stop_reason = "max_tokens" if truncated else "end_turn"
    records.append({"type": "message_delta", "delta": {"stop_reason": stop_reason}})
    records.append({"type": "message_stop"})
    return records


def openai_records(fragments: list[str], *, truncated: bool = False) -> list[dict[str, Any]]:
    """Build the OpenAI chat-completion chunks that deliver ``fragments``."""
    records: list[dict[str, Any]] = [
        {"choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}]}
        for text in fragments
    ]
    finish_reason = "length" if truncated else "stop"
    records.append({"choices": [{"index": 0, "delta": {}, "finish_reason": finish_reason}]})
    return records


def gemini_records(fragments: list[str], *, truncated: bool = False) -> list[dict[str, Any]]:
    """Build the Gemini response chunks that deliver ``fragments``."""
    records: list[dict[str, Any]] = [
        {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
        for text in fragments
    ]
    if records:
        records[-1]["candidates"][0]["finishReason"] = "MAX_TOKENS" if truncated else "STOP"
    return records


def sse_response(
    records: list[dict[str, Any]], *, headers: dict[str, str] | None = None
) -> httpx.Response:
    """A streamed 200 response carrying ``records`` as server-sent events."""
    merged = {**SSE_HEADERS, **(headers or {})}
    return httpx.Response(200, content=sse_body(records), headers=merged)


def make_client(handler: Handler) -> httpx.AsyncClient:
    """An AsyncClient whose every request is answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class RecordingCallback:
    """Collects every analysis callback invocation for assertions."""

    def __init__(self) -> None:
        self.retries: list[tuple[int, int, str]] = []
        self.warnings: list[AnalysisWarning] = []
        self.progress: list[tuple[float, str]] = []
        self.documents: list[tuple[str, DesignDocument]] = []

    def on_retry(self, attempt: int, delay_seconds: int, message: str) -> None:
        self.retries.append((attempt, delay_seconds, message))

    def on_warning(self, warning: AnalysisWarning) -> None:
        self.warnings.append(warning)

    def on_progress(self, percent: float, message: str) -> None:
        self.progress.append((percent, message))

    def on_document(self, provider: str, document: DesignDocument) -> None:
        self.documents.append((provider, document))


@pytest.fixture()
def fast_settings() -> AnalyzerSettings:
    """Settings with zero backoff so retry tests do not sleep."""
    return AnalyzerSettings(backoff_base_seconds=0, timeout_seconds=5.0)


@pytest.fixture()
def recorder() -> RecordingCallback:
    return RecordingCallback()
