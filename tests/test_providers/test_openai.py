"""Tests for OpenAIAdapter."""

from __future__ import annotations

import json

import pytest

from design_stream.exceptions import ProviderError
from design_stream.models.settings import AnalyzerSettings
from design_stream.models.streaming import AppendText, Finished, Truncated
from design_stream.providers import OpenAIAdapter, ProviderAdapter, buffered_events
from tests.conftest import PNG_DATA_URL

adapter = OpenAIAdapter()
settings = AnalyzerSettings(prompt="Describe it.")


class TestBuildRequest:
    def test_identity(self) -> None:
        assert isinstance(adapter, ProviderAdapter)
        assert adapter.provider_id == "openai"

    def test_image_is_sent_as_data_url(self) -> None:
        req = adapter.build_request(PNG_DATA_URL, "sk-1", settings)

        assert req.url == "https://api.openai.com/v1/chat/completions"
        assert req.headers["Authorization"] == "Bearer sk-1"
        assert req.json_body is not None
        assert req.json_body["stream"] is True
        assert req.json_body["model"] == "gpt-4o"
        image, text = req.json_body["messages"][0]["content"]
        assert image == {"type": "image_url", "image_url": {"url": PNG_DATA_URL}}
        assert text["text"] == "Describe it."

    def test_text_input(self) -> None:
        req = adapter.build_request("plain", "sk-1", settings)
        assert req.json_body is not None
        assert req.json_body["messages"][0]["content"][0]["text"] == "Describe it.\n\nplain"


class TestDecodeRecord:
    def test_content_delta(self) -> None:
        record = {"choices": [{"delta": {"content": "ab"}, "finish_reason": None}]}
        assert adapter.decode_record(record) == [AppendText(text="ab")]

    def test_length_finish(self) -> None:
        record = {"choices": [{"delta": {}, "finish_reason": "length"}]}
        assert adapter.decode_record(record) == [Truncated()]

    def test_text_and_length_in_one_record(self) -> None:
        record = {"choices": [{"delta": {"content": "z"}, "finish_reason": "length"}]}
        assert adapter.decode_record(record) == [AppendText(text="z"), Truncated()]

    @pytest.mark.parametrize(
        "record",
        [
            {"choices": []},
            {"choices": [{"delta": {"role": "assistant"}}]},
            {"choices": [{"delta": {}, "finish_reason": "stop"}]},
            {"usage": {"total_tokens": 5}},
        ],
    )
    def test_irrelevant_records(self, record: dict) -> None:
        assert adapter.decode_record(record) == []


class TestBufferedEvents:
    def test_chat_completion_object(self) -> None:
        body = json.dumps(
            {"choices": [{"message": {"content": '{"width":5}'}, "finish_reason": "stop"}]}
        )
        assert buffered_events(adapter, body) == [AppendText(text='{"width":5}'), Finished()]

    def test_undecodable_records_are_skipped(self) -> None:
        body = 'data: {"choices":[{"delta":{"content":"a"}}]}\n\ndata: {oops\n\n'
        assert buffered_events(adapter, body) == [AppendText(text="a"), Finished()]


class TestRateLimits:
    def test_headers(self) -> None:
        snapshot = adapter.extract_rate_limits(
            {
                "x-ratelimit-limit-requests": "500",
                "x-ratelimit-remaining-requests": "499",
                "x-ratelimit-reset-requests": "120ms",
                "x-ratelimit-limit-tokens": "30000",
                "x-ratelimit-remaining-tokens": "29000",
                "x-ratelimit-reset-tokens": "2s",
            }
        )
        assert snapshot.provider == "openai"
        assert snapshot.requests_limit == 500
        assert snapshot.requests_remaining == 499
        assert snapshot.requests_reset == "120ms"
        assert snapshot.tokens_reset == "2s"


class TestFailures:
    def test_error_envelope(self) -> None:
        body = json.dumps({"error": {"message": "Invalid model", "type": "invalid_request"}})
        error = adapter.build_failure(404, body)
        assert isinstance(error, ProviderError)
        assert error.message == "Invalid model"

    def test_credential_check_is_a_models_listing(self) -> None:
        req = adapter.credential_check_request("sk-1", settings)
        assert req.method == "GET"
        assert req.url == "https://api.openai.com/v1/models"
        assert adapter.credential_accepted(200)
        assert not adapter.credential_accepted(401)
