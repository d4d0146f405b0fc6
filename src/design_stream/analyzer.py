"""DesignAnalyzer -- the streaming analysis orchestrator for design-stream."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from types import TracebackType
from typing import Self

import httpx

from design_stream._callbacks import fire_callbacks
from design_stream.callbacks import AnalysisCallback
from design_stream.design.validator import validate_document
from design_stream.exceptions import (
    AnalysisTimeoutError,
    ApiKeyError,
    EmptyResponseError,
    ErrorKind,
    ParseError,
    TokenLimitError,
    TransportError,
)
from design_stream.models.result import AnalysisResult, AnalysisWarning
from design_stream.models.settings import AnalyzerSettings
from design_stream.models.streaming import AppendText, StreamEvent, Truncated
from design_stream.parsing.json_repair import parse_response
from design_stream.providers import SUPPORTED_PROVIDERS, buffered_events, get_adapter, stream_events
from design_stream.providers.base import ProviderAdapter
from design_stream.rate_limit import RateLimitStore
from design_stream.streaming.progress import ProgressFn, ProgressReporter
from design_stream.transport.executor import RequestExecutor, guard_stream, race_cancel

logger = logging.getLogger(__name__)

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

TRUNCATED_WARNING = "Response was truncated due to token limit, some elements may be missing"
REPAIRED_WARNING = "Response was truncated, some elements may be missing"


class DesignAnalyzer:
    """Turns one raw input into a validated :class:`DesignDocument`.

    Usage::

        async with DesignAnalyzer() as analyzer:
            result = await analyzer.analyze(data_url, "claude", api_key)
            result.document.to_wire()

    Each ``analyze`` call follows this flow:
        1. Build the vendor request and send it through the retrying executor
        2. Record the response's rate-limit headers (warning when low)
        3. Decode the streamed or buffered body into canonical events
        4. Accumulate text while reporting progress
        5. Extract and, if needed, repair the JSON body
        6. Sanitize the tree and return it with any warnings

    Concurrent ``analyze`` calls on one analyzer share its HTTP client and
    rate-limit store and are otherwise independent.
    """

    def __init__(
        self,
        settings: AnalyzerSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        rate_limits: RateLimitStore | None = None,
        callbacks: Iterable[AnalysisCallback] | None = None,
    ) -> None:
        self._settings = settings or AnalyzerSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._rate_limits = rate_limits or RateLimitStore(SUPPORTED_PROVIDERS)
        self._callbacks: list[AnalysisCallback] = list(callbacks or ())

    @property
    def settings(self) -> AnalyzerSettings:
        return self._settings

    @property
    def rate_limits(self) -> RateLimitStore:
        """The store updated after every vendor response."""
        return self._rate_limits

    def __repr__(self) -> str:
        return (
            f"DesignAnalyzer("
            f"max_attempts={self._settings.max_attempts}, "
            f"timeout_seconds={self._settings.timeout_seconds:g}, "
            f"callbacks={len(self._callbacks)})"
        )

    def add_callback(self, callback: AnalysisCallback) -> DesignAnalyzer:
        """Register an event callback. Returns self for chaining."""
        self._callbacks.append(callback)
        return self

    def _executor(self) -> RequestExecutor:
        return RequestExecutor(
            self._client,
            backoff_base_seconds=self._settings.backoff_base_seconds,
            callbacks=self._callbacks,
        )

    def _warn(self, warnings: list[AnalysisWarning], warning: AnalysisWarning) -> None:
        warnings.append(warning)
        fire_callbacks(self._callbacks, "on_warning", warning, logger=logger)

    async def analyze(
        self,
        raw_input: str,
        provider_id: str,
        credential: str,
        on_progress: ProgressFn | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AnalysisResult:
        """Analyze ``raw_input`` with one vendor and return the sanitized document.

        Parameters:
            raw_input: A base64 image data URL or plain text.
            provider_id: One of ``"claude"``, ``"openai"`` or ``"gemini"``.
            credential: The vendor API key.
            on_progress: Called with ``(percent, message)`` as text arrives.
            cancel: Setting this event aborts the call at the next await.

        Raises:
            UnsupportedProviderError: Unknown ``provider_id``.
            ApiKeyError: Empty credential, or the vendor rejected it.
            RequestCancelledError: ``cancel`` fired.
            AnalysisTimeoutError: Every attempt timed out.
            RateLimitError: The vendor answered HTTP 429.
            ProviderError: Any other non-2xx vendor response.
            EmptyResponseError: The response carried no text.
            TokenLimitError: A length stop left nothing parseable.
            ParseError: The body was not recoverable JSON.
        """
        adapter = get_adapter(provider_id)
        if not credential or not credential.strip():
            raise ApiKeyError()

        settings = self._settings
        request = adapter.build_request(raw_input, credential, settings)
        logger.info("Analyzing with %s (%d input chars)", adapter.display_name, len(raw_input))

        response = await self._executor().execute(
            request,
            max_attempts=settings.max_attempts,
            timeout=settings.timeout_seconds,
            cancel=cancel,
        )
        warnings: list[AnalysisWarning] = []
        try:
            rate_warning = self._rate_limits.update(adapter.extract_rate_limits(response.headers))
            if rate_warning is not None:
                self._warn(warnings, rate_warning)

            if not response.is_success:
                body = await self._read_body(response, cancel)
                logger.error(
                    "%s API error %d: %.500s", adapter.display_name, response.status_code, body
                )
                raise adapter.build_failure(response.status_code, body)

            text, truncated = await self._collect_text(adapter, response, on_progress, cancel)
        finally:
            await response.aclose()

        if not text.strip():
            if truncated:
                self._warn(
                    warnings, AnalysisWarning(kind=ErrorKind.TOKEN_LIMIT, message=TRUNCATED_WARNING)
                )
            msg = f"No response content from {adapter.display_name}"
            raise EmptyResponseError(msg)

        try:
            parsed = parse_response(text)
        except ParseError as exc:
            if truncated:
                raise TokenLimitError() from exc
            raise

        document = validate_document(parsed.data)

        if truncated or parsed.repaired:
            message = TRUNCATED_WARNING if truncated else REPAIRED_WARNING
            self._warn(warnings, AnalysisWarning(kind=ErrorKind.TOKEN_LIMIT, message=message))

        received_bytes = len(text.encode())
        logger.info(
            "%s returned %d elements (%d bytes, truncated=%s, repaired=%s)",
            adapter.display_name,
            len(document.elements),
            received_bytes,
            truncated,
            parsed.repaired,
        )
        fire_callbacks(self._callbacks, "on_document", adapter.provider_id, document, logger=logger)

        return AnalysisResult(
            document=document,
            provider=adapter.provider_id,
            warnings=warnings,
            truncated=truncated,
            repaired=parsed.repaired,
            received_bytes=received_bytes,
        )

    async def _read_body(self, response: httpx.Response, cancel: asyncio.Event | None) -> str:
        try:
            await race_cancel(response.aread(), cancel)
        except httpx.TimeoutException as exc:
            raise AnalysisTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc
        return response.text

    async def _events(
        self,
        adapter: ProviderAdapter,
        response: httpx.Response,
        cancel: asyncio.Event | None,
    ) -> AsyncIterator[StreamEvent]:
        content_type = response.headers.get("content-type", "")
        if content_type.startswith(EVENT_STREAM_MEDIA_TYPE):
            async for event in stream_events(adapter, guard_stream(response.aiter_bytes(), cancel)):
                yield event
            return

        body = await self._read_body(response, cancel)
        for event in buffered_events(adapter, body):
            yield event

    async def _collect_text(
        self,
        adapter: ProviderAdapter,
        response: httpx.Response,
        on_progress: ProgressFn | None,
        cancel: asyncio.Event | None,
    ) -> tuple[str, bool]:
        settings = self._settings

        def _notify(percent: float, message: str) -> None:
            if on_progress is not None:
                on_progress(percent, message)
            fire_callbacks(self._callbacks, "on_progress", percent, message, logger=logger)

        reporter = ProgressReporter(
            _notify,
            estimated_bytes=settings.estimated_response_bytes,
            start=settings.progress_start,
            end=settings.progress_end,
        )
        parts: list[str] = []
        received = 0
        truncated = False

        try:
            async for event in self._events(adapter, response, cancel):
                if isinstance(event, AppendText):
                    parts.append(event.text)
                    received += len(event.text.encode())
                    reporter.report(received)
                elif isinstance(event, Truncated):
                    logger.warning("%s stopped at its output token limit", adapter.display_name)
                    truncated = True
        except httpx.TimeoutException as exc:
            raise AnalysisTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc

        return "".join(parts), truncated

    async def validate_credential(self, provider_id: str, credential: str) -> bool:
        """Return whether the vendor accepts ``credential``.

        Sends one cheap request without retries.  Network failures and
        timeouts count as "not accepted".
        """
        adapter = get_adapter(provider_id)
        if not credential or not credential.strip():
            return False

        request = adapter.credential_check_request(credential, self._settings)
        try:
            response = await self._executor().execute(
                request, max_attempts=1, timeout=self._settings.timeout_seconds
            )
        except (AnalysisTimeoutError, TransportError) as exc:
            logger.warning("Credential check for %s failed: %s", adapter.display_name, exc)
            return False

        try:
            return adapter.credential_accepted(response.status_code)
        finally:
            await response.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this analyzer created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
