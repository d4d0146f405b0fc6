"""Resilient request execution: per-attempt timeout, backoff, cancellation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx

from design_stream._callbacks import fire_callbacks
from design_stream.exceptions import AnalysisTimeoutError, RequestCancelledError, TransportError
from design_stream.models.streaming import RequestSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


async def race_cancel(
    awaitable: Awaitable[T],
    cancel: asyncio.Event | None,
    timeout: float | None = None,
) -> T:
    """Await ``awaitable`` unless ``cancel`` fires or ``timeout`` elapses first.

    Raises:
        RequestCancelledError: The cancel event was set first.
        TimeoutError: ``timeout`` seconds passed first.
    """
    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future[Any]] = {task}
    if cancel is not None:
        waiters.add(asyncio.ensure_future(cancel.wait()))

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()

    if task in done:
        return task.result()

    (late,) = await asyncio.gather(task, return_exceptions=True)
    if isinstance(late, httpx.Response):
        await late.aclose()
    if cancel is not None and cancel.is_set():
        raise RequestCancelledError()
    msg = f"Attempt exceeded {timeout} seconds"
    raise TimeoutError(msg)


async def _next_chunk(iterator: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


async def guard_stream(
    chunks: AsyncIterator[bytes], cancel: asyncio.Event | None
) -> AsyncIterator[bytes]:
    """Re-yield ``chunks``, aborting an in-flight read when ``cancel`` fires."""
    if cancel is None:
        async for chunk in chunks:
            yield chunk
        return

    iterator = aiter(chunks)
    while True:
        chunk = await race_cancel(_next_chunk(iterator), cancel)
        if chunk is None:
            return
        yield chunk


class RequestExecutor:
    """Issues one logical HTTP call with retries.

    Each attempt gets a hard wall-clock ``timeout``.  HTTP 5xx responses and
    network or timeout errors are retried with exponential backoff
    (``backoff_base_seconds * 2**attempt`` whole seconds) until
    ``max_attempts`` is used up.  A caller-supplied ``cancel`` event is
    checked before every attempt and raced against the in-flight call and
    the backoff sleep; cancellation is never retried.

    On the last attempt a 5xx response is returned as-is so the provider
    adapter can describe it.

    Parameters:
        client: The ``httpx.AsyncClient`` used for every attempt.
        backoff_base_seconds: Base of the exponential retry delay.
        callbacks: Objects notified via ``on_retry(attempt, delay, message)``.
        sleep: Awaitable sleep function, replaceable in tests.
    """

    __slots__ = ("_backoff_base", "_callbacks", "_client", "_sleep")

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        backoff_base_seconds: int = 1,
        callbacks: Sequence[Any] = (),
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._backoff_base = backoff_base_seconds
        self._callbacks = list(callbacks)
        self._sleep = sleep

    def __repr__(self) -> str:
        return f"RequestExecutor(backoff_base_seconds={self._backoff_base})"

    def backoff_delay(self, attempt: int) -> int:
        """Delay in whole seconds before the attempt after ``attempt``."""
        return int(self._backoff_base * 2**attempt)

    async def execute(
        self,
        request: RequestSpec,
        *,
        max_attempts: int = 2,
        timeout: float = 120.0,
        cancel: asyncio.Event | None = None,
    ) -> httpx.Response:
        """Send ``request`` and return the opened (streaming) response.

        The caller owns the returned response and must close it.

        Raises:
            RequestCancelledError: ``cancel`` fired before or during a call.
            AnalysisTimeoutError: The final attempt timed out.
            TransportError: The final attempt hit a network error.
        """
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)

        for attempt in range(1, max_attempts + 1):
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError()

            http_request = self._client.build_request(
                request.method,
                request.url,
                headers=request.headers,
                json=request.json_body,
                timeout=httpx.Timeout(timeout),
            )
            logger.debug("Attempt %d/%d: %s %s", attempt, max_attempts, request.method, request.url)

            try:
                response = await race_cancel(
                    self._client.send(http_request, stream=True), cancel, timeout
                )
            except (TimeoutError, httpx.TimeoutException) as exc:
                if attempt < max_attempts:
                    await self._backoff(
                        attempt,
                        "Request timed out, retrying in {delay}s "
                        f"(attempt {attempt}/{max_attempts})...",
                        cancel,
                    )
                    continue
                msg = (
                    f"Request timed out after {timeout:g} seconds. "
                    "The input may be too large; try reducing the input size."
                )
                raise AnalysisTimeoutError(msg) from exc
            except httpx.HTTPError as exc:
                if attempt < max_attempts:
                    await self._backoff(attempt, "Network error, retrying in {delay}s...", cancel)
                    continue
                raise TransportError(str(exc) or type(exc).__name__) from exc

            if response.status_code >= 500 and attempt < max_attempts:
                await response.aclose()
                await self._backoff(
                    attempt,
                    f"Request failed (HTTP {response.status_code}), retrying in {{delay}}s...",
                    cancel,
                )
                continue

            return response

        msg = "All attempts exhausted"
        raise TransportError(msg)

    async def _backoff(self, attempt: int, template: str, cancel: asyncio.Event | None) -> None:
        delay = self.backoff_delay(attempt)
        message = template.format(delay=delay)
        logger.warning(message)
        fire_callbacks(
            self._callbacks, "on_retry", attempt, delay, message,
            logger=logger, log_level=logging.WARNING,
        )
        await race_cancel(self._sleep(delay), cancel)
