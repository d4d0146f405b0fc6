"""Tests for RequestExecutor, race_cancel and guard_stream."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import pytest

from design_stream.exceptions import AnalysisTimeoutError, RequestCancelledError, TransportError
from design_stream.models.streaming import RequestSpec
from design_stream.transport.executor import RequestExecutor, guard_stream, race_cancel
from tests.conftest import RecordingCallback, make_client

REQUEST = RequestSpec(url="https://api.example.test/v1/generate", json_body={"q": 1})


class SleepRecorder:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _status_sequence(
    *statuses: int,
) -> tuple[list[httpx.Request], Callable[[httpx.Request], httpx.Response]]:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status = statuses[min(len(calls), len(statuses)) - 1]
        return httpx.Response(status, text=f"status {status}")

    return calls, handler


class TestBackoffDelay:
    def test_exponential_whole_seconds(self) -> None:
        executor = RequestExecutor(make_client(lambda r: httpx.Response(200)))
        assert [executor.backoff_delay(a) for a in (1, 2, 3)] == [2, 4, 8]

    def test_zero_base(self) -> None:
        executor = RequestExecutor(
            make_client(lambda r: httpx.Response(200)), backoff_base_seconds=0
        )
        assert executor.backoff_delay(5) == 0


class TestRetries:
    @pytest.mark.asyncio()
    async def test_server_errors_then_success(self) -> None:
        calls, handler = _status_sequence(500, 500, 200)
        sleep = SleepRecorder()
        recorder = RecordingCallback()
        executor = RequestExecutor(make_client(handler), callbacks=[recorder], sleep=sleep)

        response = await executor.execute(REQUEST, max_attempts=3)

        assert response.status_code == 200
        assert len(calls) == 3
        assert sleep.delays == [2, 4]
        assert [r[0] for r in recorder.retries] == [1, 2]
        assert recorder.retries[0][2] == "Request failed (HTTP 500), retrying in 2s..."

    @pytest.mark.asyncio()
    async def test_final_server_error_is_returned(self) -> None:
        calls, handler = _status_sequence(503)
        executor = RequestExecutor(make_client(handler), sleep=SleepRecorder())

        response = await executor.execute(REQUEST, max_attempts=2)

        assert response.status_code == 503
        assert len(calls) == 2

    @pytest.mark.asyncio()
    async def test_client_errors_are_not_retried(self) -> None:
        calls, handler = _status_sequence(429)
        executor = RequestExecutor(make_client(handler), sleep=SleepRecorder())

        response = await executor.execute(REQUEST, max_attempts=3)

        assert response.status_code == 429
        assert len(calls) == 1

    @pytest.mark.asyncio()
    async def test_network_error_exhausts_to_transport_error(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        recorder = RecordingCallback()
        executor = RequestExecutor(
            make_client(handler), callbacks=[recorder], sleep=SleepRecorder()
        )
        with pytest.raises(TransportError, match="connection refused"):
            await executor.execute(REQUEST, max_attempts=2)

        assert len(calls) == 2
        assert recorder.retries[0][2] == "Network error, retrying in 2s..."

    @pytest.mark.asyncio()
    async def test_request_is_sent_as_described(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        req = RequestSpec(
            url="https://api.example.test/v1/x", headers={"x-api-key": "k"}, json_body={"a": 1}
        )
        await RequestExecutor(make_client(handler)).execute(req)

        assert seen[0].method == "POST"
        assert seen[0].headers["x-api-key"] == "k"
        assert json.loads(seen[0].content) == {"a": 1}

    @pytest.mark.asyncio()
    async def test_invalid_max_attempts(self) -> None:
        executor = RequestExecutor(make_client(lambda r: httpx.Response(200)))
        with pytest.raises(ValueError, match="max_attempts"):
            await executor.execute(REQUEST, max_attempts=0)


class TestTimeout:
    @pytest.mark.asyncio()
    async def test_slow_attempts_time_out(self) -> None:
        calls: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            await asyncio.sleep(5)
            return httpx.Response(200)

        recorder = RecordingCallback()
        executor = RequestExecutor(
            make_client(handler), callbacks=[recorder], sleep=SleepRecorder()
        )
        with pytest.raises(AnalysisTimeoutError, match="timed out after 0.05 seconds"):
            await executor.execute(REQUEST, max_attempts=2, timeout=0.05)

        assert len(calls) == 2
        assert recorder.retries[0][2] == "Request timed out, retrying in 2s (attempt 1/2)..."

    @pytest.mark.asyncio()
    async def test_httpx_timeout_is_a_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            msg = "read timed out"
            raise httpx.ReadTimeout(msg, request=request)

        executor = RequestExecutor(make_client(handler))
        with pytest.raises(AnalysisTimeoutError):
            await executor.execute(REQUEST, max_attempts=1)


class TestCancellation:
    @pytest.mark.asyncio()
    async def test_cancelled_before_start(self) -> None:
        calls, handler = _status_sequence(200)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(RequestCancelledError):
            await RequestExecutor(make_client(handler)).execute(REQUEST, cancel=cancel)
        assert calls == []

    @pytest.mark.asyncio()
    async def test_cancelled_in_flight_is_not_retried(self) -> None:
        calls: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            await asyncio.sleep(5)
            return httpx.Response(200)

        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, cancel.set)
        recorder = RecordingCallback()
        executor = RequestExecutor(make_client(handler), callbacks=[recorder])

        with pytest.raises(RequestCancelledError):
            await executor.execute(REQUEST, max_attempts=3, cancel=cancel)

        assert len(calls) == 1
        assert recorder.retries == []

    @pytest.mark.asyncio()
    async def test_cancelled_during_backoff(self) -> None:
        calls, handler = _status_sequence(500)
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel.set)
        executor = RequestExecutor(make_client(handler), backoff_base_seconds=10)

        with pytest.raises(RequestCancelledError):
            await executor.execute(REQUEST, max_attempts=3, cancel=cancel)
        assert len(calls) == 1


class TestRaceCancel:
    @pytest.mark.asyncio()
    async def test_returns_result(self) -> None:
        async def work() -> int:
            return 42

        assert await race_cancel(work(), asyncio.Event()) == 42

    @pytest.mark.asyncio()
    async def test_propagates_exception(self) -> None:
        async def work() -> int:
            msg = "boom"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="boom"):
            await race_cancel(work(), None)

    @pytest.mark.asyncio()
    async def test_timeout(self) -> None:
        with pytest.raises(TimeoutError):
            await race_cancel(asyncio.sleep(5), None, timeout=0.01)

    @staticmethod
    def _late_response() -> tuple[httpx.Response, Callable[[], Awaitable[httpx.Response]]]:
        async def body() -> AsyncIterator[bytes]:
            yield b"{}"

        response = httpx.Response(200, content=body())

        async def send() -> httpx.Response:
            # Finishes the send even when cancelled, like a response landing at the deadline.
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                pass
            return response

        return response, send

    @pytest.mark.asyncio()
    async def test_response_finishing_at_timeout_is_closed(self) -> None:
        response, send = self._late_response()

        with pytest.raises(TimeoutError):
            await race_cancel(send(), None, timeout=0.01)

        assert response.is_closed

    @pytest.mark.asyncio()
    async def test_response_finishing_at_cancel_is_closed(self) -> None:
        response, send = self._late_response()
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, cancel.set)

        with pytest.raises(RequestCancelledError):
            await race_cancel(send(), cancel)

        assert response.is_closed


class TestGuardStream:
    @pytest.mark.asyncio()
    async def test_passes_chunks_through(self) -> None:
        async def chunks() -> AsyncIterator[bytes]:
            yield b"a"
            yield b"b"

        received = [chunk async for chunk in guard_stream(chunks(), asyncio.Event())]
        assert received == [b"a", b"b"]

    @pytest.mark.asyncio()
    async def test_cancel_interrupts_a_stalled_read(self) -> None:
        async def chunks() -> AsyncIterator[bytes]:
            yield b"first"
            await asyncio.sleep(5)
            yield b"never"

        cancel = asyncio.Event()
        received: list[bytes] = []
        with pytest.raises(RequestCancelledError):
            async for chunk in guard_stream(chunks(), cancel):
                received.append(chunk)
                asyncio.get_running_loop().call_later(0.01, cancel.set)
        assert received == [b"first"]
