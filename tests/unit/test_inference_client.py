"""Unit tests for the inference client."""

import asyncio
import base64
import json
from unittest.mock import call

import httpx
import pytest

from services.exceptions import (
    ConfigurationError,
    MalformedInputError,
    TransientUpstreamError,
    UpstreamRejectionError,
)
from services.inference_client import (
    InferenceClient,
    cache_key,
    is_retryable_status,
    status_backoff_delay,
    transport_backoff_delay,
)
from utils import TTLCache


class TestBackoff:
    """Test cases for the backoff schedules."""

    def test_status_backoff_doubles_and_caps(self) -> None:
        assert [status_backoff_delay(n) for n in range(1, 6)] == [2.0, 4.0, 8.0, 8.0, 8.0]

    def test_transport_backoff_is_linear(self) -> None:
        assert transport_backoff_delay(1) == pytest.approx(0.2)
        assert transport_backoff_delay(2) == pytest.approx(0.4)

    @pytest.mark.parametrize("status,expected", [(429, True), (500, True), (503, True), (400, False), (404, False)])
    def test_retryable_status(self, status: int, expected: bool) -> None:
        assert is_retryable_status(status) is expected


class TestCacheKey:
    """Test cases for request identity hashing."""

    def test_key_ignores_dict_ordering(self) -> None:
        assert cache_key("m", {"a": 1, "b": 2}) == cache_key("m", {"b": 2, "a": 1})

    def test_key_depends_on_every_component(self) -> None:
        base = cache_key("m", {"inputs": "hi"}, "audio/wav")

        assert base != cache_key("other", {"inputs": "hi"}, "audio/wav")
        assert base != cache_key("m", {"inputs": "hello"}, "audio/wav")
        assert base != cache_key("m", {"inputs": "hi"}, None)


class TestInferenceClient:
    """Test cases for InferenceClient.invoke."""

    @pytest.fixture
    def make_client(self, mock_config, no_sleep):
        """Build a client over a scripted transport with backoff sleeps recorded, not awaited."""
        def factory(transport, config=None):
            return InferenceClient(config or mock_config, transport=transport.transport(), sleep=no_sleep)

        return factory

    @pytest.mark.asyncio
    async def test_sends_expected_request(self, make_client, recording_transport) -> None:
        transport = recording_transport([httpx.Response(200, json=[{"generated_text": "hello"}])])
        client = make_client(transport)

        await client.invoke("test/model", {"inputs": "hi"}, accept="application/json")

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://inference.test/models/test/model"
        assert request.headers["Authorization"] == "Bearer test-api-key"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"
        assert json.loads(request.content) == {"inputs": "hi"}
        await client.stop()

    @pytest.mark.asyncio
    async def test_caches_json_responses(self, make_client, recording_transport) -> None:
        payload = [{"generated_text": "hello"}]
        transport = recording_transport([httpx.Response(200, json=payload)])
        client = make_client(transport)

        first = await client.invoke("test/model", {"inputs": "hi"})
        second = await client.invoke("test/model", {"inputs": "hi"})

        assert first == payload
        assert second == payload
        assert transport.calls == 1
        await client.stop()

    @pytest.mark.asyncio
    async def test_different_payloads_are_not_deduplicated(self, make_client, recording_transport) -> None:
        transport = recording_transport([httpx.Response(200, json={"ok": True})])
        client = make_client(transport)

        await client.invoke("test/model", {"inputs": "one"})
        await client.invoke("test/model", {"inputs": "two"})

        assert transport.calls == 2
        await client.stop()

    @pytest.mark.asyncio
    async def test_expired_cache_entry_triggers_new_call(self, mock_config, no_sleep, recording_transport) -> None:
        now = [0.0]
        cache = TTLCache(10, 60, clock=lambda: now[0])
        transport = recording_transport([httpx.Response(200, json={"ok": True})])
        client = InferenceClient(mock_config, cache=cache, transport=transport.transport(), sleep=no_sleep)

        await client.invoke("test/model", {"inputs": "hi"})
        now[0] = 61.0
        await client.invoke("test/model", {"inputs": "hi"})

        assert transport.calls == 2
        await client.stop()

    @pytest.mark.asyncio
    async def test_injected_empty_cache_is_kept(self, mock_config, recording_transport, no_sleep) -> None:
        shared = TTLCache(10, 60)
        transport = recording_transport([httpx.Response(200, json={"ok": True})])
        first = InferenceClient(mock_config, cache=shared, transport=transport.transport(), sleep=no_sleep)
        second = InferenceClient(mock_config, cache=shared, transport=transport.transport(), sleep=no_sleep)

        assert first.cache is shared
        assert second.cache is shared

        await first.invoke("x/y", {"a": 1})
        assert await second.invoke("x/y", {"a": 1}) == {"ok": True}

        assert transport.calls == 1
        assert len(shared) == 1
        await first.stop()
        await second.stop()

    @pytest.mark.asyncio
    async def test_returns_base64_for_audio(self, make_client, recording_transport) -> None:
        raw = b"RIFF\x00\x01AUDIO"
        transport = recording_transport(
            [httpx.Response(200, content=raw, headers={"content-type": "audio/mpeg"})]
        )
        client = make_client(transport)

        result = await client.invoke("facebook/mms-tts", {"inputs": "hello"}, accept="audio/mpeg")

        assert result["contentType"].startswith("audio/")
        assert result["contentType"] == "audio/mpeg"
        assert base64.b64decode(result["base64"]) == raw
        await client.stop()

    @pytest.mark.asyncio
    async def test_audio_content_type_falls_back_to_accept(self, make_client, recording_transport) -> None:
        transport = recording_transport([httpx.Response(200, content=b"abc")])
        client = make_client(transport)

        result = await client.invoke("facebook/mms-tts", {"inputs": "hello"}, accept="audio/wav")

        assert result["contentType"] == "audio/wav"
        await client.stop()

    @pytest.mark.asyncio
    async def test_retries_on_5xx_then_succeeds(self, make_client, recording_transport, no_sleep) -> None:
        transport = recording_transport([
            httpx.Response(500, text="err"),
            httpx.Response(503, text="err"),
            httpx.Response(200, json={"ok": True}),
        ])
        client = make_client(transport)

        result = await client.invoke("x/y", {"a": 1})

        assert result == {"ok": True}
        assert transport.calls == 3
        assert no_sleep.await_args_list == [call(2.0), call(4.0)]
        await client.stop()

    @pytest.mark.asyncio
    async def test_retries_on_429(self, make_client, recording_transport) -> None:
        transport = recording_transport([
            httpx.Response(429, text="slow down"),
            httpx.Response(200, json={"ok": True}),
        ])
        client = make_client(transport)

        assert await client.invoke("x/y", {"a": 1}) == {"ok": True}
        assert transport.calls == 2
        await client.stop()

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_last_error(self, make_client, recording_transport, no_sleep) -> None:
        transport = recording_transport([
            httpx.Response(500, text="first"),
            httpx.Response(502, text="second"),
            httpx.Response(503, text="last"),
        ])
        client = make_client(transport)

        with pytest.raises(TransientUpstreamError) as exc_info:
            await client.invoke("x/y", {"a": 1})

        assert exc_info.value.status_code == 503
        assert exc_info.value.body == "last"
        assert transport.calls == 3
        assert no_sleep.await_count == 2
        await client.stop()

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, make_client, recording_transport, no_sleep) -> None:
        transport = recording_transport([httpx.Response(400, text="bad input")])
        client = make_client(transport)

        with pytest.raises(UpstreamRejectionError) as exc_info:
            await client.invoke("x/y", {"a": 1})

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "bad input"
        assert "bad input" in str(exc_info.value)
        assert transport.calls == 1
        no_sleep.assert_not_awaited()
        await client.stop()

    @pytest.mark.asyncio
    async def test_transport_errors_use_linear_backoff(self, make_client, recording_transport, no_sleep) -> None:
        transport = recording_transport([
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("timed out"),
            httpx.Response(200, json={"ok": True}),
        ])
        client = make_client(transport)

        assert await client.invoke("x/y", {"a": 1}) == {"ok": True}
        assert transport.calls == 3
        assert [c.args[0] for c in no_sleep.await_args_list] == pytest.approx([0.2, 0.4])
        await client.stop()

    @pytest.mark.asyncio
    async def test_transport_errors_exhausted(self, make_client, recording_transport) -> None:
        transport = recording_transport([httpx.ConnectError("connection refused")])
        client = make_client(transport)

        with pytest.raises(TransientUpstreamError) as exc_info:
            await client.invoke("x/y", {"a": 1})

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert transport.calls == 3
        await client.stop()

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, make_client, recording_transport) -> None:
        transport = recording_transport([
            httpx.Response(400, text="bad"),
            httpx.Response(200, json={"ok": True}),
        ])
        client = make_client(transport)

        with pytest.raises(UpstreamRejectionError):
            await client.invoke("x/y", {"a": 1})
        assert await client.invoke("x/y", {"a": 1}) == {"ok": True}
        await client.stop()

    @pytest.mark.asyncio
    async def test_invalid_json_body_is_rejected(self, make_client, recording_transport) -> None:
        transport = recording_transport([httpx.Response(200, text="<html>oops</html>")])
        client = make_client(transport)

        with pytest.raises(UpstreamRejectionError):
            await client.invoke("x/y", {"a": 1})
        assert len(client.cache) == 0
        await client.stop()

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_before_network(self, mock_config, recording_transport, make_client) -> None:
        config = mock_config.model_copy(update={"hugging_face_api_key": None})
        transport = recording_transport([httpx.Response(200, json={})])
        client = make_client(transport, config)

        with pytest.raises(ConfigurationError):
            await client.invoke("x/y", {"a": 1})
        assert transport.calls == 0

    @pytest.mark.asyncio
    async def test_cache_hit_served_without_api_key(self, mock_config, recording_transport, no_sleep) -> None:
        config = mock_config.model_copy(update={"hugging_face_api_key": None})
        cache = TTLCache(10, 60)
        cache.set(cache_key("x/y", {"a": 1}), {"cached": True})
        transport = recording_transport([httpx.Response(200, json={})])
        client = InferenceClient(config, cache=cache, transport=transport.transport(), sleep=no_sleep)

        assert await client.invoke("x/y", {"a": 1}) == {"cached": True}
        assert transport.calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("model_id,payload", [("", {"a": 1}), ("   ", {"a": 1}), ("x/y", None)])
    async def test_malformed_input_rejected(self, make_client, recording_transport, model_id, payload) -> None:
        transport = recording_transport([httpx.Response(200, json={})])
        client = make_client(transport)

        with pytest.raises(MalformedInputError):
            await client.invoke(model_id, payload)
        assert transport.calls == 0

    @pytest.mark.asyncio
    async def test_cancellation_stops_retries_and_keeps_cache(self, mock_config, recording_transport) -> None:
        transport = recording_transport([
            httpx.Response(200, json={"kept": True}),
        ])
        client = InferenceClient(mock_config, transport=transport.transport())
        await client.invoke("x/y", {"a": 1})

        transport._responses = [httpx.Response(503, text="busy")]
        task = asyncio.create_task(client.invoke("x/y", {"b": 2}))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert transport.calls == 2
        assert await client.invoke("x/y", {"a": 1}) == {"kept": True}
        await client.stop()

    @pytest.mark.asyncio
    async def test_health_check_reports_cache(self, make_client, recording_transport) -> None:
        client = make_client(recording_transport([httpx.Response(200, json={})]))

        status = await client.health_check()

        assert status["status"] == "healthy"
        assert status["cache_entries"] == 0
        assert status["cache_capacity"] == 50
