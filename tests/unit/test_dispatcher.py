"""Tests for upstream dispatch with key failover, using RESPX."""

import json

import httpx
import pytest

from modelgate.api.services.dispatcher import RequestDispatcher
from modelgate.core.errors import UpstreamError
from modelgate.core.provider.models import ProviderSpec
from modelgate.models.unified import UnifiedChatRequest
from tests.fixtures.mock_http import (
    GEMINI_STREAM_URL,
    GEMINI_URL,
    OPENAI_URL,
    create_gemini_error,
    create_sse_response,
)


def chat_request(model, stream=False):
    return UnifiedChatRequest(
        model=model, messages=[{"role": "user", "content": "hi"}], stream=stream
    )


@pytest.fixture
def openai_two_keys(registry):
    registry.register_provider(
        ProviderSpec(
            name="openai",
            base_url=OPENAI_URL,
            api_keys=["o-key-1", "o-key-2"],
            models=["gpt-4o"],
        )
    )
    return registry


@pytest.mark.unit
@pytest.mark.asyncio
class TestRequestDispatcher:
    async def test_retries_with_another_key_after_401(
        self, mock_upstream, openai_two_keys, openai_chat_completion
    ):
        route = mock_upstream.post(OPENAI_URL).mock(
            side_effect=[
                httpx.Response(401, json={"error": {"message": "bad key"}}),
                httpx.Response(200, json=openai_chat_completion),
            ]
        )

        async with httpx.AsyncClient() as client:
            dispatcher = RequestDispatcher(openai_two_keys, client)
            result = await dispatcher.dispatch(
                openai_two_keys.resolve_model_route("gpt-4o"), chat_request("gpt-4o")
            )

        assert result.status_code == 200
        assert result.body == openai_chat_completion
        assert [call.request.headers["authorization"] for call in route.calls] == [
            "Bearer o-key-1",
            "Bearer o-key-2",
        ]
        sent = json.loads(route.calls.last.request.content)
        assert sent["model"] == "gpt-4o"
        assert sent["messages"] == [{"role": "user", "content": "hi"}]

    async def test_returns_last_error_when_every_key_fails(self, mock_upstream, openai_two_keys):
        route = mock_upstream.post(OPENAI_URL).mock(
            return_value=httpx.Response(429, json={"error": {"message": "slow down"}})
        )

        async with httpx.AsyncClient() as client:
            result = await RequestDispatcher(openai_two_keys, client).dispatch(
                openai_two_keys.resolve_model_route("gpt-4o"), chat_request("gpt-4o")
            )

        assert route.call_count == 2
        assert result.status_code == 429
        assert result.body == {"error": {"message": "slow down"}}

    async def test_non_retryable_status_is_returned_immediately(
        self, mock_upstream, openai_two_keys
    ):
        route = mock_upstream.post(OPENAI_URL).mock(
            return_value=httpx.Response(400, json={"error": {"message": "bad request"}})
        )

        async with httpx.AsyncClient() as client:
            result = await RequestDispatcher(openai_two_keys, client).dispatch(
                openai_two_keys.resolve_model_route("gpt-4o"), chat_request("gpt-4o")
            )

        assert route.call_count == 1
        assert result.status_code == 400

    async def test_transport_errors_raise_upstream_error(self, mock_upstream, openai_two_keys):
        route = mock_upstream.post(OPENAI_URL).mock(side_effect=httpx.ConnectError("down"))

        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamError, match="All 2 attempt"):
                await RequestDispatcher(openai_two_keys, client).dispatch(
                    openai_two_keys.resolve_model_route("gpt-4o"), chat_request("gpt-4o")
                )

        assert route.call_count == 2

    async def test_max_attempts_caps_retries(self, mock_upstream, openai_two_keys):
        route = mock_upstream.post(OPENAI_URL).mock(side_effect=httpx.ConnectError("down"))

        async with httpx.AsyncClient() as client:
            with pytest.raises(UpstreamError):
                await RequestDispatcher(openai_two_keys, client, max_attempts=1).dispatch(
                    openai_two_keys.resolve_model_route("gpt-4o"), chat_request("gpt-4o")
                )

        assert route.call_count == 1

    async def test_gemini_request_uses_goog_header(
        self, mock_upstream, registry, gemini_spec, gemini_generate_content
    ):
        registry.register_provider(gemini_spec)
        route = mock_upstream.post(GEMINI_URL).mock(
            return_value=httpx.Response(200, json=gemini_generate_content)
        )

        async with httpx.AsyncClient() as client:
            result = await RequestDispatcher(registry, client).dispatch(
                registry.resolve_model_route("gemini,gemini-2.5-pro"),
                chat_request("gemini,gemini-2.5-pro"),
            )

        request = route.calls.last.request
        assert request.headers["x-goog-api-key"] == "g-key-1"
        assert "authorization" not in request.headers
        assert json.loads(request.content)["contents"] == [
            {"role": "user", "parts": [{"text": "hi"}]}
        ]
        assert result.body["choices"][0]["message"]["content"] == "Hello from Gemini!"
        assert result.metadata["transformer"] == "gemini"

    async def test_gemini_stream(
        self, mock_upstream, registry, gemini_spec, gemini_stream_events
    ):
        registry.register_provider(gemini_spec)
        mock_upstream.post(GEMINI_STREAM_URL).mock(
            return_value=create_sse_response(gemini_stream_events)
        )

        async with httpx.AsyncClient() as client:
            result = await RequestDispatcher(registry, client).dispatch(
                registry.resolve_model_route("gemini-2.5-pro"),
                chat_request("gemini-2.5-pro", stream=True),
            )
            chunks = [chunk async for chunk in result.stream]

        assert chunks[-1] == "data: [DONE]\n\n"
        assert len(chunks) == 3

    async def test_gemini_stream_error_is_read(self, mock_upstream, registry, gemini_spec):
        registry.register_provider(gemini_spec)
        error = create_gemini_error(400, "INVALID_ARGUMENT", "bad")
        mock_upstream.post(GEMINI_STREAM_URL).mock(return_value=httpx.Response(400, json=error))

        async with httpx.AsyncClient() as client:
            result = await RequestDispatcher(registry, client).dispatch(
                registry.resolve_model_route("gemini-2.5-pro"),
                chat_request("gemini-2.5-pro", stream=True),
            )

        assert result.stream is None
        assert result.status_code == 400
        assert result.body == error
