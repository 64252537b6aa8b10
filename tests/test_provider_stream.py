"""Tests for provider requests and the perform_provider_stream primitive."""

import json

import httpx
import pytest

from promptmux.core.errors import (
    InvalidKindError,
    TransportError,
    UpstreamProtocolError,
    UpstreamStatusError,
)
from promptmux.core.provider_config import ProviderConfig
from promptmux.core.provider_protocols import (
    AnthropicMessagesProtocol,
    OpenAIChatProtocol,
    get_protocol,
)
from promptmux.core.provider_stream import (
    perform_provider_stream,
    start_provider_stream,
    stream_purpose,
)
from promptmux.core.stream_events import ChunkEvent, DoneEvent

OPENAI_CONFIG = ProviderConfig(provider="openai", api_key="sk-test", base_url="https://llm.test/v1/")
ANTHROPIC_CONFIG = ProviderConfig(
    provider="anthropic", api_key="ak-test", base_url="https://claude.test/v1", model="claude-x"
)

OPENAI_SSE = (
    'data: {"choices":[{"delta":{"content":"Re"}}]}\n\n'
    'data: {"choices":[{"delta":{"content":"fined"}}]}\n\n'
    "data: [DONE]\n\n"
)


class _BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b'data: {"choices":[{"delta":{"content":"half"}}]}\n\n'
        raise httpx.ReadError("connection dropped")


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRequestBuilding:
    def test_openai_request(self, settings):
        request = OpenAIChatProtocol(settings).build_request(OPENAI_CONFIG, "SYS", "USER")

        assert request.url == "https://llm.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.body["stream"] is True
        assert request.body["model"] == settings.DEFAULT_OPENAI_MODEL
        assert request.body["messages"] == [
            {"role": "system", "content": "SYS"},
            {"role": "user", "content": "USER"},
        ]

    def test_anthropic_request_prepends_system_text(self, settings):
        request = AnthropicMessagesProtocol(settings).build_request(ANTHROPIC_CONFIG, "SYS", "USER")

        assert request.url == "https://claude.test/v1/messages"
        assert request.headers["x-api-key"] == "ak-test"
        assert request.headers["anthropic-version"] == settings.ANTHROPIC_VERSION
        assert "Authorization" not in request.headers
        assert "system" not in request.body
        assert request.body["model"] == "claude-x"
        assert request.body["max_tokens"] == settings.ANTHROPIC_MAX_TOKENS
        assert request.body["messages"] == [{"role": "user", "content": "SYS\n\nUSER"}]

    def test_unsupported_protocol(self):
        config = ProviderConfig(provider="gemini", protocol="gemini", base_url="https://g.test")
        with pytest.raises(UpstreamProtocolError, match="gemini"):
            get_protocol(config)


class TestStartProviderStream:
    @pytest.mark.asyncio
    async def test_non_success_status_fails_synchronously(self):
        def handler(request):
            return httpx.Response(401, text="unauthorized")

        emitted = []
        with pytest.raises(UpstreamStatusError, match="unauthorized") as exc_info:
            await perform_provider_stream(
                OPENAI_CONFIG, "sys", "text", "refine", lambda t, p: emitted.append(t),
                client=_client(handler),
            )

        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "unauthorized"
        assert emitted == []

    @pytest.mark.asyncio
    async def test_connection_failure_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("name resolution failed")

        with pytest.raises(TransportError, match="name resolution failed"):
            await start_provider_stream(OPENAI_CONFIG, "sys", "text", client=_client(handler))

    @pytest.mark.asyncio
    async def test_unencodable_api_key_is_transport_error(self):
        config = ProviderConfig(provider="openai", api_key="kéy", base_url="https://llm.test/v1")
        sent = []

        def handler(request):
            sent.append(request)
            return httpx.Response(200, text=OPENAI_SSE)

        with pytest.raises(TransportError, match="Failed to send request"):
            await start_provider_stream(config, "sys", "text", client=_client(handler))

        assert sent == []

    @pytest.mark.asyncio
    async def test_sends_built_request(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, text=OPENAI_SSE)

        stream = await start_provider_stream(OPENAI_CONFIG, "sys", "text", client=_client(handler))
        events = [event async for event in stream.events()]

        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"][1] == {"role": "user", "content": "text"}
        assert events == [ChunkEvent("Re"), ChunkEvent("fined"), DoneEvent()]


class TestPerformProviderStream:
    @pytest.mark.asyncio
    async def test_publishes_prefixed_events_in_order(self):
        published = []

        def handler(request):
            return httpx.Response(200, text=OPENAI_SSE)

        task = await perform_provider_stream(
            OPENAI_CONFIG, "sys", "text", "refine",
            lambda topic, payload: published.append((topic, payload)),
            client=_client(handler),
        )
        await task

        assert published == [
            ("refine:chunk", "Re"),
            ("refine:chunk", "fined"),
            ("refine:done", None),
        ]

    @pytest.mark.asyncio
    async def test_async_emitter_and_read_error(self):
        published = []

        async def emit(topic, payload):
            published.append((topic, payload))

        def handler(request):
            return httpx.Response(200, stream=_BrokenStream())

        task = await perform_provider_stream(
            OPENAI_CONFIG, "sys", "text", "er", emit, client=_client(handler)
        )
        await task

        assert published == [("er:chunk", "half"), ("er:error", "connection dropped")]

    @pytest.mark.asyncio
    async def test_failing_emitter_still_gets_terminal_error(self):
        published = []

        def emit(topic, payload):
            published.append((topic, payload))
            if topic.endswith(":chunk"):
                raise RuntimeError("listener crashed")

        def handler(request):
            return httpx.Response(200, text=OPENAI_SSE)

        task = await perform_provider_stream(
            OPENAI_CONFIG, "sys", "text", "refine", emit, client=_client(handler)
        )
        await task

        assert published == [("refine:chunk", "Re"), ("refine:error", "listener crashed")]

    @pytest.mark.asyncio
    async def test_anthropic_stream(self):
        body = (
            'event: content_block_delta\ndata: {"type":"content_block_delta","delta":{"text":"A"}}\n\n'
            'event: message_stop\ndata: {"type":"message_stop"}\n\n'
        )
        published = []

        def handler(request):
            assert request.headers["x-api-key"] == "ak-test"
            return httpx.Response(200, text=body)

        task = await perform_provider_stream(
            ANTHROPIC_CONFIG, "sys", "text", "uml",
            lambda topic, payload: published.append((topic, payload)),
            client=_client(handler),
        )
        await task

        assert published == [("uml:chunk", "A"), ("uml:done", None)]


class TestStreamPurpose:
    @pytest.mark.asyncio
    async def test_purpose_selects_prompt_and_prefix(self):
        seen = {}
        published = []

        def handler(request):
            seen["system"] = json.loads(request.content)["messages"][0]["content"]
            return httpx.Response(200, text=OPENAI_SSE)

        task = await stream_purpose(
            "flowchart", "checkout process",
            lambda topic, payload: published.append(topic),
            config=OPENAI_CONFIG, client=_client(handler),
        )
        await task

        assert "flowchart" in seen["system"]
        assert published[-1] == "flowchart:done"

    @pytest.mark.asyncio
    async def test_unknown_purpose(self):
        with pytest.raises(InvalidKindError, match="haiku"):
            await stream_purpose("haiku", "text", lambda t, p: None, config=OPENAI_CONFIG)
