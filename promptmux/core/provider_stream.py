"""Perform one provider stream and publish its canonical events.

``perform_provider_stream`` is the single primitive every streaming purpose
goes through. Failures before the first byte (bad protocol, transport error,
non-success status) are raised to the caller; failures while reading become
an ``{prefix}:error`` event. Streams are fire-and-forget: there is no cancel.
"""

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

import httpx

from promptmux.core.config import Settings
from promptmux.core.errors import InvalidKindError, TransportError, UpstreamStatusError
from promptmux.core.logging import get_logger, log_with_context
from promptmux.core.prompts import STREAM_PROMPTS
from promptmux.core.provider_config import ProviderConfig, load_provider_config
from promptmux.core.provider_protocols import StreamProtocol, get_protocol
from promptmux.core.stream_events import ChunkEvent, DoneEvent, StreamEvent
from promptmux.core.stream_normalizer import normalize_stream

logger = get_logger(__name__)

# (topic, payload) -> None, sync or async
EventEmitter = Callable[[str, str | None], Awaitable[None] | None]

# Strong references so running streams are not garbage collected
_background_tasks: set[asyncio.Task] = set()


class ProviderStream:
    """An open, successful provider response awaiting consumption."""

    def __init__(
        self,
        response: httpx.Response,
        protocol: StreamProtocol,
        owned_client: httpx.AsyncClient | None = None,
    ):
        self.response = response
        self.protocol = protocol
        self._owned_client = owned_client

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Canonical events; closes the response when finished."""
        try:
            async for event in normalize_stream(self.response.aiter_bytes(), self.protocol):
                yield event
        finally:
            await self.response.aclose()
            if self._owned_client is not None:
                await self._owned_client.aclose()


async def start_provider_stream(
    config: ProviderConfig,
    system_prompt: str,
    user_content: str,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> ProviderStream:
    """
    Send the streaming request and check its status.

    Args:
        config: Provider configuration
        system_prompt: System instruction
        user_content: User text
        client: Shared client (a private one is created and closed otherwise)
        settings: Settings override

    Returns:
        ProviderStream ready to be consumed

    Raises:
        UpstreamProtocolError: unsupported protocol
        TransportError: request could not be built or sent
        UpstreamStatusError: non-success status; message is the response body
    """
    protocol = get_protocol(config, settings)

    owned_client = None
    if client is None:
        owned_client = client = httpx.AsyncClient()

    try:
        request = protocol.build_request(config, system_prompt, user_content)
        http_request = client.build_request(
            "POST", request.url, headers=request.headers, json=request.body
        )
        response = await client.send(http_request, stream=True)
    # Header encoding and URL parsing fail with ValueError / TypeError
    except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError) as e:
        if owned_client is not None:
            await owned_client.aclose()
        raise TransportError(f"Failed to send request to LLM API: {e}") from e

    if not response.is_success:
        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            body = "Unknown error"
        finally:
            await response.aclose()
            if owned_client is not None:
                await owned_client.aclose()

        logger.warning(f"{protocol.name} request failed with status {response.status_code}")
        raise UpstreamStatusError(response.status_code, body)

    return ProviderStream(response, protocol, owned_client)


def event_topic(prefix: str, event: StreamEvent) -> str:
    """Canonical topic name, e.g. ``refine:chunk``."""
    return f"{prefix}:{event.kind}"


def event_payload(event: StreamEvent) -> str | None:
    if isinstance(event, ChunkEvent):
        return event.text
    if isinstance(event, DoneEvent):
        return None
    return event.message


async def _emit(emit: EventEmitter, topic: str, payload: str | None) -> None:
    result = emit(topic, payload)
    if inspect.isawaitable(result):
        await result


async def publish_events(stream: ProviderStream, prefix: str, emit: EventEmitter) -> None:
    """
    Push every event of the stream to ``emit`` in order.

    If ``emit`` itself fails, one ``{prefix}:error`` event is still attempted
    so listeners see a terminal event.
    """
    chunks = 0
    terminal_sent = False
    try:
        async for event in stream.events():
            if isinstance(event, ChunkEvent):
                chunks += 1
            await _emit(emit, event_topic(prefix, event), event_payload(event))
            terminal_sent = not isinstance(event, ChunkEvent)
    except Exception as e:
        logger.exception(f"Publishing {prefix} events failed")
        if not terminal_sent:
            try:
                await _emit(emit, f"{prefix}:error", str(e) or e.__class__.__name__)
            except Exception:
                logger.exception(f"Could not publish {prefix}:error")
        return

    log_with_context(logger, logging.INFO, "Provider stream finished", prefix=prefix, chunks=chunks)


async def perform_provider_stream(
    config: ProviderConfig,
    system_prompt: str,
    user_content: str,
    prefix: str,
    emit: EventEmitter,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> asyncio.Task:
    """
    Start a provider stream and publish it in the background.

    Args:
        config: Provider configuration
        system_prompt: System instruction
        user_content: User text
        prefix: Topic prefix for published events
        emit: Receives (topic, payload) for each event
        client: Optional shared httpx client
        settings: Settings override

    Returns:
        The background task publishing events

    Raises:
        UpstreamProtocolError, TransportError, UpstreamStatusError: before streaming
    """
    stream = await start_provider_stream(config, system_prompt, user_content, client, settings)

    task = asyncio.create_task(publish_events(stream, prefix, emit))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    logger.info(f"Started {prefix} stream via {config.provider}")
    return task


async def stream_purpose(
    purpose: str,
    content: str,
    emit: EventEmitter,
    config: ProviderConfig | None = None,
    client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> asyncio.Task:
    """
    Stream one of the named purposes (refine, er, uml, ...).

    The purpose selects the system instruction and is used as topic prefix.

    Raises:
        InvalidKindError: unknown purpose
    """
    system_prompt = STREAM_PROMPTS.get(purpose)
    if system_prompt is None:
        raise InvalidKindError(f"Unknown stream purpose: {purpose}")

    config = config or load_provider_config(settings=settings)
    return await perform_provider_stream(
        config, system_prompt, content, purpose, emit, client=client, settings=settings
    )
