"""SSE endpoint re-publishing provider streams.

Each canonical event becomes one SSE frame whose ``event:`` line is the
topic (``refine:chunk``, ``refine:done``, ``refine:error``).
"""

import asyncio
import json

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from promptmux.api.helpers import to_http_exception
from promptmux.core.errors import PromptMuxError
from promptmux.core.logging import get_logger
from promptmux.core.provider_config import ProviderConfig, load_provider_config
from promptmux.core.provider_stream import stream_purpose
from promptmux.core.schemas_workspace import StreamRequest

logger = get_logger(__name__)

router = APIRouter()


def get_provider_config() -> ProviderConfig:
    """Provider configuration dependency (reads the settings file per request)."""
    try:
        return load_provider_config()
    except ValueError as e:
        logger.exception("Failed to read provider settings")
        raise HTTPException(status_code=500, detail=f"Failed to read settings: {e}") from e


def get_provider_client() -> httpx.AsyncClient | None:
    """Shared upstream client dependency; None lets each stream own its client."""
    return None


def _sse_frame(topic: str, payload: str | None) -> str:
    """Format one topic/payload pair as an SSE frame."""
    if topic.endswith(":chunk"):
        data = {"text": payload}
    elif topic.endswith(":error"):
        data = {"message": payload}
    else:
        data = {}
    return f"event: {topic}\ndata: {json.dumps(data)}\n\n"


def _is_terminal(topic: str) -> bool:
    return topic.endswith(":done") or topic.endswith(":error")


@router.post("/{purpose}")
async def stream(
    purpose: str,
    request: StreamRequest,
    config: ProviderConfig = Depends(get_provider_config),
    client: httpx.AsyncClient | None = Depends(get_provider_client),
) -> StreamingResponse:
    """
    Stream a provider response for one purpose (refine, er, uml, flowchart,
    user_journey, user_stories).

    Failures before streaming starts (unsupported protocol, transport error,
    non-success upstream status) are returned as plain HTTP errors.
    """
    queue: asyncio.Queue[tuple[str, str | None]] = asyncio.Queue()

    async def emit(topic: str, payload: str | None) -> None:
        await queue.put((topic, payload))

    try:
        await stream_purpose(purpose, request.content, emit, config=config, client=client)
    except PromptMuxError as e:
        logger.warning(f"Could not start {purpose} stream: {e}")
        raise to_http_exception(e) from e

    async def _sse_generator():
        while True:
            topic, payload = await queue.get()
            yield _sse_frame(topic, payload)
            if _is_terminal(topic):
                break

    return StreamingResponse(_sse_generator(), media_type="text/event-stream")
