"""Wire formats of the two supported provider protocol families.

Each family knows how to build its streaming request and how to turn one
SSE ``data:`` payload into a canonical event. Payloads are validated against
small pydantic shapes with explicit field paths, so a malformed payload fails
in one place with ResponseShapeError.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from promptmux.core.config import Settings, get_settings
from promptmux.core.errors import ResponseShapeError, UpstreamProtocolError
from promptmux.core.provider_config import ProviderConfig, resolve_model
from promptmux.core.stream_events import ChunkEvent, DoneEvent

OPENAI_DONE_MARKER = "[DONE]"
ANTHROPIC_DELTA_TYPE = "content_block_delta"
ANTHROPIC_STOP_TYPE = "message_stop"


@dataclass
class ProviderRequest:
    """Everything needed to issue the outbound request."""

    url: str
    headers: dict[str, str]
    body: dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Payload shapes
# ============================================================================


class _OpenAIDelta(BaseModel):
    content: str | None = None


class _OpenAIChoice(BaseModel):
    delta: _OpenAIDelta = Field(default_factory=_OpenAIDelta)


class OpenAIStreamChunk(BaseModel):
    """``{"choices": [{"delta": {"content": "..."}}]}``"""

    choices: list[_OpenAIChoice] = Field(default_factory=list)


class _AnthropicDelta(BaseModel):
    text: str | None = None


class AnthropicStreamEvent(BaseModel):
    """``{"type": "content_block_delta", "delta": {"text": "..."}}``"""

    type: str
    delta: _AnthropicDelta | None = None


def _validate(shape: type[BaseModel], payload: Any) -> Any:
    try:
        return shape.model_validate(payload)
    except ValidationError as e:
        raise ResponseShapeError(f"Unexpected {shape.__name__} payload: {e}") from e


# ============================================================================
# Families
# ============================================================================


class OpenAIChatProtocol:
    """Chat-completions style: system + user messages, bearer auth, ``[DONE]`` end."""

    name = "openai"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def build_request(
        self, config: ProviderConfig, system_prompt: str, user_content: str
    ) -> ProviderRequest:
        return ProviderRequest(
            url=f"{config.base_url}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {config.api_key}",
            },
            body={
                "model": resolve_model(config, self.settings),
                "stream": True,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
            },
        )

    def parse_data(self, data: str) -> ChunkEvent | DoneEvent | None:
        """
        Interpret the text after ``data: ``.

        Raises:
            json.JSONDecodeError: not JSON
            ResponseShapeError: JSON without the chunk layout
        """
        if data.strip() == OPENAI_DONE_MARKER:
            return DoneEvent()

        chunk = _validate(OpenAIStreamChunk, json.loads(data))
        if not chunk.choices:
            return None
        text = chunk.choices[0].delta.content
        return ChunkEvent(text) if text else None


class AnthropicMessagesProtocol:
    """Messages style: one user message, ``x-api-key`` auth, ``message_stop`` end."""

    name = "anthropic"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def build_request(
        self, config: ProviderConfig, system_prompt: str, user_content: str
    ) -> ProviderRequest:
        # No separate system field: the instruction is prepended to the user text
        return ProviderRequest(
            url=f"{config.base_url}/messages",
            headers={
                "Content-Type": "application/json",
                "x-api-key": config.api_key,
                "anthropic-version": self.settings.ANTHROPIC_VERSION,
            },
            body={
                "model": resolve_model(config, self.settings),
                "max_tokens": self.settings.ANTHROPIC_MAX_TOKENS,
                "stream": True,
                "messages": [
                    {"role": "user", "content": f"{system_prompt}\n\n{user_content}"},
                ],
            },
        )

    def parse_data(self, data: str) -> ChunkEvent | DoneEvent | None:
        """
        Interpret the text after ``data: ``.

        Raises:
            json.JSONDecodeError: not JSON
            ResponseShapeError: JSON without a ``type`` field
        """
        event = _validate(AnthropicStreamEvent, json.loads(data))
        if event.type == ANTHROPIC_STOP_TYPE:
            return DoneEvent()
        if event.type == ANTHROPIC_DELTA_TYPE and event.delta and event.delta.text:
            return ChunkEvent(event.delta.text)
        return None


StreamProtocol = OpenAIChatProtocol | AnthropicMessagesProtocol


def get_protocol(config: ProviderConfig, settings: Settings | None = None) -> StreamProtocol:
    """
    Select the protocol family for a provider configuration.

    Raises:
        UpstreamProtocolError: unsupported protocol label
    """
    family = config.require_protocol()
    if family == "anthropic":
        return AnthropicMessagesProtocol(settings)
    if family == "openai":
        return OpenAIChatProtocol(settings)
    raise UpstreamProtocolError(f"Unsupported LLM provider protocol: {family}")
