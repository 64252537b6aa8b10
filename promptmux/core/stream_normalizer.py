"""Protocol-agnostic SSE normalization.

Turns a provider's raw byte stream into canonical events: zero or more
``ChunkEvent`` followed by exactly one ``DoneEvent`` or ``ErrorEvent``.
"""

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator

from promptmux.core.errors import ResponseShapeError
from promptmux.core.logging import get_logger
from promptmux.core.provider_protocols import StreamProtocol
from promptmux.core.stream_events import ChunkEvent, DoneEvent, ErrorEvent, StreamEvent

logger = get_logger(__name__)

SSE_DATA_PREFIX = "data: "


class SSELineBuffer:
    """Splits a byte stream into lines, holding partial lines across reads.

    Decoding is incremental, so a multi-byte UTF-8 character split between
    two reads is reassembled.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, data: bytes) -> list[str]:
        """Add bytes and return every line completed by them."""
        self._pending += self._decoder.decode(data)
        *lines, self._pending = self._pending.split("\n")
        return lines

    def flush(self) -> list[str]:
        """Return the unterminated tail left at end of stream."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return [tail] if tail else []


def interpret_line(line: str, protocol: StreamProtocol) -> ChunkEvent | DoneEvent | None:
    """
    Turn one SSE line into an event, or None if it carries nothing.

    Blank lines, non-``data:`` lines, non-JSON payloads and payloads that do
    not fit the protocol's shape are skipped.
    """
    line = line.strip()
    if not line.startswith(SSE_DATA_PREFIX):
        return None

    data = line[len(SSE_DATA_PREFIX):]
    try:
        return protocol.parse_data(data)
    except json.JSONDecodeError:
        return None
    except ResponseShapeError as e:
        logger.debug(f"Skipping {protocol.name} payload: {e}")
        return None


async def _iter_lines(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[str]:
    buffer = SSELineBuffer()
    async for data in byte_stream:
        for line in buffer.feed(data):
            yield line
    for line in buffer.flush():
        yield line


async def normalize_stream(
    byte_stream: AsyncIterable[bytes], protocol: StreamProtocol
) -> AsyncIterator[StreamEvent]:
    """
    Normalize a provider byte stream into canonical events.

    A terminal marker ends processing; the rest of the stream is discarded.
    A read error yields one ErrorEvent and ends the sequence. A stream that
    closes without a marker still ends with DoneEvent.

    Args:
        byte_stream: Raw response body chunks, split at arbitrary boundaries
        protocol: Protocol family used to interpret payloads

    Yields:
        ChunkEvent, then exactly one DoneEvent or ErrorEvent
    """
    lines = _iter_lines(byte_stream)
    try:
        while True:
            try:
                line = await lines.__anext__()
            except StopAsyncIteration:
                break
            except Exception as e:
                logger.warning(f"{protocol.name} stream read failed: {e}")
                yield ErrorEvent(str(e) or e.__class__.__name__)
                return

            event = interpret_line(line, protocol)
            if event is None:
                continue
            yield event
            if isinstance(event, DoneEvent):
                return
    finally:
        await lines.aclose()

    yield DoneEvent()
