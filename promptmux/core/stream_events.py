"""Canonical stream events: chunk, done, error."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChunkEvent:
    """Incremental text in provider arrival order."""

    text: str
    kind: str = "chunk"


@dataclass(frozen=True)
class DoneEvent:
    """Terminal event for a stream that completed."""

    kind: str = "done"


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal event for a stream that failed while reading."""

    message: str
    kind: str = "error"


StreamEvent = ChunkEvent | DoneEvent | ErrorEvent
