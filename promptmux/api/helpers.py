"""Shared helpers for API routers."""

from fastapi import HTTPException

from promptmux.core.errors import (
    InvalidKindError,
    LastItemError,
    NotFoundError,
    PersistenceError,
    PromptMuxError,
    TransportError,
    UpstreamProtocolError,
    UpstreamStatusError,
)

_STATUS_BY_ERROR: list[tuple[type[PromptMuxError], int]] = [
    (NotFoundError, 404),
    (LastItemError, 409),
    (InvalidKindError, 400),
    (UpstreamProtocolError, 400),
    (UpstreamStatusError, 502),
    (TransportError, 502),
    (PersistenceError, 500),
]


def to_http_exception(error: PromptMuxError) -> HTTPException:
    """Translate a domain error into an HTTPException carrying its message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
