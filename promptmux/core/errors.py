"""Exception taxonomy shared by the workspace tree and the provider gateway."""


class PromptMuxError(Exception):
    """Base class for all domain errors."""


class NotFoundError(PromptMuxError):
    """Raised when an id does not resolve to an entity of the expected kind."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} with id {entity_id} not found")


class LastItemError(PromptMuxError):
    """Raised when removing the sole remaining project."""


class InvalidKindError(PromptMuxError):
    """Raised for an unrecognized item, target or diagram kind."""


class PersistenceError(PromptMuxError):
    """Raised when the mutation was applied in memory but could not be saved."""


class UpstreamProtocolError(PromptMuxError):
    """Raised for an unsupported provider protocol label."""


class TransportError(PromptMuxError):
    """Raised when the provider request cannot be built or sent."""


class UpstreamStatusError(PromptMuxError):
    """Raised when the provider answers with a non-success status.

    The message is the response body so users see the provider's own text.
    """

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(body)


class ResponseShapeError(PromptMuxError):
    """Raised when a provider payload lacks the expected field layout."""
