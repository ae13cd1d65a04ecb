"""Error taxonomy for the short link service."""


class ShortLinkError(Exception):
    """Base class for all short link errors."""


class InvalidInputError(ShortLinkError):
    """Malformed input reached the service layer."""


class NotFoundError(ShortLinkError):
    """The requested short token does not exist."""

    def __init__(self, short_token: str):
        super().__init__(f"Short token '{short_token}' not found")
        self.short_token = short_token


class TokenSpaceExhaustedError(ShortLinkError):
    """No free token could be found within the retry budget."""


class StoreError(ShortLinkError):
    """Base class for link store errors."""


class StoreUnavailableError(StoreError):
    """The durable store could not be reached or failed unexpectedly."""


class ConflictError(StoreError):
    """A uniqueness constraint of the store was violated."""


class TokenConflictError(ConflictError):
    """The short token is already taken."""


class LongUrlConflictError(ConflictError):
    """Another active record already exists for the long URL."""
