"""Exception types raised by the generation pipeline and gatekeeper."""


class ArtGenError(Exception):
    """Base class for all artwork generation errors."""


class PromptRejectedError(ArtGenError):
    """The prompt failed validation. ``reason`` is shown to the caller."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RateLimitExceededError(ArtGenError):
    """The caller used up its generation quota for the current window."""

    def __init__(self, retry_after: int, limit: int, window_seconds: int) -> None:
        super().__init__(
            f"Maximum {limit} generations per {window_seconds} seconds. "
            f"Retry in {retry_after} seconds."
        )
        self.retry_after = retry_after
        self.limit = limit
        self.window_seconds = window_seconds


class SchemaMismatchError(ArtGenError):
    """The value stream is shorter than the parameter schema requires."""


class ParameterInvariantError(ArtGenError):
    """A synthesized parameter fell outside its declared range."""

    def __init__(self, field: str, value: object, low: float, high: float) -> None:
        super().__init__(f"{field}={value!r} outside declared range [{low}, {high}]")
        self.field = field
        self.value = value
        self.low = low
        self.high = high


class ArtworkNotFoundError(ArtGenError):
    """No stored artwork matches the requested generation number."""
