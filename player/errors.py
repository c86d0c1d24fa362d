"""Player error types."""


class PlayerError(Exception):
    """Base class for player errors."""


class LoadError(PlayerError):
    """Fetching or parsing question sets failed; the whole load is aborted."""

    def __init__(self, message: str, set_id: str | None = None):
        super().__init__(message)
        self.set_id = set_id


class InvalidParameters(PlayerError):
    """Level, week or set identifiers are missing or malformed."""


class SpeechUnavailable(PlayerError):
    """The runtime has no usable text-to-speech output."""
