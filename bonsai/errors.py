"""Exception types shared by the encoder, growth model and session."""


class BonsaiError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(BonsaiError, ValueError):
    """Malformed input: bad address, non-positive amount, bad hex payload."""


class PreconditionError(BonsaiError):
    """An action was attempted from a game state that does not allow it."""


class CooldownError(PreconditionError):
    def __init__(self, message, wait_hours):
        super().__init__(message)
        self.wait_hours = wait_hours


class ExternalError(BonsaiError):
    """The wallet provider or chain query failed or is unavailable."""


class UserRejectedError(ExternalError):
    """The player declined the wallet prompt."""


class StorageError(BonsaiError):
    """The state store could not be read or written."""
