"""Exception types raised at the I/O edges of the game."""


class UwGuessrError(Exception):
    """Base class for errors raised by this package."""


class PhotoProviderError(UwGuessrError):
    """The photo set for a match could not be fetched."""


class StorageError(UwGuessrError):
    """A key-value store could not be read or written."""


class SubmissionError(UwGuessrError):
    """A daily score submission was refused."""

    def __init__(self, message: str, reason: str = "invalid"):
        super().__init__(message)
        self.reason = reason


class NoActiveMatchError(UwGuessrError):
    """An in-match action arrived while no match is in progress."""
