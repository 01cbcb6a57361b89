"""Exception types raised inside the rentals core."""


class RentalsError(Exception):
    """Base class for errors raised by this package."""


class VocabularyError(RentalsError):
    """The keyword vocabulary file is missing or malformed."""


class CollaboratorError(RentalsError):
    """A persistence or transport collaborator call failed.

    Stores and channels wrap their backend exceptions in this type so the
    state machine can log a single, uniform failure.
    """

    def __init__(self, operation: str, message: str = "") -> None:
        self.operation = operation
        super().__init__(f"{operation} failed" + (f": {message}" if message else ""))
