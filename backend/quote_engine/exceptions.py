"""Custom exception classes for the quote engine."""


class QuoteEngineError(Exception):
    """Base class for quote engine errors."""


class VersionNotFoundError(QuoteEngineError):
    """Raised when a quote version is not found."""

    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Quote version with ID '{version_id}' not found")


class ValidationError(QuoteEngineError):
    """Raised when a payload is rejected at the persistence boundary."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidStatusTransitionError(QuoteEngineError):
    """Raised when a quote cannot move from one status to another."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition quote from '{current}' to '{requested}'")
