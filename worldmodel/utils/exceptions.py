"""
Custom exception hierarchy for the synthesis engine.

All exceptions inherit from WorldModelError so callers at the request
boundary can catch a single type and report "processing failed".
"""


class WorldModelError(Exception):
    """
    Base exception for all synthesis engine errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(WorldModelError):
    """
    Storage operation errors.
    Raised when the relational store fails to read or write.
    """

    pass


class ValidationError(WorldModelError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class NotFoundError(WorldModelError):
    """
    Resource not found errors.
    Raised when a requested signal, document or commit doesn't exist.
    """

    pass


class ConfigurationError(WorldModelError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class EmbeddingError(WorldModelError):
    """
    Embedding generation errors.
    Raised when embedding generation fails.
    """

    pass


class LLMError(WorldModelError):
    """
    LLM operation errors.
    Raised when LLM operations fail (API errors, timeouts, unparseable output).
    """

    pass


class SynthesisError(WorldModelError):
    """
    Synthesis run failures.
    Raised when a run aborts before its commit is written.
    """

    pass


class SynthesisConflictError(SynthesisError):
    """
    Concurrent synthesis conflict.

    Raised when the head commit moved between the read and the commit insert,
    or when a signal is already linked to another commit. The run left no
    durable changes and may be retried.
    """

    retryable = True


class HistoryError(WorldModelError):
    """
    Commit history corruption.
    Raised when a parent chain contains a cycle or a dangling parent id.
    """

    pass
