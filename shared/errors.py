"""Exception types shared across the journal."""


class JournalError(Exception):
    """Base class for all journal errors."""


class StoreError(JournalError):
    """A local store operation failed.

    Wraps the underlying engine error so callers can decide whether to
    retry or surface it; the store itself never retries.
    """

    def __init__(self, operation: str, cause: Exception | str | None = None):
        self.operation = operation
        self.cause = cause
        detail = str(cause) if cause is not None else "Unknown error"
        super().__init__(f"Failed to {operation}: {detail}")


class StoreNotInitializedError(StoreError):
    """Raised when an operation runs before Database.init() succeeded."""

    def __init__(self, operation: str):
        super().__init__(operation, "Database not initialized")


class ConstraintViolationError(StoreError):
    """Uniqueness or not-null constraint rejected by SQLite."""


class ProviderError(JournalError):
    """A market-data or AI provider call failed."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")
