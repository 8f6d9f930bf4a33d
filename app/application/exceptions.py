"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(ApplicationError):
    """Raised when a referenced project or work item is absent at the point of a transactional read."""


class ContentionError(ApplicationError):
    """
    Raised when a storage transaction exhausted its retry budget. Nothing was
    committed; the caller may retry the whole operation.
    """

    def __init__(self, message: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)


class PersistenceFailureError(ApplicationError):
    """
    Raised when an audit or notification write failed after the primary mutation
    already committed. Callers log and continue; the mutation is not rolled back.
    """

    def __init__(self, message: str, failed: int = 1, total: int = 1) -> None:
        self.failed = failed
        self.total = total
        super().__init__(message)


class ResultSetTooLargeError(ApplicationError):
    """Raised when a fan-in scan returns more documents than the configured ceiling."""


class TransactionConflict(Exception):
    """
    Internal signal from a storage backend that an optimistic commit lost a race.
    Never escapes run_transaction; exhausting retries surfaces ContentionError.
    """
