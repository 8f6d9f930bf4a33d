# Application layer: services that orchestrate domain and infrastructure.
# Services are imported from their modules; governance depends on this package.

from app.application.exceptions import (
    ApplicationError,
    ContentionError,
    NotFoundError,
    PersistenceFailureError,
    ResultSetTooLargeError,
)
from app.application.storage import Collections, DocumentGateway, RetryPolicy, Transaction

__all__ = [
    "ApplicationError",
    "Collections",
    "ContentionError",
    "DocumentGateway",
    "NotFoundError",
    "PersistenceFailureError",
    "ResultSetTooLargeError",
    "RetryPolicy",
    "Transaction",
]
